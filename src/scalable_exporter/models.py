# scalable_exporter/models.py

"""
Defines the core data structures used throughout the exporter: the
transaction summary variants returned by the broker API, the per-trade
financial details, and the flat export row rendered into the CSV.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from .locales import to_decimal

# --- API constants ---
SECURITY_TRANSACTION = "SECURITY_TRANSACTION"
CASH_TRANSACTION = "CASH_TRANSACTION"
NON_TRADE_SECURITY_TRANSACTION = "NON_TRADE_SECURITY_TRANSACTION"
STATUS_SETTLED = "SETTLED"

# GraphQL __typename of each summary variant, used when "type" is missing
TYPENAME_TO_TYPE = {
    "BrokerSecurityTransactionSummary": SECURITY_TRANSACTION,
    "BrokerCashTransactionSummary": CASH_TRANSACTION,
    "BrokerNonTradeSecurityTransactionSummary": NON_TRADE_SECURITY_TRANSACTION,
}


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 UTC instant such as 2024-03-01T09:15:00.123Z."""
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- Core Data Models ---

@dataclass(frozen=True)
class TransactionDetail:
    """Financial details of a security trade from getTransactionDetails."""
    fees: Decimal
    taxes: Optional[Decimal] = None
    market_valuation: Optional[Decimal] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "TransactionDetail":
        amounts = payload.get("tradeTransactionAmounts") or {}
        fees = sum(
            (to_decimal(amounts.get(key)) or Decimal(0)
             for key in ("transactionFee", "venueFee", "cryptoSpreadFee")),
            Decimal(0),
        )
        return cls(
            fees=fees,
            taxes=to_decimal(amounts.get("taxAmount")),
            market_valuation=to_decimal(amounts.get("marketValuation")),
        )


@dataclass(frozen=True)
class TransactionSummary:
    """Fields shared by every transaction summary variant."""
    id: str
    type: str
    status: Optional[str] = None
    currency: Optional[str] = None
    is_cancellation: bool = False
    last_event_datetime: Optional[datetime] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    details: Optional[TransactionDetail] = None

    @property
    def is_settled(self) -> bool:
        return self.status == STATUS_SETTLED


@dataclass(frozen=True)
class SecurityTransaction(TransactionSummary):
    """A buy or sell of a security."""
    side: Optional[str] = None
    quantity: Optional[Decimal] = None
    isin: Optional[str] = None
    security_transaction_type: Optional[str] = None


@dataclass(frozen=True)
class CashTransaction(TransactionSummary):
    """Deposits, withdrawals, distributions, interest and tax returns."""
    cash_transaction_type: Optional[str] = None
    related_isin: Optional[str] = None


@dataclass(frozen=True)
class NonTradeSecurityTransaction(TransactionSummary):
    """Security movements that are not trades (e.g. transfers, corporate actions)."""
    non_trade_security_transaction_type: Optional[str] = None
    quantity: Optional[Decimal] = None
    isin: Optional[str] = None


@dataclass(frozen=True)
class OtherTransaction(TransactionSummary):
    """Any transaction type this exporter does not know about."""


AnyTransaction = Union[SecurityTransaction, CashTransaction, NonTradeSecurityTransaction, OtherTransaction]


def parse_transaction_summary(raw: Dict[str, Any]) -> AnyTransaction:
    """Build the matching summary variant from one moreTransactions entry."""
    common = dict(
        id=str(raw.get("id") or ""),
        type=raw.get("type") or TYPENAME_TO_TYPE.get(raw.get("__typename"), ""),
        status=raw.get("status"),
        currency=raw.get("currency"),
        is_cancellation=bool(raw.get("isCancellation")),
        last_event_datetime=parse_instant(raw.get("lastEventDateTime")),
        description=raw.get("description"),
        amount=to_decimal(raw.get("amount")),
    )
    tx_type = common["type"]

    if tx_type == SECURITY_TRANSACTION:
        return SecurityTransaction(
            **common,
            side=raw.get("side"),
            quantity=to_decimal(raw.get("quantity")),
            isin=raw.get("isin"),
            security_transaction_type=raw.get("securityTransactionType"),
        )
    if tx_type == CASH_TRANSACTION:
        return CashTransaction(
            **common,
            cash_transaction_type=raw.get("cashTransactionType"),
            related_isin=raw.get("relatedIsin"),
        )
    if tx_type == NON_TRADE_SECURITY_TRANSACTION:
        return NonTradeSecurityTransaction(
            **common,
            non_trade_security_transaction_type=raw.get("nonTradeSecurityTransactionType"),
            quantity=to_decimal(raw.get("quantity")),
            isin=raw.get("isin"),
        )
    return OtherTransaction(**common)


def transaction_to_dict(transaction: TransactionSummary) -> Dict[str, Any]:
    """JSON-friendly dict of a summary: Decimals as strings, instants as ISO-8601."""
    def convert(value: Any) -> Any:
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    data = convert(asdict(transaction))
    data["variant"] = type(transaction).__name__
    return data


@dataclass(frozen=True)
class ExportRow:
    """Represents a single row in the Portfolio Performance CSV."""
    date: str
    time: str
    type_label: str
    security_name: str
    isin: str
    value: str
    shares: str
    currency: str
    fees: str
    taxes: str
    gross_amount: str
    note: str

    def as_list(self) -> list:
        return [
            self.date, self.time, self.type_label, self.security_name, self.isin,
            self.value, self.shares, self.currency, self.fees, self.taxes,
            self.gross_amount, self.note,
        ]
