# scalable_exporter/locales.py

"""
Locale configurations for the Portfolio Performance CSV export.

Each supported locale fixes the column headers, the field delimiter, the
decimal separator, the date/time formats and the labels used for
transaction sides and cash transaction types.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from .exceptions import UnsupportedLocaleError

# --- Constants ---
EXPORT_TIMEZONE = ZoneInfo("Europe/Berlin")
TWO_PLACES = Decimal("0.01")


class ExportLocale(Enum):
    DE = "de-DE"
    EN = "en-US"


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"


class CashTransactionType(Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TAX_RETURN = "TAX_RETURN"
    DISTRIBUTION = "DISTRIBUTION"
    INTEREST = "INTEREST"


@dataclass(frozen=True)
class LocaleConfig:
    locale: ExportLocale
    headers: List[str]
    delimiter: str
    decimal_separator: str
    date_format: str
    time_format: str
    side_labels: Dict[str, str]
    cash_type_labels: Dict[str, str]

    def side_label(self, side: Optional[str]) -> str:
        """Localized label for a trade side; unknown values pass through."""
        if not side:
            return ""
        return self.side_labels.get(side, side)

    def cash_type_label(self, cash_type: Optional[str]) -> str:
        """Localized label for a cash transaction type; unknown values pass through."""
        if not cash_type:
            return ""
        return self.cash_type_labels.get(cash_type, cash_type)


# --- Mappings ---
LOCALE_CONFIGS: Dict[ExportLocale, LocaleConfig] = {
    ExportLocale.DE: LocaleConfig(
        locale=ExportLocale.DE,
        headers=[
            "Datum", "Uhrzeit", "Typ", "Wertpapiername", "ISIN", "Wert", "Stück",
            "Buchungswährung", "Gebühren", "Steuern", "Bruttobetrag", "Notiz",
        ],
        delimiter=";",
        decimal_separator=",",
        date_format="%d.%m.%Y",
        time_format="%H:%M:%S",
        side_labels={
            Side.BUY.value: "Kauf",
            Side.SELL.value: "Verkauf",
        },
        cash_type_labels={
            CashTransactionType.DEPOSIT.value: "Einlage",
            CashTransactionType.WITHDRAWAL.value: "Entnahme",
            CashTransactionType.TAX_RETURN.value: "Steuerrückerstattung",
            CashTransactionType.DISTRIBUTION.value: "Dividende",
            CashTransactionType.INTEREST.value: "Zinsen",
        },
    ),
    ExportLocale.EN: LocaleConfig(
        locale=ExportLocale.EN,
        headers=[
            "Date", "Time", "Type", "Security Name", "ISIN", "Value", "Shares",
            "Transaction Currency", "Fees", "Taxes", "Gross Amount", "Note",
        ],
        delimiter=",",
        decimal_separator=".",
        date_format="%m/%d/%Y",
        time_format="%H:%M:%S",
        side_labels={
            Side.BUY.value: "Buy",
            Side.SELL.value: "Sell",
        },
        cash_type_labels={
            CashTransactionType.DEPOSIT.value: "Deposit",
            CashTransactionType.WITHDRAWAL.value: "Removal",
            CashTransactionType.TAX_RETURN.value: "Tax Refund",
            CashTransactionType.DISTRIBUTION.value: "Dividend",
            CashTransactionType.INTEREST.value: "Interest",
        },
    ),
}


def get_locale_config(locale: Union[ExportLocale, str]) -> LocaleConfig:
    """Look up the configuration for a locale given as enum or tag ("de-DE")."""
    try:
        key = locale if isinstance(locale, ExportLocale) else ExportLocale(locale)
    except ValueError:
        raise UnsupportedLocaleError(f"Unsupported export locale: {locale!r}") from None
    return LOCALE_CONFIGS[key]


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert an API value to Decimal. Returns None for absent or non-numeric input."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        # str() gives the shortest repr, so 2.005 stays 2.005
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def format_number(value: Any, locale: Union[ExportLocale, str]) -> str:
    """
    Round to exactly two decimal places (half away from zero) and render
    with the locale's decimal separator. Absent or non-numeric input gives "".
    """
    config = get_locale_config(locale)
    number = to_decimal(value)
    if number is None:
        return ""
    rounded = number.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    text = format(rounded, "f")
    if config.decimal_separator != ".":
        text = text.replace(".", config.decimal_separator)
    return text


def format_date(instant: Optional[datetime], locale: Union[ExportLocale, str]) -> str:
    """Calendar date of the instant in Europe/Berlin, locale formatted."""
    if instant is None:
        return ""
    return instant.astimezone(EXPORT_TIMEZONE).strftime(get_locale_config(locale).date_format)


def format_time(instant: Optional[datetime], locale: Union[ExportLocale, str]) -> str:
    """Wall-clock time of the instant in Europe/Berlin, 24h."""
    if instant is None:
        return ""
    return instant.astimezone(EXPORT_TIMEZONE).strftime(get_locale_config(locale).time_format)
