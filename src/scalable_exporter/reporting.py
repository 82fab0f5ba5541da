"""
Handles CSV rendering and export of the collected transactions.

Rows follow the Portfolio Performance import layout. The German locale
uses semicolons and decimal commas, the English locale commas and decimal
points. Each transaction variant is mapped to the flat row separately.
"""

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from .locales import ExportLocale, LocaleConfig, format_date, format_number, format_time, get_locale_config, CashTransactionType
from .logging_utils import log_event, log_error
from .models import (
    CashTransaction,
    ExportRow,
    NonTradeSecurityTransaction,
    OtherTransaction,
    SecurityTransaction,
    TransactionSummary,
    transaction_to_dict,
)

EXPORT_BASE_NAME = "scalable_transactions_export"


def ensure_output_dir(output_dir: Union[str, Path]) -> Path:
    """Ensure the output directory exists."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path


def create_filename(extension: str = "csv", now: Optional[datetime] = None) -> str:
    """scalable_transactions_export_<UTC ISO-8601 basic timestamp, e.g. 20240506T070809>.<extension>

    No colons: the name must be valid on Windows too.
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S")
    return f"{EXPORT_BASE_NAME}_{timestamp}.{extension}"


def _text(value: Optional[str]) -> str:
    return value or ""


def build_export_row(transaction: TransactionSummary, locale: Union[ExportLocale, str]) -> ExportRow:
    """Map one (possibly enriched) summary to a locale-formatted row."""
    config: LocaleConfig = get_locale_config(locale)

    type_label = _text(transaction.type)
    security_name = _text(transaction.description)
    isin = ""
    shares = None
    note = _text(transaction.id)

    if isinstance(transaction, SecurityTransaction):
        type_label = config.side_label(transaction.side)
        isin = _text(transaction.isin)
        shares = transaction.quantity
    elif isinstance(transaction, CashTransaction):
        type_label = config.cash_type_label(transaction.cash_transaction_type)
        if transaction.cash_transaction_type == CashTransactionType.DISTRIBUTION.value:
            isin = _text(transaction.related_isin)
        else:
            # Non-dividend cash movements carry their meaning in the description
            if transaction.description:
                note = f"{transaction.id} {transaction.description}"
            security_name = ""
    elif isinstance(transaction, NonTradeSecurityTransaction):
        isin = _text(transaction.isin)
        shares = transaction.quantity
    elif isinstance(transaction, OtherTransaction):
        pass
    else:
        raise TypeError(f"Unsupported transaction variant: {type(transaction).__name__}")

    details = transaction.details
    return ExportRow(
        date=format_date(transaction.last_event_datetime, config.locale),
        time=format_time(transaction.last_event_datetime, config.locale),
        type_label=type_label,
        security_name=security_name,
        isin=isin,
        value=format_number(transaction.amount, config.locale),
        shares=format_number(shares, config.locale),
        currency=_text(transaction.currency),
        fees=format_number(details.fees if details else None, config.locale),
        taxes=format_number(details.taxes if details else None, config.locale),
        gross_amount=format_number(details.market_valuation if details else None, config.locale),
        note=note,
    )


def render_csv(transactions: Iterable[TransactionSummary], locale: Union[ExportLocale, str]) -> str:
    """Render the header and one row per transaction, in input order."""
    config = get_locale_config(locale)
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=config.delimiter, lineterminator="\n")
    writer.writerow(config.headers)
    for transaction in transactions:
        writer.writerow(build_export_row(transaction, config.locale).as_list())
    return buffer.getvalue()


def save_csv(content: str, output_dir: Union[str, Path] = ".", now: Optional[datetime] = None) -> Path:
    """Write the rendered CSV as UTF-8 into output_dir and return its path."""
    output_path = ensure_output_dir(output_dir)
    csv_path = output_path / create_filename("csv", now)
    try:
        with open(csv_path, "w", newline="", encoding="utf-8") as csvfile:
            csvfile.write(content)
    except OSError as e:
        log_error("reporting", "CSVExportError", f"Failed to write {csv_path}", exception=e)
        raise
    log_event("Export", f"Created CSV export: {csv_path}")
    return csv_path


def export_as_json(
    transactions: Iterable[TransactionSummary],
    output_dir: Union[str, Path] = ".",
    now: Optional[datetime] = None,
) -> Path:
    """Write the enriched transactions as JSON, for diagnosing mapping problems."""
    output_path = ensure_output_dir(output_dir)
    json_path = output_path / create_filename("json", now)
    data = [transaction_to_dict(tx) for tx in transactions]
    try:
        with open(json_path, "w", encoding="utf-8") as json_file:
            json.dump(data, json_file, indent=2, ensure_ascii=False)
    except OSError as e:
        log_error("reporting", "JSONExportError", f"Failed to write {json_path}", exception=e)
        raise
    log_event("Export", f"Created JSON export: {json_path}")
    return json_path
