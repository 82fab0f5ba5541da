# scalable_exporter/pipeline.py

"""
Orchestrates an export: resolve ids, fetch settled summaries, enrich
security trades with their details one at a time, render the CSV and hand
it to the file-save boundary.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .config import DEFAULT_PAGE_SIZE
from .identity import IdentityProvider, SessionIdentity, resolve_identity
from .locales import ExportLocale, get_locale_config
from .logging_utils import log_event, log_warning
from .models import SECURITY_TRANSACTION, TransactionSummary
from .progress import NullProgress, ProgressReporter
from .reporting import export_as_json, render_csv, save_csv
from .scalable_api import BrokerApiClient, fetch_transaction_details, fetch_transactions


@dataclass
class ExportResult:
    csv_path: Path
    transactions: List[TransactionSummary]
    missing_details: List[str]
    json_path: Optional[Path] = None


def enrich_transactions(
    client: BrokerApiClient,
    identity: SessionIdentity,
    transactions: List[TransactionSummary],
    progress: Optional[ProgressReporter] = None,
) -> List[TransactionSummary]:
    """
    Attach details to every security trade, sequentially and in fetch order.

    Returns a new list with the same order as the input; summaries whose
    detail fetch failed are kept without details.
    """
    progress = progress or NullProgress()
    total = sum(1 for tx in transactions if tx.type == SECURITY_TRANSACTION)
    log_event("Pipeline", f"Loading details for {total} transactions...")

    enriched: List[TransactionSummary] = []
    loaded = 0
    progress.start(total)
    try:
        for transaction in transactions:
            if transaction.type != SECURITY_TRANSACTION:
                enriched.append(transaction)
                continue
            details = fetch_transaction_details(client, identity.person_id, identity.portfolio_id, transaction.id)
            enriched.append(replace(transaction, details=details) if details else transaction)
            loaded += 1
            progress.update(loaded, total)
    finally:
        progress.stop()

    return enriched


def collect_transactions(
    client: BrokerApiClient,
    identity_provider: IdentityProvider,
    progress: Optional[ProgressReporter] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> List[TransactionSummary]:
    """Resolve ids, fetch all settled summaries and enrich the security trades."""
    identity = resolve_identity(identity_provider)
    transactions = fetch_transactions(client, identity.person_id, identity.portfolio_id, page_size=page_size)
    enriched = enrich_transactions(client, identity, transactions, progress)

    missing = missing_detail_ids(enriched)
    if missing:
        log_warning("Pipeline", "IncompleteDetails",
                    f"{len(missing)} security transactions exported without fees/taxes/gross amount",
                    {"transaction_ids": missing})
    return enriched


def missing_detail_ids(transactions: List[TransactionSummary]) -> List[str]:
    return [tx.id for tx in transactions if tx.type == SECURITY_TRANSACTION and tx.details is None]


def prepare_export(
    client: BrokerApiClient,
    identity_provider: IdentityProvider,
    locale: Union[ExportLocale, str],
    progress: Optional[ProgressReporter] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[TransactionSummary], str]:
    """Run the full pipeline and return the enriched transactions with the rendered CSV text."""
    # Fail on an unsupported locale before touching the network
    config = get_locale_config(locale)
    log_event("Pipeline", f"Starting export for locale {config.locale.value}")
    transactions = collect_transactions(client, identity_provider, progress, page_size)
    return transactions, render_csv(transactions, config.locale)


def build_export(
    client: BrokerApiClient,
    identity_provider: IdentityProvider,
    locale: Union[ExportLocale, str],
    progress: Optional[ProgressReporter] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> str:
    """Run the full pipeline and return the rendered CSV text."""
    _, content = prepare_export(client, identity_provider, locale, progress, page_size)
    return content


def run_export(
    client: BrokerApiClient,
    identity_provider: IdentityProvider,
    locale: Union[ExportLocale, str],
    output_dir: Union[str, Path] = ".",
    progress: Optional[ProgressReporter] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    dump_json: bool = False,
    now: Optional[datetime] = None,
) -> ExportResult:
    """Run the pipeline and save the CSV (and optionally the raw JSON)."""
    transactions, content = prepare_export(client, identity_provider, locale, progress, page_size)
    csv_path = save_csv(content, output_dir, now=now)
    json_path = export_as_json(transactions, output_dir, now=now) if dump_json else None

    log_event("Pipeline", f"Exported {len(transactions)} transactions to {csv_path}")
    return ExportResult(
        csv_path=csv_path,
        transactions=transactions,
        missing_details=missing_detail_ids(transactions),
        json_path=json_path,
    )
