# scalable_exporter/scalable_api.py

"""
Handles communication with the Scalable Capital broker data API.

The endpoint takes a JSON array of named GraphQL operations. Requests reuse
the cookies of an already authenticated browser session.
"""

import time
from decimal import Decimal
from http.cookiejar import MozillaCookieJar
from typing import Any, Dict, List, Optional

import requests

from .config import DEFAULT_API_URL, DEFAULT_PAGE_SIZE, DEFAULT_PORTAL_URL
from .logging_utils import log_api_call, log_error, log_event, log_warning
from .models import TransactionDetail, TransactionSummary, parse_transaction_summary
from .queries import (
    MORE_TRANSACTIONS_OPERATION,
    MORE_TRANSACTIONS_QUERY,
    TRANSACTION_DETAILS_OPERATION,
    TRANSACTION_DETAILS_QUERY,
    more_transactions_variables,
    transaction_details_variables,
)

FEATURES_HEADER = "CRYPTO_MULTI_ETP,UNIQUE_SECURITY_ID"


def parse_cookie_header(cookie_header: str) -> Dict[str, str]:
    """Split a raw Cookie header value ("a=1; b=2") into a dict."""
    # Request-side headers are not Set-Cookie syntax; values may hold unquoted JSON
    parsed = {}
    for part in cookie_header.split(";"):
        key, sep, value = part.partition("=")
        key = key.strip()
        if sep and key:
            parsed[key] = value.strip()
    return parsed


def build_session(config: Dict[str, Any]) -> requests.Session:
    """Create a requests session carrying the browser session's cookies."""
    session = requests.Session()
    session.headers.update({
        "content-type": "application/json",
        "x-scacap-features-enabled": FEATURES_HEADER,
    })

    cookies_file = config.get("cookies_file")
    if cookies_file:
        jar = MozillaCookieJar(str(cookies_file))
        jar.load(ignore_discard=True, ignore_expires=True)
        for cookie in jar:
            session.cookies.set_cookie(cookie)
        log_event("Session", f"Loaded {len(jar)} cookies from {cookies_file}")

    cookie_header = config.get("cookies")
    if cookie_header:
        cookies = parse_cookie_header(cookie_header)
        session.cookies.update(cookies)
        log_event("Session", f"Loaded {len(cookies)} cookies from cookie header")

    return session


class BrokerApiClient:
    """Posts GraphQL operations to the broker data endpoint."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        api_url: str = DEFAULT_API_URL,
        portal_url: str = DEFAULT_PORTAL_URL,
        timeout: Optional[float] = None,
    ):
        self.session = session or requests.Session()
        self.api_url = api_url
        self.portal_url = portal_url
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "BrokerApiClient":
        return cls(
            session=build_session(config),
            api_url=config.get("api_url") or DEFAULT_API_URL,
            portal_url=config.get("portal_url") or DEFAULT_PORTAL_URL,
            timeout=config.get("request_timeout"),
        )

    def close(self) -> None:
        self.session.close()

    def referer(self, portfolio_id: str) -> str:
        return f"{self.portal_url}?portfolioId={portfolio_id}"

    def request(
        self,
        operation_name: str,
        variables: Dict[str, Any],
        query: str,
        portfolio_id: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Send a single operation and return its "data" object.

        Returns None on a non-success status, a transport error or a body
        that is not a GraphQL response. Each failure is logged.
        """
        body = [{
            "operationName": operation_name,
            "variables": variables,
            "query": query,
        }]
        headers = {"referer": self.referer(portfolio_id)}

        start = time.monotonic()
        try:
            response = self.session.post(self.api_url, json=body, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log_api_call(operation_name, self.api_url, params=variables, success=False,
                         duration_ms=(time.monotonic() - start) * 1000,
                         error_message=f"Network error: {e}")
            return None
        duration_ms = (time.monotonic() - start) * 1000

        if not response.ok:
            log_api_call(operation_name, self.api_url, params=variables, success=False,
                         response_code=response.status_code, duration_ms=duration_ms,
                         error_message=response.reason or f"HTTP {response.status_code}")
            return None

        try:
            payload = response.json(parse_float=Decimal)
        except ValueError as e:
            log_api_call(operation_name, self.api_url, params=variables, success=False,
                         response_code=response.status_code, duration_ms=duration_ms,
                         error_message=f"Invalid JSON body: {e}")
            return None

        log_api_call(operation_name, self.api_url, params=variables, success=True,
                     response_code=response.status_code, duration_ms=duration_ms)

        item = payload[0] if isinstance(payload, list) and payload else payload
        if not isinstance(item, dict):
            log_warning("API", "UnexpectedShape", f"{operation_name} returned no operation result")
            return None
        if item.get("errors"):
            log_warning("API", "GraphQLErrors", f"{operation_name} returned errors", {"errors": item["errors"]})
        data = item.get("data")
        return data if isinstance(data, dict) else None


def _portfolio_field(data: Optional[Dict[str, Any]], field_name: str) -> Optional[Any]:
    """data.account.brokerPortfolio.<field_name>, or None if any level is missing."""
    node: Any = data
    for key in ("account", "brokerPortfolio", field_name):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def fetch_transactions(
    client: BrokerApiClient,
    person_id: str,
    portfolio_id: str,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> List[TransactionSummary]:
    """
    Fetches all settled transaction summaries, following the cursor.

    Stops on an empty page (whatever the cursor), on a null cursor, or on a
    failed request. A failure keeps the pages collected so far.
    """
    transactions: List[TransactionSummary] = []
    cursor = None
    page = 0

    while True:
        log_event("Transactions", f"Current cursor: {cursor}")
        data = client.request(
            MORE_TRANSACTIONS_OPERATION,
            more_transactions_variables(person_id, portfolio_id, page_size, cursor),
            MORE_TRANSACTIONS_QUERY,
            portfolio_id,
        )
        if data is None:
            log_error("Transactions", "SummaryFetchFailure",
                      f"Error while fetching transactions, keeping {len(transactions)} already loaded",
                      {"page": page, "cursor": cursor})
            break

        result = _portfolio_field(data, "moreTransactions")
        batch = result.get("transactions") if isinstance(result, dict) else None
        if not isinstance(batch, list):
            log_error("Transactions", "SummaryFetchFailure",
                      f"Unexpected response shape, keeping {len(transactions)} already loaded",
                      {"page": page, "cursor": cursor})
            break
        if not batch:
            break

        page += 1
        settled = [tx for tx in (parse_transaction_summary(raw) for raw in batch) if tx.is_settled]
        transactions.extend(settled)
        log_event("Transactions", f"Page {page}: {len(batch)} transactions, {len(settled)} settled",
                  {"total": result.get("total")})

        cursor = result.get("cursor")
        if cursor is None:
            break

    log_event("Transactions", f"Transactions loaded: {len(transactions)}")
    return transactions


def fetch_transaction_details(
    client: BrokerApiClient,
    person_id: str,
    portfolio_id: str,
    transaction_id: str,
) -> Optional[TransactionDetail]:
    """Fetch fees, taxes and market valuation of one security trade."""
    data = client.request(
        TRANSACTION_DETAILS_OPERATION,
        transaction_details_variables(person_id, portfolio_id, transaction_id),
        TRANSACTION_DETAILS_QUERY,
        portfolio_id,
    )
    if data is None:
        log_error("Details", "DetailFetchFailure", f"Error while fetching details for transaction {transaction_id}")
        return None

    transaction = _portfolio_field(data, "transactionDetails")
    if not isinstance(transaction, dict):
        log_error("Details", "DetailFetchFailure", f"Found no details for transaction {transaction_id}")
        return None

    return TransactionDetail.from_api(transaction)
