# scalable_exporter/queries.py

"""GraphQL operations sent to the broker data endpoint."""

MORE_TRANSACTIONS_OPERATION = "moreTransactions"
TRANSACTION_DETAILS_OPERATION = "getTransactionDetails"

MORE_TRANSACTIONS_QUERY = """query moreTransactions($personId: ID!, $input: BrokerTransactionInput!, $portfolioId: ID!) {
  account(id: $personId) {
    id
    brokerPortfolio(id: $portfolioId) {
      id
      moreTransactions(input: $input) {
        ...MoreTransactionsFragment
        __typename
      }
      __typename
    }
    __typename
  }
}

fragment MoreTransactionsFragment on BrokerTransactionSummaries {
  cursor
  total
  transactions {
    id
    currency
    type
    status
    isCancellation
    lastEventDateTime
    description
    ...BrokerCashTransactionSummaryFragment
    ...BrokerNonTradeSecurityTransactionSummaryFragment
    ...BrokerSecurityTransactionSummaryFragment
    __typename
  }
  __typename
}

fragment BrokerCashTransactionSummaryFragment on BrokerCashTransactionSummary {
  cashTransactionType
  amount
  relatedIsin
  __typename
}

fragment BrokerNonTradeSecurityTransactionSummaryFragment on BrokerNonTradeSecurityTransactionSummary {
  nonTradeSecurityTransactionType
  quantity
  amount
  isin
  __typename
}

fragment BrokerSecurityTransactionSummaryFragment on BrokerSecurityTransactionSummary {
  securityTransactionType
  quantity
  amount
  side
  isin
  __typename
}"""

# Only the trade amounts are read back; the rest of the selection keeps the
# request identical to the one the portal itself sends.
TRANSACTION_DETAILS_QUERY = """query getTransactionDetails($personId: ID!, $transactionId: ID!, $portfolioId: ID!) {
  account(id: $personId) {
    id
    brokerPortfolio(id: $portfolioId) {
      id
      transactionDetails(id: $transactionId) {
        ...TransactionDetailsFragment
        __typename
      }
      __typename
    }
    __typename
  }
}

fragment TransactionDetailsFragment on BrokerTransaction {
  id
  currency
  type
  lastEventDateTime
  isPending
  isCancellation
  security {
    id
    name
    isin
    __typename
  }
  transactionReference
  ...SecurityTransactionDetailsFragment
  __typename
}

fragment SecurityTransactionDetailsFragment on BrokerSecurityTransaction {
  id
  side
  status
  numberOfShares {
    filled
    total
    __typename
  }
  averagePrice
  totalAmount
  tradeTransactionAmounts {
    marketValuation
    taxAmount
    transactionFee
    venueFee
    cryptoSpreadFee
    __typename
  }
  tradingVenue
  fee
  transactionalFee
  taxes
  __typename
}"""


def more_transactions_variables(person_id: str, portfolio_id: str, page_size: int, cursor=None) -> dict:
    return {
        "personId": person_id,
        "input": {
            "pageSize": page_size,
            "type": [],
            "status": [],
            "searchTerm": "",
            "cursor": cursor,
        },
        "portfolioId": portfolio_id,
    }


def transaction_details_variables(person_id: str, portfolio_id: str, transaction_id: str) -> dict:
    return {
        "personId": person_id,
        "transactionId": transaction_id,
        "portfolioId": portfolio_id,
    }
