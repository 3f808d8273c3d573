"""Explorer GraphQL queries for account history and token holdings.

The explorer returns quantities as hex like the node does; amounts are
rendered in whole units and counters/timestamps as plain decimals.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from .core.transport import HttpTransport, Transport
from .core.units import hex_to_decimal, hex_to_ether

log = logging.getLogger(__name__)

ACCOUNT_TRANSACTIONS_QUERY = """
query AccountByAddress($address: Address!, $cursor: Cursor, $count: Int!) {
  account(address: $address) {
    address
    contract {
      address
      deployedBy { hash contractAddress }
      name
      version
      compiler
      sourceCode
      abi
      validated
      supportContact
      timestamp
    }
    balance
    totalValue
    txCount
    txList(cursor: $cursor, count: $count) {
      pageInfo { first last hasNext hasPrevious }
      totalCount
      edges {
        cursor
        transaction {
          hash
          from
          to
          value
          gasUsed
          block { number timestamp }
          tokenTransactions {
            trxIndex tokenAddress tokenName tokenSymbol tokenType
            tokenId tokenDecimals type sender recipient amount
          }
        }
      }
    }
    staker { id createdTime isActive }
    delegations {
      totalCount
      edges {
        delegation {
          toStakerId
          createdTime
          amount
          claimedReward
          pendingRewards { amount }
        }
        cursor
      }
    }
  }
}
"""

ACCOUNT_TOKENS_QUERY = """
query ($address: Address!) {
  account(address: $address) {
    tokenSummaries {
      tokenAddress tokenName tokenSymbol tokenType tokenDecimals type amount
    }
  }
}
"""


def _convert(obj: Any, keys: Iterable[str], fn: Callable[[Any], Any]) -> None:
    if not isinstance(obj, dict):
        return
    for key in keys:
        if obj.get(key):
            obj[key] = fn(obj[key])


def _dicts(items: Any) -> Iterable[Dict[str, Any]]:
    if isinstance(items, list):
        return [item for item in items if isinstance(item, dict)]
    return []


async def _query(url: str, query: str, variables: Dict[str, Any], transport: Optional[Transport]) -> Any:
    transport = transport or HttpTransport()
    try:
        return await transport.send(url, {"query": query, "variables": variables})
    except Exception as err:
        log.error("[explorer] GraphQL request failed url=%s err=%s", url, err)
        raise


async def get_all_transactions(
    url: str,
    address: str,
    count: int,
    cursor: Optional[str] = None,
    *,
    transport: Optional[Transport] = None,
) -> Any:
    """Account overview with a page of transactions, delegations and staker info.

    Returns the ``account`` object, or the raw GraphQL reply when the account
    is missing (e.g. a GraphQL ``errors`` payload).
    """

    if not url or not isinstance(url, str):
        raise ValueError('"url" is a required string parameter.')
    if not address or not isinstance(address, str):
        raise ValueError('"address" is a required string parameter.')
    if cursor is not None and not isinstance(cursor, str):
        raise ValueError('"cursor" must be a string.')
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise ValueError('"count" must be a positive integer.')

    variables = {"address": address, "cursor": cursor, "count": count}
    result = await _query(url, ACCOUNT_TRANSACTIONS_QUERY, variables, transport)
    account = (result.get("data") or {}).get("account") if isinstance(result, dict) else None
    if not account:
        return result

    _convert(account, ("balance", "totalValue"), hex_to_ether)
    _convert(account, ("txCount",), hex_to_decimal)

    tx_list = account.get("txList")
    _convert(tx_list, ("totalCount",), hex_to_decimal)
    for edge in _dicts((tx_list or {}).get("edges")):
        tx = edge.get("transaction")
        _convert(tx, ("value",), hex_to_ether)
        _convert(tx, ("gasUsed",), hex_to_decimal)
        if isinstance(tx, dict):
            _convert(tx.get("block"), ("number", "timestamp"), hex_to_decimal)
            for token_tx in _dicts(tx.get("tokenTransactions")):
                _convert(token_tx, ("amount",), hex_to_ether)

    delegations = account.get("delegations")
    _convert(delegations, ("totalCount",), hex_to_decimal)
    for edge in _dicts((delegations or {}).get("edges")):
        delegation = edge.get("delegation")
        _convert(delegation, ("amount", "claimedReward"), hex_to_ether)
        if isinstance(delegation, dict):
            for reward in _dicts(delegation.get("pendingRewards")):
                _convert(reward, ("amount",), hex_to_ether)

    staker = account.get("staker")
    _convert(staker, ("createdTime", "totalCount"), hex_to_decimal)
    _convert(staker, ("totalValue", "totalRewards", "totalStaked", "totalUnstaked"), hex_to_ether)
    return account


async def get_all_tokens(url: str, address: str, *, transport: Optional[Transport] = None) -> Any:
    if not url or not isinstance(url, str):
        raise ValueError('"url" is a required string parameter.')
    if not address or not isinstance(address, str):
        raise ValueError('"address" is a required string parameter.')

    result = await _query(url, ACCOUNT_TOKENS_QUERY, {"address": address}, transport)
    account = (result.get("data") or {}).get("account") if isinstance(result, dict) else None
    if not account:
        return result
    for summary in _dicts(account.get("tokenSummaries")):
        _convert(summary, ("amount",), hex_to_ether)
    return account


__all__ = ["get_all_transactions", "get_all_tokens"]
