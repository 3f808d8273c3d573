"""Typed call surface over :class:`necpy.core.RpcDispatcher`.

Each method is a thin mapping to one JSON-RPC method with known positional
parameters.  Transaction-like dict arguments are serialized with the
provider's normalizer before dispatch; results come back normalized.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from web3 import Web3

from .core.dispatcher import BatchItem, RequestMiddleware, ResponseMiddleware, RpcDispatcher
from .core.errors import NecError, RpcError
from .core.normalizer import ValueNormalizer
from .core.transport import HttpTransport, Transport
from .core.units import DEFAULT_DECIMALS, format_units

log = logging.getLogger(__name__)

ENS_REGISTRY = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"
ENS_RESOLVER_SELECTOR = "0x0178b8bf"  # resolver(bytes32)
ENS_ADDR_SELECTOR = "0x3b3b57de"  # addr(bytes32)


def ens_namehash(name: str) -> str:
    normalized = name.strip().lower().strip(".")
    if not normalized:
        raise ValueError("ens_namehash: name cannot be empty")
    labels = normalized.split(".")
    if any(not label for label in labels):
        raise ValueError("ens_namehash: name has empty labels")
    node = b"\x00" * 32
    for label in reversed(labels):
        node = bytes(Web3.keccak(node + bytes(Web3.keccak(text=label))))
    return "0x" + node.hex()


def _block_tag(tag: Any) -> Any:
    if isinstance(tag, int) and not isinstance(tag, bool):
        return hex(tag)
    return tag


def _word_to_address(word: Any) -> Optional[str]:
    """Last 20 bytes of a 32-byte ``eth_call`` word, or None when empty/zero."""

    if not isinstance(word, str) or len(word) < 42:
        return None
    if int(word, 16) == 0:
        return None
    return ("0x" + word[-40:]).lower()


class Provider:
    """High-level client for a node's JSON-RPC endpoint.

    Usage::

        provider = Provider("http://localhost:8545")
        height = await provider.get_block_number()
        balance = await provider.get_balance("0x...")   # "1.5"
    """

    def __init__(
        self,
        url: Optional[str],
        *,
        transport: Optional[Transport] = None,
        native_decimals: int = DEFAULT_DECIMALS,
        token_decimals: int = DEFAULT_DECIMALS,
        identifier_fields: Iterable[str] = (),
    ) -> None:
        self.normalizer = ValueNormalizer(native_decimals, token_decimals, identifier_fields)
        self.dispatcher = RpcDispatcher(url, transport=transport, normalizer=self.normalizer)

    @classmethod
    def from_config(cls, config: Dict[str, Any], *, transport: Optional[Transport] = None) -> "Provider":
        timeout = float(config.get("timeout_seconds", 10.0))
        return cls(
            config.get("rpc_url"),
            transport=transport or HttpTransport(timeout=timeout),
            native_decimals=int(config.get("native_decimals", DEFAULT_DECIMALS)),
            token_decimals=int(config.get("token_decimals", DEFAULT_DECIMALS)),
            identifier_fields=config.get("identifier_fields") or (),
        )

    @property
    def url(self) -> Optional[str]:
        return self.dispatcher.url

    # ------------------------------------------------------------------
    # Dispatch plumbing
    # ------------------------------------------------------------------
    def use_request(self, middleware: RequestMiddleware) -> None:
        self.dispatcher.use_request(middleware)

    def use_response(self, middleware: ResponseMiddleware) -> None:
        self.dispatcher.use_response(middleware)

    async def _rpc(self, method: str, params: Optional[List[Any]] = None) -> Any:
        return await self.dispatcher.call(method, params or [])

    def _serialize(self, tx: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return self.normalizer.serialize_for_wire(tx)

    async def call_rpc(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Any RPC method; dict params are serialized for the wire first."""

        serialized = [self._serialize(p) if isinstance(p, dict) else p for p in (params or [])]
        return await self._rpc(method, serialized)

    async def batch_call(self, calls: Sequence[BatchItem]) -> List[Any]:
        return await self.dispatcher.batch_call(calls)

    # --- web3 / net ----------------------------------------------------
    async def client_version(self) -> Any:
        return await self._rpc("web3_clientVersion")

    async def net_version(self) -> Any:
        return await self._rpc("net_version")

    async def listening(self) -> Any:
        return await self._rpc("net_listening")

    async def peer_count(self) -> Any:
        return await self._rpc("net_peerCount")

    # --- eth -----------------------------------------------------------
    async def protocol_version(self) -> Any:
        return await self._rpc("eth_protocolVersion")

    async def syncing(self) -> Any:
        return await self._rpc("eth_syncing")

    async def coinbase(self) -> Any:
        return await self._rpc("eth_coinbase")

    async def hashrate(self) -> Any:
        return await self._rpc("eth_hashrate")

    async def get_chain_id(self) -> Any:
        return await self._rpc("eth_chainId")

    async def get_gas_price(self) -> Any:
        """Current gas price in base units."""
        return await self._rpc("eth_gasPrice")

    async def accounts(self) -> Any:
        return await self._rpc("eth_accounts")

    async def get_block_number(self) -> Any:
        return await self._rpc("eth_blockNumber")

    async def get_balance(self, address: str, tag: Any = "latest") -> str:
        """Balance of ``address`` in whole native units, as a decimal string."""

        raw = await self._rpc("eth_getBalance", [address, _block_tag(tag)])
        if raw in (None, "", {}):
            raise RpcError(f"eth_getBalance returned no balance for {address}")
        return format_units(raw, self.normalizer.native_scale)

    async def get_storage_at(self, address: str, position: str, tag: Any = "latest") -> Any:
        return await self._rpc("eth_getStorageAt", [address, position, _block_tag(tag)])

    async def get_transaction_count(self, address: str, tag: Any = "latest") -> Any:
        return await self._rpc("eth_getTransactionCount", [address, _block_tag(tag)])

    async def get_block_transaction_count_by_number(self, tag: Any) -> Any:
        return await self._rpc("eth_getBlockTransactionCountByNumber", [_block_tag(tag)])

    async def get_code(self, address: str, tag: Any = "latest") -> Any:
        return await self._rpc("eth_getCode", [address, _block_tag(tag)])

    async def get_block_by_number(self, tag: Any, full: bool = False) -> Any:
        return await self._rpc("eth_getBlockByNumber", [_block_tag(tag), full])

    async def get_block_by_hash(self, block_hash: str, full: bool = False) -> Any:
        return await self._rpc("eth_getBlockByHash", [block_hash, full])

    async def sign(self, address: str, data: str) -> Any:
        return await self._rpc("eth_sign", [address, data])

    async def sign_transaction(self, tx: Dict[str, Any]) -> Any:
        """Ask the node to sign ``tx`` with an unlocked account."""
        return await self._rpc("eth_signTransaction", [self._serialize(tx)])

    async def send_transaction(self, tx: Dict[str, Any]) -> Any:
        return await self._rpc("eth_sendTransaction", [self._serialize(tx)])

    async def send_raw_transaction(self, signed_tx: str) -> Any:
        # The signed blob is opaque and goes out exactly as given.
        return await self._rpc("eth_sendRawTransaction", [signed_tx])

    async def call(self, tx: Dict[str, Any], tag: Any = "latest") -> Any:
        """Read-only ``eth_call``."""
        return await self._rpc("eth_call", [self._serialize(tx), _block_tag(tag)])

    async def estimate_gas(self, tx: Dict[str, Any]) -> Any:
        return await self._rpc("eth_estimateGas", [self._serialize(tx)])

    async def get_transaction_by_hash(self, tx_hash: str) -> Any:
        return await self._rpc("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> Any:
        return await self._rpc("eth_getTransactionReceipt", [tx_hash])

    async def get_logs(self, log_filter: Dict[str, Any]) -> Any:
        return await self._rpc("eth_getLogs", [log_filter])

    # --- mining --------------------------------------------------------
    async def submit_work(self, nonce: str, pow_hash: str, mix_digest: str) -> Any:
        return await self._rpc("eth_submitWork", [nonce, pow_hash, mix_digest])

    async def get_work(self) -> Any:
        return await self._rpc("eth_getWork")

    # --- personal ------------------------------------------------------
    async def new_account(self, password: str) -> Any:
        return await self._rpc("personal_newAccount", [password])

    async def import_raw_key(self, private_key: str, password: str) -> Any:
        return await self._rpc("personal_importRawKey", [private_key, password])

    async def personal_sign(self, data: str, address: str, password: str) -> Any:
        return await self._rpc("personal_sign", [data, address, password])

    async def ec_recover(self, data: str, signature: str) -> Any:
        return await self._rpc("personal_ecRecover", [data, signature])

    async def unlock_account(self, address: str, password: str, duration: Optional[int] = None) -> Any:
        return await self._rpc("personal_unlockAccount", [address, password, duration])

    async def lock_account(self, address: str) -> Any:
        return await self._rpc("personal_lockAccount", [address])

    async def send_personal_transaction(self, tx: Dict[str, Any], password: str) -> Any:
        return await self._rpc("personal_sendTransaction", [self._serialize(tx), password])

    # --- ENS -----------------------------------------------------------
    async def resolve_ens_name(self, ens_name: str, registry_address: str = ENS_REGISTRY) -> Optional[str]:
        """Resolve ``ens_name`` through the registry; None when unresolvable."""

        try:
            node = ens_namehash(ens_name)[2:]
            resolver = _word_to_address(await self.call({"to": registry_address, "data": ENS_RESOLVER_SELECTOR + node}))
            if resolver is None:
                return None
            return _word_to_address(await self.call({"to": resolver, "data": ENS_ADDR_SELECTOR + node}))
        except (NecError, ValueError) as err:
            log.debug("[ens] resolve failed name=%s err=%s", ens_name, err)
            return None


__all__ = ["Provider", "ENS_REGISTRY", "ens_namehash"]
