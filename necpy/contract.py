"""Contract helpers on top of the ABI collaborator (eth_abi + web3 hashing).

The gateway only forwards encoded calldata and hands decoded outputs to the
value normalizer; type-level encoding is owned entirely by ``eth_abi``.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import Web3

from .core.errors import ContractError, NecError
from .provider import Provider

log = logging.getLogger(__name__)

DEFAULT_DEPLOY_GAS = 7_000_000
IDENTIFIER_ABI_TYPES = ("address", "bytes", "string")


def _canonical_type(param: Dict[str, Any]) -> str:
    typ = param["type"]
    if typ.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def _types(params: Sequence[Dict[str, Any]]) -> List[str]:
    return [_canonical_type(p) for p in params]


def find_function(abi: Sequence[Dict[str, Any]], name: str, arg_count: Optional[int] = None) -> Dict[str, Any]:
    candidates = [e for e in abi if e.get("type", "function") == "function" and e.get("name") == name]
    if arg_count is not None and len(candidates) > 1:
        candidates = [e for e in candidates if len(e.get("inputs", [])) == arg_count]
    if not candidates:
        raise ContractError(f"function {name!r} not found in ABI")
    return candidates[0]


def function_selector(entry: Dict[str, Any]) -> str:
    signature = f"{entry['name']}({','.join(_types(entry.get('inputs', [])))})"
    return bytes(Web3.keccak(text=signature))[:4].hex()


def encode_call(entry: Dict[str, Any], args: Sequence[Any]) -> str:
    encoded = abi_encode(_types(entry.get("inputs", [])), list(args))
    return "0x" + function_selector(entry) + encoded.hex()


def encode_deploy(abi: Sequence[Dict[str, Any]], bytecode: str, args: Sequence[Any]) -> str:
    code = bytecode if bytecode.startswith("0x") else "0x" + bytecode
    if not args:
        return code
    ctor = next((e for e in abi if e.get("type") == "constructor"), {"inputs": []})
    return code + abi_encode(_types(ctor.get("inputs", [])), list(args)).hex()


def decode_output(entry: Dict[str, Any], data: str) -> tuple:
    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    return abi_decode(_types(entry.get("outputs", [])), raw)


def _wire_value(value: Any) -> Any:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (list, tuple)):
        return [_wire_value(v) for v in value]
    return value


class Contract:
    """A deployed contract reachable through a :class:`Provider`."""

    def __init__(self, address: str, abi: Sequence[Dict[str, Any]], provider: Provider, signer: Any = None):
        self.address = address
        self.abi = list(abi)
        self.provider = provider
        self.signer = signer
        self.deploy_transaction_hash: Optional[str] = None

    async def call(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Run a view/pure function; single outputs are returned unwrapped."""

        entry = find_function(self.abi, method, len(params))
        result = await self.provider.call({"to": self.address, "data": encode_call(entry, params)}, "latest")
        # An empty "0x" reply normalizes to 0: a function without outputs.
        if not isinstance(result, str) or result == "0x":
            return []

        outputs = entry.get("outputs", [])
        names = [o.get("name") or f"output{i}" for i, o in enumerate(outputs)]
        identifiers = [
            name for name, o in zip(names, outputs) if o.get("type", "").startswith(IDENTIFIER_ABI_TYPES)
        ]
        decoded = {name: _wire_value(v) for name, v in zip(names, decode_output(entry, result))}
        normalized = self.provider.normalizer.with_identifiers(identifiers).normalize_from_wire(decoded)
        values = [normalized[name] for name in names]
        return values[0] if len(values) == 1 else values

    async def send(
        self,
        method: str,
        params: Sequence[Any],
        signer: Any = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a state-changing call through ``signer``; returns the tx hash."""

        signer = signer or self.signer
        if signer is None:
            raise ContractError("no signer available to send the transaction")
        entry = find_function(self.abi, method, len(params))
        tx = {"to": self.address, "data": encode_call(entry, params), "value": "0x0", **(overrides or {})}
        if not tx.get("gasLimit") or not tx.get("gasPrice") or not tx.get("chainId"):
            raise ContractError(
                "Missing required transaction fields: gasLimit, gasPrice, and chainId must be provided in overrides."
            )
        return await signer.send_transaction(tx)


class ContractFactory:
    def __init__(self, abi: Sequence[Dict[str, Any]], bytecode: str, provider: Provider, signer: Any = None):
        self.abi = list(abi)
        self.bytecode = bytecode
        self.provider = provider
        self.signer = signer

    def attach(self, address: str) -> Contract:
        return Contract(address, self.abi, self.provider, self.signer)

    async def deploy(self, constructor_args: Sequence[Any] = (), options: Optional[Dict[str, Any]] = None) -> Contract:
        """Deploy the bytecode and wait for the receipt's ``contractAddress``.

        ``options`` may carry ``from`` (a node-managed account used when no
        signer is set), ``nonce``, ``gasPrice``, ``gasLimit``, ``value``,
        ``chainId``, ``poll_interval`` and ``timeout``.
        """

        options = dict(options or {})
        deployer: Union[str, Any, None] = self.signer or options.get("from")
        if not deployer:
            raise ContractError("No deployer (signer or from address) specified")
        sender = deployer if isinstance(deployer, str) else await deployer.get_address()

        data = encode_deploy(self.abi, self.bytecode, constructor_args)
        nonce = options.get("nonce")
        if nonce is None:
            nonce = await self.provider.get_transaction_count(sender)
        gas_price = options.get("gasPrice") or await self.provider.get_gas_price()
        gas_limit = options.get("gasLimit") or await self._estimate_deploy_gas(sender, data)

        if isinstance(deployer, str):
            tx_hash = await self.provider.send_transaction(
                {"from": sender, "data": data, "nonce": nonce, "gasPrice": gas_price, "gas": gas_limit}
            )
        else:
            tx = {"data": data, "nonce": nonce, "gasPrice": gas_price, "gasLimit": gas_limit, "value": options.get("value", "0x0")}
            if options.get("chainId"):
                tx["chainId"] = options["chainId"]
            tx_hash = await deployer.send_transaction(tx)
        log.info("[deploy] sent tx=%s from=%s gas_limit=%s", tx_hash, sender, gas_limit)

        receipt = await self._wait_for_receipt(
            tx_hash, float(options.get("poll_interval", 1.0)), float(options.get("timeout", 120.0))
        )
        contract = self.attach(receipt["contractAddress"])
        contract.deploy_transaction_hash = tx_hash
        return contract

    async def _estimate_deploy_gas(self, sender: str, data: str) -> int:
        try:
            estimate = await self.provider.estimate_gas({"from": sender, "data": data})
            return int(estimate) * 6 // 5
        except (NecError, ValueError, TypeError) as err:
            log.warning("[deploy] gas estimation failed, using %d: %s", DEFAULT_DEPLOY_GAS, err)
            return DEFAULT_DEPLOY_GAS

    async def _wait_for_receipt(self, tx_hash: str, poll_interval: float, timeout: float) -> Dict[str, Any]:
        deadline = time.monotonic() + timeout
        while True:
            receipt = await self.provider.get_transaction_receipt(tx_hash)
            if isinstance(receipt, dict) and receipt.get("contractAddress"):
                return receipt
            if time.monotonic() >= deadline:
                raise ContractError(f"no contract address for deployment tx {tx_hash} after {timeout:.0f}s")
            await asyncio.sleep(poll_interval)


__all__ = [
    "Contract",
    "ContractFactory",
    "find_function",
    "function_selector",
    "encode_call",
    "encode_deploy",
    "decode_output",
]
