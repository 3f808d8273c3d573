"""Wallets and signers over an opaque signing backend.

Key material never leaves the backend: the gateway hands it a transaction
payload and the private key and receives a wire-ready signed blob
(``{"raw": ...}`` or ``{"rawTransaction": ...}``) that is broadcast as-is.
"""
from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from .core.errors import NecError, SignerError
from .provider import Provider

log = logging.getLogger(__name__)

REQUIRED_TX_FIELDS = ("gasLimit", "gasPrice", "nonce", "to")


class SigningBackend(Protocol):
    def private_key_to_address(self, private_key: str) -> str:  # pragma: no cover - protocol
        ...

    def sign(self, payload: Dict[str, Any], private_key: str) -> Any:  # pragma: no cover - protocol
        ...

    def decode(self, raw: str) -> Any:  # pragma: no cover - protocol
        ...


class InjectedProvider(Protocol):
    async def request(self, args: Dict[str, Any]) -> Any:  # pragma: no cover - protocol
        ...


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Wallet:
    def __init__(self, backend: SigningBackend, private_key: str):
        self.backend = backend
        self.private_key = private_key
        self.address: str = backend.private_key_to_address(private_key)

    def connect(self, provider: Provider) -> "Signer":
        return Signer(provider, self)

    @classmethod
    def connect_url(cls, private_key: str, url: str, backend: SigningBackend) -> Tuple["Signer", Provider, str]:
        """Build wallet, provider and signer in one go."""

        wallet = cls(backend, private_key)
        provider = Provider(url)
        return wallet.connect(provider), provider, wallet.address


class Signer:
    def __init__(self, provider: Provider, wallet: Wallet):
        self.provider = provider
        self.wallet = wallet

    @property
    def address(self) -> str:
        return self.wallet.address

    async def get_address(self) -> str:
        return self.wallet.address

    async def send_transaction(self, tx_params: Dict[str, Any]) -> Any:
        """Sign ``tx_params`` locally and broadcast the raw blob; returns the tx hash."""

        tx = dict(tx_params)
        if not tx.get("chainId"):
            tx["chainId"] = await self.provider.get_chain_id()
        missing = [name for name in REQUIRED_TX_FIELDS if tx.get(name) in (None, "")]
        if "to" in missing and tx.get("data"):
            # Contract creation carries no recipient.
            missing.remove("to")
        if missing:
            raise SignerError(f"Missing required transaction parameters: {', '.join(missing)}")

        signed = await _resolve(self.wallet.backend.sign(tx, self.wallet.private_key))
        if not isinstance(signed, dict) or not (signed.get("raw") or signed.get("rawTransaction")):
            raise SignerError(f"sign failed: {json.dumps(signed, default=str)}")
        raw = signed.get("raw") or signed.get("rawTransaction")
        log.info("[wallet] broadcasting tx from=%s to=%s nonce=%s", self.address, tx.get("to"), tx["nonce"])
        return await self.provider.send_raw_transaction(raw)

    async def decode(self, raw_signed: str) -> Any:
        response = await _resolve(self.wallet.backend.decode(raw_signed))
        if isinstance(response, dict) and response.get("error"):
            raise SignerError(f"decode failed: {json.dumps(response['error'], default=str)}")
        return response


class ExtensionSigner:
    """Signer that defers to an injected wallet (e.g. a browser extension bridge)."""

    def __init__(self, injected: InjectedProvider, provider: Provider):
        self.injected = injected
        self.provider = provider

    async def get_address(self) -> str:
        accounts = await self.injected.request({"method": "ncog_accounts"})
        selected = accounts.get("selectedAccount") if isinstance(accounts, dict) else None
        address = selected.get("accountAddress") if isinstance(selected, dict) else None
        if not address:
            raise SignerError("No account found. Please connect your wallet.")
        return address

    def on(self, event: str, listener: Callable[..., Any]) -> None:
        subscribe = getattr(self.injected, "on", None)
        if subscribe is None:
            log.warning("[wallet] injected provider does not support event listening via .on()")
            return
        subscribe(event, listener)

    async def send_transaction(self, tx: Dict[str, Any]) -> Any:
        sender = await self.get_address()
        chain_id = tx.get("chainId") or await self.provider.get_chain_id()
        params = {
            "from": sender,
            "to": tx.get("to"),
            "value": tx.get("value"),
            "data": tx.get("data"),
            "gas": tx.get("gasLimit"),
            "gasPrice": tx.get("gasPrice"),
            "chainId": chain_id,
        }
        try:
            response = await self.injected.request({"method": "nec_sendTransaction", "params": [params]})
        except NecError:
            raise
        except Exception as err:
            raise SignerError(f"extension sendTransaction failed: {err}") from err
        result: Optional[Any] = response.get("result", response) if isinstance(response, dict) else response
        return self.provider.normalizer.normalize_from_wire(result)


__all__ = ["SigningBackend", "InjectedProvider", "Wallet", "Signer", "ExtensionSigner"]
