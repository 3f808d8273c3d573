"""Exception taxonomy shared by the gateway layers."""
from __future__ import annotations

from typing import Any, Optional


class NecError(Exception):
    """Base class for every error raised by necpy."""


class ProviderMisconfigured(NecError):
    """No endpoint configured; raised before any network activity."""


class ConversionError(NecError, ValueError):
    """Malformed or lossy numeric input."""


class InvalidHexFormat(ConversionError):
    pass


class OverflowPrecision(ConversionError):
    pass


class InvalidNumericValue(ConversionError):
    pass


class RpcError(NecError):
    """The remote node rejected the call with a JSON-RPC ``error`` object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(f"RPC Error: {message} (code: {code})")

    @classmethod
    def from_payload(cls, error: Any) -> "RpcError":
        if isinstance(error, dict):
            return cls(str(error.get("message", "")), error.get("code"), error.get("data"))
        return cls(str(error))


class TransportError(NecError):
    """Network/connection failure; carries the failing method name."""

    def __init__(self, method: str, cause: BaseException):
        self.method = method
        self.cause = cause
        detail = str(cause) or cause.__class__.__name__
        super().__init__(f'RPC request failed for method "{method}": {detail}')


class SignerError(NecError):
    pass


class ContractError(NecError):
    pass


class SubscriptionError(NecError):
    pass


__all__ = [
    "NecError",
    "ProviderMisconfigured",
    "ConversionError",
    "InvalidHexFormat",
    "OverflowPrecision",
    "InvalidNumericValue",
    "RpcError",
    "TransportError",
    "SignerError",
    "ContractError",
    "SubscriptionError",
]
