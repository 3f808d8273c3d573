"""Async JSON-RPC gateway for NCOG Earth Chain nodes."""
from .contract import Contract, ContractFactory
from .core.dispatcher import RpcDispatcher
from .core.errors import (
    ContractError,
    ConversionError,
    InvalidHexFormat,
    InvalidNumericValue,
    NecError,
    OverflowPrecision,
    ProviderMisconfigured,
    RpcError,
    SignerError,
    SubscriptionError,
    TransportError,
)
from .core.normalizer import FieldKind, ValueNormalizer, classify_field, normalize_from_wire, serialize_for_wire
from .core.transport import HttpTransport, NullTransport
from .core.units import (
    decimal_to_hex,
    decimal_to_wei,
    ether_to_wei_hex,
    format_units,
    hex_to_decimal,
    hex_to_ether,
    is_valid_address,
    parse_units,
)
from .explorer import get_all_tokens, get_all_transactions
from .provider import Provider
from .subscription import Subscription
from .wallet import ExtensionSigner, Signer, Wallet

__version__ = "0.1.0"

__all__ = [
    "Provider",
    "RpcDispatcher",
    "HttpTransport",
    "NullTransport",
    "ValueNormalizer",
    "FieldKind",
    "classify_field",
    "serialize_for_wire",
    "normalize_from_wire",
    "hex_to_decimal",
    "decimal_to_hex",
    "parse_units",
    "format_units",
    "hex_to_ether",
    "ether_to_wei_hex",
    "decimal_to_wei",
    "is_valid_address",
    "Wallet",
    "Signer",
    "ExtensionSigner",
    "Contract",
    "ContractFactory",
    "Subscription",
    "get_all_transactions",
    "get_all_tokens",
    "NecError",
    "ConversionError",
    "InvalidHexFormat",
    "InvalidNumericValue",
    "OverflowPrecision",
    "ProviderMisconfigured",
    "RpcError",
    "TransportError",
    "SignerError",
    "ContractError",
    "SubscriptionError",
]
