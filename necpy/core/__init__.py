from .dispatcher import RpcDispatcher
from .errors import (
    ConversionError,
    InvalidHexFormat,
    InvalidNumericValue,
    NecError,
    OverflowPrecision,
    ProviderMisconfigured,
    RpcError,
    TransportError,
)
from .normalizer import FieldKind, ValueNormalizer, classify_field, normalize_from_wire, serialize_for_wire
from .transport import HttpTransport, NullTransport

__all__ = [
    "RpcDispatcher",
    "HttpTransport",
    "NullTransport",
    "ValueNormalizer",
    "FieldKind",
    "classify_field",
    "serialize_for_wire",
    "normalize_from_wire",
    "NecError",
    "ConversionError",
    "InvalidHexFormat",
    "InvalidNumericValue",
    "OverflowPrecision",
    "ProviderMisconfigured",
    "RpcError",
    "TransportError",
]
