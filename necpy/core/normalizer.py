"""Field-name driven conversion of request and response payloads.

Outbound transaction-like objects are flat: every numeric field is turned
into wire hex, scaling the native ``value`` field and any amount/balance-like
field from whole units to base units.  Inbound responses are walked
recursively and hex quantities are rendered as decimal *without* rescaling:
requests carry human-entered amounts, responses carry ledger-native
quantities.  The two directions are deliberately not inverses.

Identifier fields (addresses, hashes, calldata) are opaque and are never
numerically reinterpreted in either direction.
"""
from __future__ import annotations

import enum
import re
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, Optional

from .units import DEFAULT_DECIMALS, decimal_to_hex, format_units, hex_to_decimal, parse_units

IDENTIFIER_FIELDS: FrozenSet[str] = frozenset(
    {
        "address",
        "hash",
        "from",
        "to",
        "transactionHash",
        "blockHash",
        "contractAddress",
        "parentHash",
        "sha3Uncles",
        "miner",
        "coinbase",
        "stateRoot",
        "transactionsRoot",
        "receiptsRoot",
        "logsBloom",
        "mixHash",
        "extraData",
        "input",
        "data",
        "topics",
        "r",
        "s",
        "raw",
        "creates",
        "publicKey",
        "signature",
        "root",
        "withdrawalsRoot",
        "parentBeaconBlockRoot",
    }
)

NATIVE_VALUE_FIELD = "value"
SCALED_FIELD_RE = re.compile(r"amount|balance", re.IGNORECASE)
NUMERIC_STR_RE = re.compile(r"^[0-9]+(\.[0-9]+)?$")
HEX_PREFIXED_RE = re.compile(r"^0x[0-9a-fA-F]*$")
LONG_HEX_RE = re.compile(r"^0x[0-9a-fA-F]{40,}$")


class FieldKind(enum.Enum):
    IDENTIFIER = "identifier"
    NATIVE_VALUE = "native_value"
    SCALED_AMOUNT = "scaled_amount"
    PLAIN_INTEGER = "plain_integer"


def classify_field(name: str, identifiers: Iterable[str] = IDENTIFIER_FIELDS) -> FieldKind:
    """Classify a payload key; identifiers win over every numeric rule."""

    if name in identifiers:
        return FieldKind.IDENTIFIER
    if name == NATIVE_VALUE_FIELD:
        return FieldKind.NATIVE_VALUE
    if SCALED_FIELD_RE.search(name):
        return FieldKind.SCALED_AMOUNT
    return FieldKind.PLAIN_INTEGER


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    return isinstance(value, str) and bool(NUMERIC_STR_RE.fullmatch(value))


class ValueNormalizer:
    """Applies unit conversion to payloads according to field classification."""

    def __init__(
        self,
        native_scale: int = DEFAULT_DECIMALS,
        token_scale: int = DEFAULT_DECIMALS,
        extra_identifiers: Iterable[str] = (),
    ) -> None:
        self.native_scale = native_scale
        self.token_scale = token_scale
        self.identifiers: FrozenSet[str] = IDENTIFIER_FIELDS | frozenset(extra_identifiers)

    def classify(self, name: str) -> FieldKind:
        return classify_field(name, self.identifiers)

    def with_identifiers(self, names: Iterable[str]) -> "ValueNormalizer":
        """Copy of this normalizer with additional identifier field names."""

        return ValueNormalizer(self.native_scale, self.token_scale, self.identifiers | frozenset(names))

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    def serialize_for_wire(self, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, val in (payload or {}).items():
            if not _is_numeric(val):
                out[key] = val
                continue
            kind = self.classify(key)
            if kind is FieldKind.IDENTIFIER:
                out[key] = val
            elif kind is FieldKind.NATIVE_VALUE:
                out[key] = parse_units(val, self.native_scale)
            elif kind is FieldKind.SCALED_AMOUNT:
                out[key] = parse_units(val, self.token_scale)
            else:
                out[key] = decimal_to_hex(val)
        return out

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------
    def normalize_from_wire(self, response: Any) -> Any:
        if response is None:
            return {}
        if isinstance(response, str):
            if LONG_HEX_RE.fullmatch(response) or not response[:2].lower() == "0x":
                return response
            return hex_to_decimal(response)
        if isinstance(response, list):
            return self._normalize_list(response)
        if isinstance(response, dict):
            return self._normalize_dict(response)
        return response

    def _normalize_list(self, items: list) -> list:
        return [self._normalize_nested(item) for item in items]

    def _normalize_nested(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self._normalize_dict(value)
        if isinstance(value, list):
            return self._normalize_list(value)
        return value

    def _normalize_dict(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, val in obj.items():
            if key in self.identifiers:
                out[key] = val
            elif isinstance(val, str) and HEX_PREFIXED_RE.fullmatch(val):
                out[key] = format_units(val, 0)
            else:
                out[key] = self._normalize_nested(val)
        return out


_default = ValueNormalizer()


def serialize_for_wire(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return _default.serialize_for_wire(payload)


def normalize_from_wire(response: Any) -> Any:
    return _default.normalize_from_wire(response)


__all__ = [
    "IDENTIFIER_FIELDS",
    "FieldKind",
    "classify_field",
    "ValueNormalizer",
    "serialize_for_wire",
    "normalize_from_wire",
]
