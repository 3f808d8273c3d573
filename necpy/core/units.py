"""Exact conversions between wire hex quantities and decimal amounts.

Everything here works on Python ints.  Floats are accepted as *input* for
human-entered amounts but only ever through their shortest ``repr`` text, so
``1.23`` means exactly ``1.23`` and never ``1.229999...``.  Amounts routinely
exceed 2**53 and must never be multiplied as floats.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from .errors import InvalidHexFormat, InvalidNumericValue, OverflowPrecision

HEX_QUANTITY_RE = re.compile(r"^0x[0-9a-f]*$")
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
DIGITS_RE = re.compile(r"^[0-9]+$")

DEFAULT_DECIMALS = 18
WEI_FACTOR = 10**DEFAULT_DECIMALS

DecimalValue = Union[int, str]


def _as_number(value: int) -> DecimalValue:
    """Return ``value`` as an int when it survives ``float()`` untouched."""

    try:
        if int(float(value)) == value:
            return value
    except OverflowError:
        pass
    return str(value)


def _parse_hex(raw: str, *, func: str) -> int:
    text = raw.strip().lower()
    if not text:
        raise InvalidHexFormat(f"{func}: hex string cannot be empty")
    normalized = text if text.startswith("0x") else f"0x{text}"
    if not HEX_QUANTITY_RE.fullmatch(normalized):
        raise InvalidHexFormat(f'{func}: invalid hex string "{raw}"')
    return int(normalized[2:] or "0", 16)


def hex_to_decimal(wire: Any) -> DecimalValue:
    """Reinterpret a wire hex quantity as a decimal value.

    The ``0x`` prefix is optional on input and ``"0x"`` alone means zero.  No
    scale is applied: the wire integer is always the base-unit quantity.
    """

    if not isinstance(wire, str):
        raise InvalidHexFormat(f"hex_to_decimal: expected a string, got {type(wire).__name__}")
    return _as_number(_parse_hex(wire, func="hex_to_decimal"))


def _to_integer(value: Any, *, func: str) -> int:
    if isinstance(value, bool):
        raise InvalidNumericValue(f"{func}: value cannot be boolean")
    if isinstance(value, int):
        out = value
    elif isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")) or not value.is_integer():
            raise InvalidNumericValue(f"{func}: {value!r} is not an integer")
        out = int(value)
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise InvalidNumericValue(f"{func}: {value} is not an integer")
        out = int(value)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.lower().startswith("0x"):
            return _parse_hex(raw, func=func)
        if DIGITS_RE.fullmatch(raw):
            return int(raw, 10)
        return _to_integer(_to_decimal(raw, func=func), func=func)
    else:
        raise InvalidNumericValue(f"{func}: unsupported type {type(value).__name__}")
    if out < 0:
        raise InvalidNumericValue(f"{func}: value must be non-negative")
    return out


def decimal_to_hex(value: Any) -> str:
    """Serialize an integer-valued number, digit string or Decimal to ``0x`` hex."""

    return hex(_to_integer(value, func="decimal_to_hex"))


def _to_decimal(value: Any, *, func: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidNumericValue(f"{func}: value cannot be boolean")
    if isinstance(value, Decimal):
        out = value
    elif isinstance(value, int):
        out = Decimal(value)
    elif isinstance(value, float):
        out = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            out = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidNumericValue(f'{func}: "{value}" is not a decimal number') from None
    else:
        raise InvalidNumericValue(f"{func}: unsupported type {type(value).__name__}")
    if not out.is_finite():
        raise InvalidNumericValue(f"{func}: {value!r} is not finite")
    if out < 0:
        raise InvalidNumericValue(f"{func}: value must be non-negative")
    return out


def parse_units(value: Any, scale: int = DEFAULT_DECIMALS) -> str:
    """Return the wire hex of ``value * 10**scale``.

    Inputs carrying more fractional digits than ``scale`` are refused with
    :class:`OverflowPrecision` instead of being truncated.
    """

    if isinstance(scale, bool) or not isinstance(scale, int) or scale < 0:
        raise InvalidNumericValue(f"parse_units: scale must be a non-negative int, got {scale!r}")
    amount = _to_decimal(value, func="parse_units")
    whole, _, frac = format(amount, "f").partition(".")
    frac = frac.rstrip("0")
    if len(frac) > scale:
        raise OverflowPrecision(
            f"parse_units: {value!r} has {len(frac)} fractional digits but scale is {scale}"
        )
    base = int(whole or "0") * 10**scale + int(frac.ljust(scale, "0") or "0")
    return hex(base)


def _to_base_units(value: Any) -> int:
    if isinstance(value, str) and not value.strip().lower().startswith("0x") and not DIGITS_RE.fullmatch(value.strip()):
        raise InvalidNumericValue(f'format_units: "{value}" is not a wire quantity')
    return _to_integer(value, func="format_units")


def format_units(value: Any, scale: int = DEFAULT_DECIMALS) -> str:
    """Render a base-unit quantity as ``"<int>"`` or ``"<int>.<frac>"``."""

    if isinstance(scale, bool) or not isinstance(scale, int) or scale < 0:
        raise InvalidNumericValue(f"format_units: scale must be a non-negative int, got {scale!r}")
    base = _to_base_units(value)
    whole, frac = divmod(base, 10**scale)
    if frac == 0:
        return str(whole)
    frac_str = f"{frac:0{scale}d}".rstrip("0")
    return f"{whole}.{frac_str}"


def hex_to_ether(wire: Any) -> str:
    return format_units(wire, DEFAULT_DECIMALS)


def ether_to_wei_hex(value: Any) -> str:
    return parse_units(value, DEFAULT_DECIMALS)


def decimal_to_wei(value: Any, decimals: int = DEFAULT_DECIMALS) -> str:
    """Whole-unit amount -> base-unit decimal string (``"1.5"`` -> ``"15000..."``)."""

    return str(int(parse_units(value, decimals), 16))


def is_valid_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.fullmatch(value))


__all__ = [
    "DEFAULT_DECIMALS",
    "WEI_FACTOR",
    "hex_to_decimal",
    "decimal_to_hex",
    "parse_units",
    "format_units",
    "hex_to_ether",
    "ether_to_wei_hex",
    "decimal_to_wei",
    "is_valid_address",
]
