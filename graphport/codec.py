"""Encoding and decoding of single scalar attribute values.

Each `AttributeKind` has one encoder (Python value -> JSON value) and one
decoder (JSON value -> Python value). Both raise `FieldDecodeError` when the
value does not have the shape its kind demands; callers decide whether that
is fatal. The importer never treats it as fatal: the field stays unset and
the rest of the record is decoded.

Dates use the fixed wire format ``yyyy-MM-dd'T'HH:mm:ssZ`` (seconds
precision, numeric UTC offset). Decoded dates are always timezone-aware.

Decimals are written as JSON numbers when a double holds them exactly and as
numeric strings otherwise.

Binary values are not encoded here; see `graphport.blobs`.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from urllib.parse import urlsplit

from pydantic import JsonValue

from graphschema.attribute import AttributeKind

from graphport.errors import FieldDecodeError

DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _expect(value: Any, types: type | tuple[type, ...], kind: AttributeKind) -> None:
    # bool is an int subclass; it is only acceptable where bool is asked for
    if isinstance(value, bool) and bool not in (types if isinstance(types, tuple) else (types,)):
        raise FieldDecodeError(f"expected {kind.value}, got bool")
    if not isinstance(value, types):
        raise FieldDecodeError(f"expected {kind.value}, got {type(value).__name__}")


def _encode_bool(value: Any) -> JsonValue:
    _expect(value, bool, AttributeKind.BOOL)
    return value


def _encode_string(value: Any) -> JsonValue:
    _expect(value, str, AttributeKind.STRING)
    return value


def _encode_integer(value: Any) -> JsonValue:
    _expect(value, int, AttributeKind.INTEGER)
    return value


def _encode_float(value: Any) -> JsonValue:
    _expect(value, (int, float), AttributeKind.FLOAT)
    return float(value)


def _encode_decimal(value: Any) -> JsonValue:
    _expect(value, (Decimal, int, float), AttributeKind.DECIMAL)
    number = Decimal(value) if not isinstance(value, Decimal) else value
    if not number.is_finite():
        raise FieldDecodeError(f"decimal value is not finite: {value}")
    if number == number.to_integral_value():
        return int(number)
    approximation = float(number)
    if Decimal(repr(approximation)) == number:
        return approximation
    # beyond double precision; the decoder accepts numeric strings
    return str(number)


def _encode_uuid(value: Any) -> JsonValue:
    _expect(value, uuid.UUID, AttributeKind.UUID)
    return str(value).upper()


def _encode_uri(value: Any) -> JsonValue:
    _expect(value, str, AttributeKind.URI)
    if not urlsplit(value).scheme:
        raise FieldDecodeError(f"uri is not absolute: {value!r}")
    return value


def _encode_date(value: Any) -> JsonValue:
    _expect(value, datetime, AttributeKind.DATE)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime(DATE_FORMAT)


def _encode_binary(value: Any) -> JsonValue:
    raise FieldDecodeError("binary attributes are externalized by the blob store")


def _decode_bool(value: JsonValue) -> Any:
    _expect(value, bool, AttributeKind.BOOL)
    return value


def _decode_string(value: JsonValue) -> Any:
    _expect(value, str, AttributeKind.STRING)
    return value


def _decode_integer(value: JsonValue) -> Any:
    _expect(value, int, AttributeKind.INTEGER)
    return value


def _decode_float(value: JsonValue) -> Any:
    _expect(value, (int, float), AttributeKind.FLOAT)
    return float(value)  # type: ignore[arg-type]


def _decode_decimal(value: JsonValue) -> Any:
    _expect(value, (int, float, str), AttributeKind.DECIMAL)
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise FieldDecodeError(f"not a decimal: {value!r}") from exc
    if not number.is_finite():
        raise FieldDecodeError(f"decimal value is not finite: {value!r}")
    return number


def _decode_uuid(value: JsonValue) -> Any:
    _expect(value, str, AttributeKind.UUID)
    try:
        return uuid.UUID(value)  # type: ignore[arg-type]
    except ValueError as exc:
        raise FieldDecodeError(f"not a uuid: {value!r}") from exc


def _decode_uri(value: JsonValue) -> Any:
    _expect(value, str, AttributeKind.URI)
    try:
        parts = urlsplit(value)  # type: ignore[arg-type]
    except ValueError as exc:
        raise FieldDecodeError(f"not a uri: {value!r}") from exc
    if not parts.scheme:
        raise FieldDecodeError(f"uri is not absolute: {value!r}")
    return value


def _decode_date(value: JsonValue) -> Any:
    _expect(value, str, AttributeKind.DATE)
    try:
        return datetime.strptime(value, DATE_FORMAT)  # type: ignore[arg-type]
    except ValueError as exc:
        raise FieldDecodeError(f"not a date in {DATE_FORMAT!r}: {value!r}") from exc


def _decode_binary(value: JsonValue) -> Any:
    raise FieldDecodeError("binary attributes are resolved by the blob store")


ENCODERS: dict[AttributeKind, Callable[[Any], JsonValue]] = {
    AttributeKind.BOOL: _encode_bool,
    AttributeKind.STRING: _encode_string,
    AttributeKind.INTEGER: _encode_integer,
    AttributeKind.FLOAT: _encode_float,
    AttributeKind.DECIMAL: _encode_decimal,
    AttributeKind.UUID: _encode_uuid,
    AttributeKind.URI: _encode_uri,
    AttributeKind.DATE: _encode_date,
    AttributeKind.BINARY: _encode_binary,
}

DECODERS: dict[AttributeKind, Callable[[JsonValue], Any]] = {
    AttributeKind.BOOL: _decode_bool,
    AttributeKind.STRING: _decode_string,
    AttributeKind.INTEGER: _decode_integer,
    AttributeKind.FLOAT: _decode_float,
    AttributeKind.DECIMAL: _decode_decimal,
    AttributeKind.UUID: _decode_uuid,
    AttributeKind.URI: _decode_uri,
    AttributeKind.DATE: _decode_date,
    AttributeKind.BINARY: _decode_binary,
}

_missing = set(AttributeKind) - set(ENCODERS) | set(AttributeKind) - set(DECODERS)
if _missing:
    raise ImportError(f"attribute kinds without a codec: {sorted(k.value for k in _missing)}")


def encode_attribute(value: Any, kind: AttributeKind) -> JsonValue:
    """Encode `value` of attribute kind `kind` as a JSON-safe value.

    Raises:
        FieldDecodeError: If `value` is not of the Python type `kind` expects,
            or `kind` is BINARY.
    """
    return ENCODERS[kind](value)


def decode_attribute(value: JsonValue, kind: AttributeKind) -> Any:
    """Decode a JSON value into the Python value for attribute kind `kind`.

    Dates always decode to timezone-aware datetimes, since the wire format
    carries an offset. A naive datetime exported as UTC therefore comes back
    as the same instant with ``tzinfo=timezone.utc``.

    Raises:
        FieldDecodeError: If the JSON shape does not match `kind`, a
            uuid/uri/date string does not parse, or `kind` is BINARY.
    """
    return DECODERS[kind](value)
