"""Conversion of native arrow values into Iceberg primitive values."""

from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Any, Callable

from icelake.arrow_types import ArrowDataType, ArrowTypeId, TimeUnit
from icelake.types import ErrorKind, IcelakeError, PrimitiveKind, PrimitiveValue

_EPOCH = _dt.datetime(1970, 1, 1)
_MAX_DECIMAL_SCALE = 28
_MAX_DECIMAL_MANTISSA = 1 << 96

# The native representation arrow uses for each data type.
_NATIVE = {
    ArrowTypeId.INT8: "i8",
    ArrowTypeId.INT16: "i16",
    ArrowTypeId.INT32: "i32",
    ArrowTypeId.DATE32: "i32",
    ArrowTypeId.TIME32: "i32",
    ArrowTypeId.INT64: "i64",
    ArrowTypeId.DATE64: "i64",
    ArrowTypeId.TIME64: "i64",
    ArrowTypeId.TIMESTAMP: "i64",
    ArrowTypeId.DURATION: "i64",
    ArrowTypeId.DECIMAL128: "i128",
    ArrowTypeId.UINT8: "u8",
    ArrowTypeId.UINT16: "u16",
    ArrowTypeId.UINT32: "u32",
    ArrowTypeId.UINT64: "u64",
    ArrowTypeId.FLOAT32: "f32",
    ArrowTypeId.FLOAT64: "f64",
}


def _error(native: str, data_type: ArrowDataType, detail: str = "") -> IcelakeError:
    message = f"Cannot convert {native} to {data_type}"
    if detail:
        message += f": {detail}"
    return IcelakeError(ErrorKind.DATA_TYPE_UNSUPPORTED, message)


def _check_native(native: str, value: Any) -> None:
    if native.startswith("f"):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{native} value must be a number, got {type(value).__name__}")
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{native} value must be int, got {type(value).__name__}")
    bits = int(native[1:])
    if native.startswith("u"):
        low, high = 0, (1 << bits) - 1
    else:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= value <= high:
        raise ValueError(f"{value} out of range for {native}")


def _small_int(native: str) -> Callable[[int, ArrowDataType], PrimitiveValue]:
    expected = {"i8": ArrowTypeId.INT8, "i16": ArrowTypeId.INT16}[native]

    def convert(value: int, data_type: ArrowDataType) -> PrimitiveValue:
        if data_type.type_id is expected:
            return PrimitiveValue(PrimitiveKind.INT, value)
        raise _error(native, data_type)

    return convert


def _from_i32(value: int, data_type: ArrowDataType) -> PrimitiveValue:
    tid = data_type.type_id
    if tid is ArrowTypeId.INT32:
        return PrimitiveValue(PrimitiveKind.INT, value)
    if tid is ArrowTypeId.DATE32:
        # Days counted from the common era, 0001-01-01 being day 1.
        try:
            day = _dt.date.fromordinal(value)
        except (ValueError, OverflowError):
            raise _error("i32", data_type, "day out of range ") from None
        return PrimitiveValue(PrimitiveKind.DATE, day)
    if tid is ArrowTypeId.TIME32:
        return PrimitiveValue(PrimitiveKind.TIME, _time_of_day(value, data_type))
    raise _error("i32", data_type)


def _time_of_day(value: int, data_type: ArrowDataType) -> _dt.time:
    unit = data_type.unit
    limits = {
        TimeUnit.SECOND: ("second", 60),
        TimeUnit.MILLISECOND: ("millisecond", 1_000),
        TimeUnit.MICROSECOND: ("microsecond", 1_000_000),
        TimeUnit.NANOSECOND: ("nanosecond", 1_000_000_000),
    }
    name, limit = limits[unit]
    if not 0 <= value < limit:
        raise _error("i32", data_type, f"{name} out of range ")
    if unit is TimeUnit.SECOND:
        return _dt.time(0, 0, value)
    if unit is TimeUnit.MILLISECOND:
        return _dt.time(0, 0, 0, value * 1_000)
    if unit is TimeUnit.MICROSECOND:
        return _dt.time(0, 0, 0, value)
    return _dt.time(0, 0, 0, value // 1_000)


def _from_i64(value: int, data_type: ArrowDataType) -> PrimitiveValue:
    tid = data_type.type_id
    if tid is ArrowTypeId.INT64:
        return PrimitiveValue(PrimitiveKind.LONG, value)
    if tid is not ArrowTypeId.TIMESTAMP:
        raise _error("i64", data_type)

    unit = data_type.unit
    if unit is TimeUnit.NANOSECOND:
        if not 0 <= value <= 0xFFFF_FFFF:
            raise _error("i64", data_type, "Nanosecond should not out of i32")
        if value >= 1_000_000_000:
            raise _error("i64", data_type, "nanosecond out of range ")
        moment = _EPOCH + _dt.timedelta(microseconds=value // 1_000)
    else:
        name, delta = {
            TimeUnit.SECOND: ("second", lambda v: _dt.timedelta(seconds=v)),
            TimeUnit.MILLISECOND: ("millisecond", lambda v: _dt.timedelta(milliseconds=v)),
            TimeUnit.MICROSECOND: ("microsecond", lambda v: _dt.timedelta(microseconds=v)),
        }[unit]
        try:
            moment = _EPOCH + delta(value)
        except OverflowError:
            raise _error("i64", data_type, f"{name} out of range ") from None

    if data_type.timezone is not None:
        return PrimitiveValue(PrimitiveKind.TIMESTAMP, moment)
    return PrimitiveValue(PrimitiveKind.TIMESTAMPZ, moment.replace(tzinfo=_dt.timezone.utc))


def _from_i128(value: int, data_type: ArrowDataType) -> PrimitiveValue:
    if data_type.type_id is not ArrowTypeId.DECIMAL128:
        raise _error("i128", data_type)
    scale = data_type.scale
    if scale is None or not 0 <= scale <= _MAX_DECIMAL_SCALE:
        raise _error("i128", data_type, "scale out of range")
    if abs(value) >= _MAX_DECIMAL_MANTISSA:
        raise _error("i128", data_type, "mantissa out of range")
    digits = tuple(int(d) for d in str(abs(value)))
    return PrimitiveValue(PrimitiveKind.DECIMAL, Decimal((int(value < 0), digits, -scale)))


def _float(native: str) -> Callable[[float, ArrowDataType], PrimitiveValue]:
    expected, kind = {
        "f32": (ArrowTypeId.FLOAT32, PrimitiveKind.FLOAT),
        "f64": (ArrowTypeId.FLOAT64, PrimitiveKind.DOUBLE),
    }[native]

    def convert(value: float, data_type: ArrowDataType) -> PrimitiveValue:
        if data_type.type_id is expected:
            return PrimitiveValue(kind, float(value))
        raise _error(native, data_type)

    return convert


def _unsigned(native: str) -> Callable[[int, ArrowDataType], PrimitiveValue]:
    def convert(value: int, data_type: ArrowDataType) -> PrimitiveValue:
        raise _error(native, data_type)

    return convert


_CONVERTERS = {
    "i8": _small_int("i8"),
    "i16": _small_int("i16"),
    "i32": _from_i32,
    "i64": _from_i64,
    "i128": _from_i128,
    "f32": _float("f32"),
    "f64": _float("f64"),
    "u8": _unsigned("u8"),
    "u16": _unsigned("u16"),
    "u32": _unsigned("u32"),
    "u64": _unsigned("u64"),
}


def to_primitive(value: Any, data_type: ArrowDataType) -> PrimitiveValue:
    """Convert one native arrow value of ``data_type`` to an Iceberg value.

    Raises :class:`IcelakeError` when the arrow type has no Iceberg
    counterpart or the value is out of range for it.
    """
    native = _NATIVE.get(data_type.type_id)
    if native is None:
        raise IcelakeError(
            ErrorKind.DATA_TYPE_UNSUPPORTED, f"Cannot convert a native value to {data_type}"
        )
    _check_native(native, value)
    return _CONVERTERS[native](value, data_type)