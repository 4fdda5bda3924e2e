import datetime as dt
from decimal import Decimal

import pytest

from icelake.arrow_types import ArrowDataType, ArrowTypeId, TimeUnit
from icelake.arrow_values import to_primitive
from icelake.types import ErrorKind, IcelakeError, PrimitiveKind, PrimitiveValue


def _ts(unit, timezone=None):
    return ArrowDataType(ArrowTypeId.TIMESTAMP, unit=unit, timezone=timezone)


def _time32(unit):
    return ArrowDataType(ArrowTypeId.TIME32, unit=unit)


@pytest.mark.parametrize("data_type", [ArrowDataType.INT8, ArrowDataType.INT16, ArrowDataType.INT32])
def test_small_ints_become_int(data_type):
    assert to_primitive(7, data_type) == PrimitiveValue(PrimitiveKind.INT, 7)


def test_int64_becomes_long():
    assert to_primitive(-9, ArrowDataType.INT64) == PrimitiveValue(PrimitiveKind.LONG, -9)


def test_floats():
    assert to_primitive(1.5, ArrowDataType.FLOAT64) == PrimitiveValue(PrimitiveKind.DOUBLE, 1.5)
    assert to_primitive(2.5, ArrowDataType.FLOAT32) == PrimitiveValue(PrimitiveKind.FLOAT, 2.5)


def test_date32_round_trip():
    original = PrimitiveValue(PrimitiveKind.DATE, dt.date(2020, 2, 29))
    assert to_primitive(original.serialize(), ArrowDataType.DATE32) == original


def test_decimal_round_trip():
    original = PrimitiveValue(PrimitiveKind.DECIMAL, Decimal("-123.45"))
    mantissa = int.from_bytes(original.serialize(), "big", signed=True)
    data_type = ArrowDataType(ArrowTypeId.DECIMAL128, precision=10, scale=2)
    result = to_primitive(mantissa, data_type)
    assert result == original
    assert result.value.as_tuple().exponent == -2


def test_decimal_scale_out_of_range():
    data_type = ArrowDataType(ArrowTypeId.DECIMAL128, precision=38, scale=-1)
    with pytest.raises(IcelakeError) as info:
        to_primitive(5, data_type)
    assert info.value.kind is ErrorKind.DATA_TYPE_UNSUPPORTED


def test_time32_microsecond_round_trip():
    original = PrimitiveValue(PrimitiveKind.TIME, dt.time(0, 0, 0, 500_000))
    assert to_primitive(original.serialize(), _time32(TimeUnit.MICROSECOND)) == original


@pytest.mark.parametrize(
    "value, unit",
    [
        (60, TimeUnit.SECOND),
        (-1, TimeUnit.SECOND),
        (1_000, TimeUnit.MILLISECOND),
        (1_000_000, TimeUnit.MICROSECOND),
    ],
)
def test_time32_out_of_range(value, unit):
    with pytest.raises(IcelakeError, match="out of range") as info:
        to_primitive(value, _time32(unit))
    assert info.value.kind is ErrorKind.DATA_TYPE_UNSUPPORTED


def test_timestamp_with_zone_gives_naive_timestamp():
    original = PrimitiveValue(PrimitiveKind.TIMESTAMP, dt.datetime(2021, 5, 6, 7, 8, 9, 123456))
    result = to_primitive(original.serialize(), _ts(TimeUnit.MICROSECOND, "+00:00"))
    assert result == original


def test_timestamp_without_zone_gives_utc_timestamp():
    original = PrimitiveValue(
        PrimitiveKind.TIMESTAMPZ,
        dt.datetime(2021, 5, 6, 7, 8, 9, 123456, tzinfo=dt.timezone.utc),
    )
    result = to_primitive(original.serialize(), _ts(TimeUnit.MICROSECOND))
    assert result == original


def test_timestamp_units_agree():
    seconds = 1_686_911_671
    by_second = to_primitive(seconds, _ts(TimeUnit.SECOND))
    assert by_second == to_primitive(seconds * 1_000, _ts(TimeUnit.MILLISECOND))
    assert by_second == to_primitive(seconds * 1_000_000, _ts(TimeUnit.MICROSECOND))


def test_timestamp_nanosecond_truncates_to_micro():
    nanos = to_primitive(999_999_000, _ts(TimeUnit.NANOSECOND))
    micros = to_primitive(999_999, _ts(TimeUnit.MICROSECOND))
    assert nanos == micros


@pytest.mark.parametrize("value", [-1, 1 << 32])
def test_timestamp_nanosecond_outside_u32(value):
    with pytest.raises(IcelakeError, match="Nanosecond should not out of i32"):
        to_primitive(value, _ts(TimeUnit.NANOSECOND))


def test_timestamp_overflow():
    with pytest.raises(IcelakeError, match="second out of range"):
        to_primitive(1 << 62, _ts(TimeUnit.SECOND))


@pytest.mark.parametrize(
    "data_type",
    [ArrowDataType.UINT8, ArrowDataType.UINT16, ArrowDataType.UINT32, ArrowDataType.UINT64],
)
def test_unsigned_always_rejected(data_type):
    with pytest.raises(IcelakeError, match="Cannot convert u") as info:
        to_primitive(1, data_type)
    assert info.value.kind is ErrorKind.DATA_TYPE_UNSUPPORTED


@pytest.mark.parametrize(
    "data_type",
    [
        ArrowDataType.DATE64,
        ArrowDataType(ArrowTypeId.TIME64, unit=TimeUnit.MICROSECOND),
        ArrowDataType.UTF8,
        ArrowDataType.BOOLEAN,
    ],
)
def test_types_without_primitive_conversion(data_type):
    with pytest.raises(IcelakeError) as info:
        to_primitive(1, data_type)
    assert info.value.kind is ErrorKind.DATA_TYPE_UNSUPPORTED


def test_wrong_native_type():
    with pytest.raises(TypeError):
        to_primitive("7", ArrowDataType.INT32)
    with pytest.raises(TypeError):
        to_primitive(True, ArrowDataType.INT64)


def test_value_outside_native_width():
    with pytest.raises(ValueError):
        to_primitive(128, ArrowDataType.INT8)