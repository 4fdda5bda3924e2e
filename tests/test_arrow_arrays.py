import datetime as dt

import pytest

from icelake.arrow_arrays import (
    ArrowArray,
    struct_to_anyvalue_array_with_type,
    to_anyvalue_array,
    to_anyvalue_array_with_type,
)
from icelake.arrow_types import ArrowDataType, ArrowField, ArrowTypeId, TimeUnit, arrow_to_any
from icelake.types import (
    ErrorKind,
    Field,
    IcelakeError,
    Primitive,
    PrimitiveKind,
    PrimitiveValue,
    StructType,
    StructValueBuilder,
)


def _bool(v):
    return PrimitiveValue(PrimitiveKind.BOOLEAN, v)


def _int(v):
    return PrimitiveValue(PrimitiveKind.INT, v)


def _struct_type(fields):
    return ArrowDataType(ArrowTypeId.STRUCT, fields=tuple(fields))


def _build(struct_ty, values):
    builder = StructValueBuilder(struct_ty)
    for field_id, value in values:
        builder.add_field(field_id, value)
    return builder.build()


def test_from_bool_array():
    array = ArrowArray(ArrowDataType.BOOLEAN, [True, None, False])
    assert to_anyvalue_array(array) == [_bool(True), None, _bool(False)]


def test_from_primitive_array():
    array = ArrowArray(ArrowDataType.INT32, [1, None, 3])
    assert to_anyvalue_array(array) == [_int(1), None, _int(3)]


def test_from_string_array():
    array = ArrowArray(ArrowDataType.LARGE_UTF8, ["a", None])
    assert to_anyvalue_array(array) == [PrimitiveValue(PrimitiveKind.STRING, "a"), None]


def test_timestamp_without_zone_array():
    array = ArrowArray(ArrowDataType(ArrowTypeId.TIMESTAMP, unit=TimeUnit.MICROSECOND), [0])
    expected = PrimitiveValue(
        PrimitiveKind.TIMESTAMPZ, dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)
    )
    assert to_anyvalue_array_with_type(array, Primitive.TIMESTAMPZ) == [expected]


def test_from_simple_struct_array():
    fields = [
        ArrowField("b", ArrowDataType.BOOLEAN, False),
        ArrowField("c", ArrowDataType.INT32, False),
    ]
    struct_array = ArrowArray(
        _struct_type(fields),
        children=[
            ArrowArray(ArrowDataType.BOOLEAN, [False, True, True]),
            ArrowArray(ArrowDataType.INT32, [42, 28, 28]),
        ],
        validity=[True, False, True],
    )

    struct_ty = StructType(
        [Field.required(0, "b", Primitive.BOOLEAN), Field.required(1, "c", Primitive.INT)]
    )
    expect = [
        _build(struct_ty, [(0, _bool(False)), (1, _int(42))]),
        None,
        _build(struct_ty, [(0, _bool(True)), (1, _int(28))]),
    ]

    target = arrow_to_any(_struct_type(fields))
    assert struct_to_anyvalue_array_with_type(struct_array, target) == expect


def test_from_nested_struct_array():
    sub_fields = [
        ArrowField("c", ArrowDataType.BOOLEAN, False),
        ArrowField("d", ArrowDataType.INT32, False),
    ]
    fields = [
        ArrowField("a", _struct_type(sub_fields), False),
        ArrowField("b", _struct_type(sub_fields), False),
    ]
    inner = ArrowArray(
        _struct_type(sub_fields),
        children=[
            ArrowArray(ArrowDataType.BOOLEAN, [False, True]),
            ArrowArray(ArrowDataType.INT32, [42, 28]),
        ],
    )
    struct_array = ArrowArray(_struct_type(fields), children=[inner, inner])

    sub_ty = StructType(
        [Field.required(0, "c", Primitive.BOOLEAN), Field.required(1, "d", Primitive.INT)]
    )
    struct_ty = StructType([Field.required(0, "a", sub_ty), Field.required(1, "b", sub_ty)])
    first = _build(sub_ty, [(0, _bool(False)), (1, _int(42))])
    second = _build(sub_ty, [(0, _bool(True)), (1, _int(28))])
    expect = [
        _build(struct_ty, [(0, first), (1, first)]),
        _build(struct_ty, [(0, second), (1, second)]),
    ]

    target = arrow_to_any(_struct_type(fields))
    assert struct_to_anyvalue_array_with_type(struct_array, target) == expect
    assert to_anyvalue_array_with_type(struct_array, target) == expect


def test_null_rows_do_not_consume_child_values():
    fields = [ArrowField("x", ArrowDataType.INT32, False)]
    struct_array = ArrowArray(
        _struct_type(fields),
        children=[ArrowArray(ArrowDataType.INT32, [1, 2, 3])],
        validity=[True, False, True],
    )
    target = arrow_to_any(_struct_type(fields))
    result = struct_to_anyvalue_array_with_type(struct_array, target)
    assert result[1] is None
    assert result[2].values == (_int(2),)


def test_struct_type_mismatch_raises():
    fields = [ArrowField("x", ArrowDataType.INT32, False)]
    struct_array = ArrowArray(
        _struct_type(fields), children=[ArrowArray(ArrowDataType.INT32, [1])]
    )
    target = StructType([Field.required(0, "x", Primitive.STRING)])
    with pytest.raises(IcelakeError) as info:
        struct_to_anyvalue_array_with_type(struct_array, target)
    assert info.value.kind is ErrorKind.DATA_TYPE_UNSUPPORTED


def test_struct_needs_struct_target():
    struct_array = ArrowArray(_struct_type([]), children=[])
    with pytest.raises(TypeError):
        struct_to_anyvalue_array_with_type(struct_array, Primitive.INT)


def test_time32_microsecond_unsupported():
    array = ArrowArray(ArrowDataType(ArrowTypeId.TIME32, unit=TimeUnit.MICROSECOND), [1])
    with pytest.raises(IcelakeError, match="Time32Microsecond is not supported"):
        to_anyvalue_array_with_type(array, Primitive.TIME)


def test_binary_unsupported():
    array = ArrowArray(ArrowDataType.BINARY, [b"x"])
    with pytest.raises(IcelakeError) as info:
        to_anyvalue_array_with_type(array, Primitive.BINARY)
    assert info.value.kind is ErrorKind.DATA_TYPE_UNSUPPORTED


def test_unsigned_values_rejected():
    array = ArrowArray(ArrowDataType.UINT8, [1])
    with pytest.raises(IcelakeError, match="Cannot convert u8"):
        to_anyvalue_array(array)


def test_lengths():
    assert len(ArrowArray(ArrowDataType.INT32, [1, None, 3])) == 3
    struct_array = ArrowArray(
        _struct_type([ArrowField("x", ArrowDataType.INT32, False)]),
        children=[ArrowArray(ArrowDataType.INT32, [1, 2])],
    )
    assert len(struct_array) == 2


def test_mismatched_child_lengths_rejected():
    fields = [
        ArrowField("x", ArrowDataType.INT32, False),
        ArrowField("y", ArrowDataType.INT32, False),
    ]
    with pytest.raises(ValueError):
        ArrowArray(
            _struct_type(fields),
            children=[
                ArrowArray(ArrowDataType.INT32, [1, 2]),
                ArrowArray(ArrowDataType.INT32, [1]),
            ],
        )