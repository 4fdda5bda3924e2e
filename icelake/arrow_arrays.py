"""Conversion of arrow arrays into lists of Iceberg values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from icelake.arrow_types import ArrowDataType, ArrowTypeId, TimeUnit, arrow_to_any
from icelake.arrow_values import to_primitive
from icelake.types import (
    AnyType,
    AnyValue,
    ErrorKind,
    IcelakeError,
    PrimitiveKind,
    PrimitiveValue,
    StructType,
    StructValueBuilder,
)

# Arrow types whose values are native numbers converted one by one.
_NATIVE_TYPES = frozenset(
    {
        ArrowTypeId.INT8,
        ArrowTypeId.INT16,
        ArrowTypeId.INT32,
        ArrowTypeId.INT64,
        ArrowTypeId.UINT8,
        ArrowTypeId.UINT16,
        ArrowTypeId.UINT32,
        ArrowTypeId.UINT64,
        ArrowTypeId.FLOAT32,
        ArrowTypeId.FLOAT64,
        ArrowTypeId.DECIMAL128,
        ArrowTypeId.DATE32,
        ArrowTypeId.DATE64,
        ArrowTypeId.TIMESTAMP,
        ArrowTypeId.TIME32,
        ArrowTypeId.TIME64,
        ArrowTypeId.DURATION,
    }
)

_STRING_TYPES = frozenset({ArrowTypeId.UTF8, ArrowTypeId.LARGE_UTF8})

# Types converted by ``to_anyvalue_array_with_type`` without a target type.
_DIRECT_TYPES = frozenset(
    {
        ArrowTypeId.BOOLEAN,
        ArrowTypeId.INT8,
        ArrowTypeId.INT16,
        ArrowTypeId.INT32,
        ArrowTypeId.INT64,
        ArrowTypeId.UINT8,
        ArrowTypeId.UINT16,
        ArrowTypeId.UINT32,
        ArrowTypeId.UINT64,
        ArrowTypeId.FLOAT32,
        ArrowTypeId.FLOAT64,
        ArrowTypeId.DECIMAL128,
        ArrowTypeId.DATE32,
        ArrowTypeId.DATE64,
        ArrowTypeId.TIMESTAMP,
        ArrowTypeId.TIME32,
        ArrowTypeId.UTF8,
        ArrowTypeId.LARGE_UTF8,
    }
)


@dataclass(frozen=True)
class ArrowArray:
    """An arrow array of one data type.

    Flat arrays keep their native values in ``values``, ``None`` marking a
    null slot. Struct arrays keep one child array per field in
    ``children`` and, optionally, a ``validity`` flag per row where
    ``False`` marks a null row.
    """

    data_type: ArrowDataType
    values: tuple = ()
    children: tuple = ()
    validity: Optional[tuple] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        object.__setattr__(self, "children", tuple(self.children))
        if self.validity is not None:
            object.__setattr__(self, "validity", tuple(bool(v) for v in self.validity))

        if self.data_type.type_id is ArrowTypeId.STRUCT:
            if self.values:
                raise ValueError("struct arrays hold their data in child arrays")
            lengths = {len(child) for child in self.children}
            if len(lengths) > 1:
                raise ValueError("child arrays of a struct must have the same length")
            if self.validity is not None and lengths and len(self.validity) not in lengths:
                raise ValueError("validity length must match the child array length")
        elif self.children or self.validity is not None:
            raise ValueError("only struct arrays have children and a validity buffer")

    def __len__(self) -> int:
        if self.data_type.type_id is not ArrowTypeId.STRUCT:
            return len(self.values)
        if self.validity is not None:
            return len(self.validity)
        if self.children:
            return len(self.children[0])
        return 0


def _unsupported(message: str) -> IcelakeError:
    return IcelakeError(ErrorKind.DATA_TYPE_UNSUPPORTED, message)


def to_anyvalue_array(array: ArrowArray) -> list[Optional[AnyValue]]:
    """Convert a boolean, string or native-valued arrow array to Iceberg values."""
    data_type = array.data_type
    tid = data_type.type_id
    if tid is ArrowTypeId.BOOLEAN:
        return [None if v is None else PrimitiveValue(PrimitiveKind.BOOLEAN, v) for v in array.values]
    if tid in _STRING_TYPES:
        return [None if v is None else PrimitiveValue(PrimitiveKind.STRING, v) for v in array.values]
    if tid in _NATIVE_TYPES:
        return [None if v is None else to_primitive(v, data_type) for v in array.values]
    if tid is ArrowTypeId.STRUCT:
        raise _unsupported(f"Array of type {data_type} needs a target type to be converted")
    raise _unsupported(f"Array of type {data_type} is not supported")


def to_anyvalue_array_with_type(
    array: ArrowArray, target_type: AnyType
) -> list[Optional[AnyValue]]:
    """Convert an arrow array to Iceberg values; structs take ``target_type``."""
    data_type = array.data_type
    tid = data_type.type_id
    if tid is ArrowTypeId.STRUCT:
        return struct_to_anyvalue_array_with_type(array, target_type)
    if tid is ArrowTypeId.TIME32 and data_type.unit in (TimeUnit.MICROSECOND, TimeUnit.NANOSECOND):
        raise _unsupported(f"Time32{data_type.unit.value} is not supported")
    if tid in _DIRECT_TYPES:
        return to_anyvalue_array(array)
    raise _unsupported(f"Converting arrow type {data_type} is not supported")


def struct_to_anyvalue_array_with_type(
    struct_array: ArrowArray, target_type: AnyType
) -> list[Optional[AnyValue]]:
    """Convert a struct array into struct values of ``target_type``.

    The target fields must match the child arrays in type and order.
    Child values are consumed only by rows that are not null.
    """
    if struct_array.data_type.type_id is not ArrowTypeId.STRUCT:
        raise TypeError(f"expected a struct array, got {struct_array.data_type}")
    if not isinstance(target_type, StructType):
        raise TypeError(f"target type of a struct array must be a struct, got {target_type!r}")

    columns = []
    for child, target_field in zip(struct_array.children, target_type.fields):
        if target_field.field_type != arrow_to_any(child.data_type):
            raise _unsupported(
                f"target_type {target_type!r} is not match with array type "
                f"{struct_array.data_type}. You should guarantee the target_type is the "
                "same with array type (including order)."
            )
        columns.append(iter(to_anyvalue_array_with_type(child, target_field.field_type)))

    validity = struct_array.validity
    result: list[Optional[AnyValue]] = []
    for row in range(len(struct_array)):
        if validity is not None and not validity[row]:
            result.append(None)
            continue
        builder = StructValueBuilder(target_type)
        for target_field, column in zip(target_type.fields, columns):
            builder.add_field(target_field.id, next(column))
        result.append(builder.build())
    return result