"""Arrow schema descriptions and conversion between them and Iceberg types."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Optional

from icelake.types import (
    AnyType,
    ErrorKind,
    Field,
    IcelakeError,
    ListType,
    MapType,
    Primitive,
    PrimitiveKind,
    Schema,
    StructType,
)

COLUMN_ID_META_KEY = "column_id"
"""Metadata key of an arrow field holding the Iceberg column id."""

PARQUET_FIELD_ID_META_KEY = "PARQUET:field_id"
"""Metadata key of an arrow field holding the parquet field id."""

_I32_MAX = (1 << 31) - 1
_U64_MOD = 1 << 64


class TimeUnit(enum.Enum):
    """Resolution of arrow time and timestamp types."""

    SECOND = "Second"
    MILLISECOND = "Millisecond"
    MICROSECOND = "Microsecond"
    NANOSECOND = "Nanosecond"


class ArrowTypeId(enum.Enum):
    """The kinds of arrow data type."""

    NULL = "Null"
    BOOLEAN = "Boolean"
    INT8 = "Int8"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    UINT8 = "UInt8"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    FLOAT16 = "Float16"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    TIMESTAMP = "Timestamp"
    DATE32 = "Date32"
    DATE64 = "Date64"
    TIME32 = "Time32"
    TIME64 = "Time64"
    DURATION = "Duration"
    INTERVAL = "Interval"
    BINARY = "Binary"
    FIXED_SIZE_BINARY = "FixedSizeBinary"
    LARGE_BINARY = "LargeBinary"
    UTF8 = "Utf8"
    LARGE_UTF8 = "LargeUtf8"
    LIST = "List"
    FIXED_SIZE_LIST = "FixedSizeList"
    LARGE_LIST = "LargeList"
    STRUCT = "Struct"
    UNION = "Union"
    DICTIONARY = "Dictionary"
    DECIMAL128 = "Decimal128"
    DECIMAL256 = "Decimal256"
    MAP = "Map"
    RUN_END_ENCODED = "RunEndEncoded"


_UNIT_TYPES = frozenset(
    {ArrowTypeId.TIME32, ArrowTypeId.TIME64, ArrowTypeId.DURATION, ArrowTypeId.TIMESTAMP}
)


@dataclass(frozen=True)
class ArrowDataType:
    """An arrow data type together with the parameters its kind takes.

    ``unit`` and ``timezone`` describe time types, ``precision`` and
    ``scale`` decimals, ``byte_width`` fixed-size binaries, ``fields``
    structs, ``child`` lists and maps, and ``keys_sorted`` maps.
    """

    type_id: ArrowTypeId
    unit: Optional[TimeUnit] = None
    timezone: Optional[str] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    byte_width: Optional[int] = None
    fields: tuple = ()
    child: Optional[ArrowField] = None
    keys_sorted: bool = False

    NULL: ClassVar[ArrowDataType]
    BOOLEAN: ClassVar[ArrowDataType]
    INT8: ClassVar[ArrowDataType]
    INT16: ClassVar[ArrowDataType]
    INT32: ClassVar[ArrowDataType]
    INT64: ClassVar[ArrowDataType]
    UINT8: ClassVar[ArrowDataType]
    UINT16: ClassVar[ArrowDataType]
    UINT32: ClassVar[ArrowDataType]
    UINT64: ClassVar[ArrowDataType]
    FLOAT16: ClassVar[ArrowDataType]
    FLOAT32: ClassVar[ArrowDataType]
    FLOAT64: ClassVar[ArrowDataType]
    DATE32: ClassVar[ArrowDataType]
    DATE64: ClassVar[ArrowDataType]
    BINARY: ClassVar[ArrowDataType]
    LARGE_BINARY: ClassVar[ArrowDataType]
    UTF8: ClassVar[ArrowDataType]
    LARGE_UTF8: ClassVar[ArrowDataType]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        if self.type_id in _UNIT_TYPES and self.unit is None:
            raise ValueError(f"{self.type_id.value} type needs a time unit")

    def __str__(self) -> str:
        tid = self.type_id
        if tid is ArrowTypeId.TIMESTAMP:
            tz = "None" if self.timezone is None else f'Some("{self.timezone}")'
            return f"Timestamp({self.unit.value}, {tz})"
        if tid in _UNIT_TYPES:
            return f"{tid.value}({self.unit.value})"
        if tid in (ArrowTypeId.DECIMAL128, ArrowTypeId.DECIMAL256):
            return f"{tid.value}({self.precision}, {self.scale})"
        if tid is ArrowTypeId.FIXED_SIZE_BINARY:
            return f"FixedSizeBinary({self.byte_width})"
        if tid is ArrowTypeId.STRUCT:
            inner = ", ".join(f"{f.name}: {f.data_type}" for f in self.fields)
            return f"Struct([{inner}])"
        if tid is ArrowTypeId.MAP and self.child is not None:
            return f"Map({self.child.data_type}, {str(self.keys_sorted).lower()})"
        if self.child is not None:
            return f"{tid.value}({self.child.data_type})"
        return tid.value


for _tid in (
    ArrowTypeId.NULL,
    ArrowTypeId.BOOLEAN,
    ArrowTypeId.INT8,
    ArrowTypeId.INT16,
    ArrowTypeId.INT32,
    ArrowTypeId.INT64,
    ArrowTypeId.UINT8,
    ArrowTypeId.UINT16,
    ArrowTypeId.UINT32,
    ArrowTypeId.UINT64,
    ArrowTypeId.FLOAT16,
    ArrowTypeId.FLOAT32,
    ArrowTypeId.FLOAT64,
    ArrowTypeId.DATE32,
    ArrowTypeId.DATE64,
    ArrowTypeId.BINARY,
    ArrowTypeId.LARGE_BINARY,
    ArrowTypeId.UTF8,
    ArrowTypeId.LARGE_UTF8,
):
    setattr(ArrowDataType, _tid.name, ArrowDataType(_tid))
del _tid


@dataclass(frozen=True)
class ArrowField:
    """A named arrow column with its type, nullability and metadata."""

    name: str
    data_type: ArrowDataType
    nullable: bool
    metadata: dict = field(default_factory=dict, hash=False)
    dict_id: Optional[int] = None


@dataclass
class ArrowSchema:
    """An ordered collection of arrow fields."""

    fields: tuple = ()
    metadata: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.fields = tuple(self.fields)


# ---------------------------------------------------------------------------
# Iceberg to arrow
# ---------------------------------------------------------------------------


def schema_to_arrow(schema: Schema) -> ArrowSchema:
    """Convert an Iceberg schema into an arrow schema."""
    return ArrowSchema(tuple(field_to_arrow(f) for f in schema.fields))


def field_to_arrow(field: Field) -> ArrowField:
    """Convert an Iceberg field, tagging it with its column id."""
    field_id = str(field.id)
    return ArrowField(
        field.name,
        type_to_arrow(field.field_type),
        not field.is_required,
        metadata={COLUMN_ID_META_KEY: field_id, PARQUET_FIELD_ID_META_KEY: field_id},
    )


def type_to_arrow(any_type: AnyType) -> ArrowDataType:
    """Convert any Iceberg type into an arrow data type."""
    if isinstance(any_type, Primitive):
        return primitive_to_arrow(any_type)
    if isinstance(any_type, StructType):
        return ArrowDataType(
            ArrowTypeId.STRUCT, fields=tuple(field_to_arrow(f) for f in any_type.fields)
        )
    if isinstance(any_type, ListType):
        item = ArrowField(
            "item",
            type_to_arrow(any_type.element_type),
            not any_type.element_required,
            dict_id=any_type.element_id,
        )
        return ArrowDataType(ArrowTypeId.LIST, child=item)
    if isinstance(any_type, MapType):
        key = ArrowField("key", type_to_arrow(any_type.key_type), False, dict_id=any_type.key_id)
        value = ArrowField(
            "value",
            type_to_arrow(any_type.value_type),
            not any_type.value_required,
            dict_id=any_type.value_id,
        )
        entries = ArrowField(
            "entries",
            ArrowDataType(ArrowTypeId.STRUCT, fields=(key, value)),
            any_type.value_required,
        )
        return ArrowDataType(ArrowTypeId.MAP, child=entries, keys_sorted=False)
    raise TypeError(f"not an Iceberg type: {type(any_type).__name__}")


def _as_i8(value: int) -> int:
    return ((value + 128) % 256) - 128


def primitive_to_arrow(primitive: Primitive) -> ArrowDataType:
    """Convert an Iceberg primitive type into an arrow data type."""
    kind = primitive.kind
    simple = {
        PrimitiveKind.BOOLEAN: ArrowDataType.BOOLEAN,
        PrimitiveKind.INT: ArrowDataType.INT32,
        PrimitiveKind.LONG: ArrowDataType.INT64,
        PrimitiveKind.FLOAT: ArrowDataType.FLOAT32,
        PrimitiveKind.DOUBLE: ArrowDataType.FLOAT64,
        PrimitiveKind.DATE: ArrowDataType.DATE32,
        PrimitiveKind.STRING: ArrowDataType.UTF8,
        PrimitiveKind.BINARY: ArrowDataType.LARGE_BINARY,
    }
    if kind in simple:
        return simple[kind]
    if kind is PrimitiveKind.DECIMAL:
        return ArrowDataType(
            ArrowTypeId.DECIMAL128, precision=primitive.precision, scale=_as_i8(primitive.scale)
        )
    if kind is PrimitiveKind.TIME:
        return ArrowDataType(ArrowTypeId.TIME32, unit=TimeUnit.MICROSECOND)
    if kind is PrimitiveKind.TIMESTAMP:
        return ArrowDataType(ArrowTypeId.TIMESTAMP, unit=TimeUnit.MICROSECOND)
    if kind is PrimitiveKind.TIMESTAMPZ:
        # Timestamps with zone are always stored as UTC.
        return ArrowDataType(ArrowTypeId.TIMESTAMP, unit=TimeUnit.MICROSECOND, timezone="+00:00")
    if kind is PrimitiveKind.UUID:
        return ArrowDataType(ArrowTypeId.FIXED_SIZE_BINARY, byte_width=16)
    # Fixed: fixed-size binary holds at most i32::MAX bytes.
    if primitive.length <= _I32_MAX:
        return ArrowDataType(ArrowTypeId.FIXED_SIZE_BINARY, byte_width=primitive.length)
    return ArrowDataType.LARGE_BINARY


# ---------------------------------------------------------------------------
# Arrow to Iceberg
# ---------------------------------------------------------------------------


def arrow_to_any(data_type: ArrowDataType) -> AnyType:
    """Convert an arrow data type into an Iceberg type.

    Struct members are numbered by their position.
    """
    tid = data_type.type_id
    simple = {
        ArrowTypeId.BOOLEAN: Primitive.BOOLEAN,
        ArrowTypeId.INT32: Primitive.INT,
        ArrowTypeId.INT64: Primitive.LONG,
        ArrowTypeId.FLOAT32: Primitive.FLOAT,
        ArrowTypeId.FLOAT64: Primitive.DOUBLE,
        ArrowTypeId.DATE32: Primitive.DATE,
        ArrowTypeId.UTF8: Primitive.STRING,
        ArrowTypeId.LARGE_UTF8: Primitive.STRING,
        ArrowTypeId.LARGE_BINARY: Primitive.BINARY,
    }
    if tid in simple:
        return simple[tid]
    if tid is ArrowTypeId.DECIMAL128:
        return Primitive.decimal(data_type.precision, data_type.scale & 0xFF)
    if tid is ArrowTypeId.TIME32 and data_type.unit is TimeUnit.MICROSECOND:
        return Primitive.TIME
    if tid is ArrowTypeId.TIMESTAMP and data_type.unit is TimeUnit.MICROSECOND:
        return Primitive.TIMESTAMP if data_type.timezone is None else Primitive.TIMESTAMPZ
    if tid is ArrowTypeId.FIXED_SIZE_BINARY:
        if data_type.byte_width == 16:
            return Primitive.UUID
        return Primitive.fixed(data_type.byte_width % _U64_MOD)
    if tid is ArrowTypeId.STRUCT:
        members = []
        for position, arrow_field in enumerate(data_type.fields):
            make = Field.optional if arrow_field.nullable else Field.required
            members.append(make(position, arrow_field.name, arrow_to_any(arrow_field.data_type)))
        return StructType(members)
    raise IcelakeError(
        ErrorKind.DATA_TYPE_UNSUPPORTED,
        f"Unsupported convert arrow type: {data_type} to Any",
    )