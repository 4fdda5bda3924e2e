"""In-memory Iceberg data types, values and the errors raised while handling them."""

from __future__ import annotations

import datetime as _dt
import enum
import math
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, ClassVar, Iterator, Optional, Union

_EPOCH = _dt.datetime(1970, 1, 1)
_EPOCH_UTC = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)
_ONE_MICRO = _dt.timedelta(microseconds=1)


class ErrorKind(enum.Enum):
    """Category of an error raised by the package."""

    ICEBERG_DATA_INVALID = "IcebergDataInvalid"
    ICEBERG_FEATURE_UNSUPPORTED = "IcebergFeatureUnsupported"
    DATA_TYPE_UNSUPPORTED = "DataTypeUnsupported"
    UNEXPECTED = "Unexpected"


class IcelakeError(Exception):
    """Error carrying an :class:`ErrorKind` and a message."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"IcelakeError({self.kind.name}, {self.message!r})"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class PrimitiveKind(enum.Enum):
    """The primitive Iceberg types."""

    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TIMESTAMPZ = "timestamptz"
    STRING = "string"
    UUID = "uuid"
    FIXED = "fixed"
    BINARY = "binary"


@dataclass(frozen=True)
class Primitive:
    """A primitive type; decimal carries precision and scale, fixed a length."""

    kind: PrimitiveKind
    precision: Optional[int] = None
    scale: Optional[int] = None
    length: Optional[int] = None

    BOOLEAN: ClassVar[Primitive]
    INT: ClassVar[Primitive]
    LONG: ClassVar[Primitive]
    FLOAT: ClassVar[Primitive]
    DOUBLE: ClassVar[Primitive]
    DATE: ClassVar[Primitive]
    TIME: ClassVar[Primitive]
    TIMESTAMP: ClassVar[Primitive]
    TIMESTAMPZ: ClassVar[Primitive]
    STRING: ClassVar[Primitive]
    UUID: ClassVar[Primitive]
    BINARY: ClassVar[Primitive]

    def __post_init__(self) -> None:
        if self.kind is PrimitiveKind.DECIMAL:
            for name, value in (("precision", self.precision), ("scale", self.scale)):
                if value is None or not 0 <= value <= 255:
                    raise ValueError(f"decimal {name} must be in 0..=255, got {value!r}")
            if self.length is not None:
                raise ValueError("decimal type takes no length")
        elif self.kind is PrimitiveKind.FIXED:
            if self.length is None or self.length < 0:
                raise ValueError(f"fixed length must be non-negative, got {self.length!r}")
            if self.precision is not None or self.scale is not None:
                raise ValueError("fixed type takes no precision or scale")
        elif (self.precision, self.scale, self.length) != (None, None, None):
            raise ValueError(f"{self.kind.value} type takes no parameters")

    @classmethod
    def decimal(cls, precision: int, scale: int) -> Primitive:
        return cls(PrimitiveKind.DECIMAL, precision=precision, scale=scale)

    @classmethod
    def fixed(cls, length: int) -> Primitive:
        return cls(PrimitiveKind.FIXED, length=length)

    def __str__(self) -> str:
        if self.kind is PrimitiveKind.DECIMAL:
            return f"decimal({self.precision}, {self.scale})"
        if self.kind is PrimitiveKind.FIXED:
            return f"fixed[{self.length}]"
        return self.kind.value


Primitive.BOOLEAN = Primitive(PrimitiveKind.BOOLEAN)
Primitive.INT = Primitive(PrimitiveKind.INT)
Primitive.LONG = Primitive(PrimitiveKind.LONG)
Primitive.FLOAT = Primitive(PrimitiveKind.FLOAT)
Primitive.DOUBLE = Primitive(PrimitiveKind.DOUBLE)
Primitive.DATE = Primitive(PrimitiveKind.DATE)
Primitive.TIME = Primitive(PrimitiveKind.TIME)
Primitive.TIMESTAMP = Primitive(PrimitiveKind.TIMESTAMP)
Primitive.TIMESTAMPZ = Primitive(PrimitiveKind.TIMESTAMPZ)
Primitive.STRING = Primitive(PrimitiveKind.STRING)
Primitive.UUID = Primitive(PrimitiveKind.UUID)
Primitive.BINARY = Primitive(PrimitiveKind.BINARY)


@dataclass(frozen=True)
class Field:
    """A named, id-tagged member of a struct."""

    id: int
    name: str
    is_required: bool
    field_type: AnyType
    comment: Optional[str] = None
    initial_default: Optional[AnyValue] = None
    write_default: Optional[AnyValue] = None

    @classmethod
    def required(cls, id: int, name: str, field_type: AnyType) -> Field:
        return cls(id, name, True, field_type)

    @classmethod
    def optional(cls, id: int, name: str, field_type: AnyType) -> Field:
        return cls(id, name, False, field_type)

    def with_comment(self, doc: str) -> Field:
        return replace(self, comment=doc)

    def with_required(self) -> Field:
        return replace(self, is_required=True)


class StructType:
    """An ordered tuple of fields, with lookup by id across nested structs."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, fields) -> None:
        self._fields: tuple[Field, ...] = tuple(fields)
        self._id_lookup: dict[int, Field] = {}
        for member in self._fields:
            self._id_lookup[member.id] = member
            # Only nested structs are indexed; list and map members are not.
            if isinstance(member.field_type, StructType):
                self._id_lookup.update(member.field_type._id_lookup)

    @property
    def fields(self) -> tuple[Field, ...]:
        return self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __eq__(self, other: object) -> bool:
        # Every field id known here must be present in ``other`` with an equal field.
        if not isinstance(other, StructType):
            return NotImplemented
        return all(
            field_id in other._id_lookup and other._id_lookup[field_id] == member
            for field_id, member in self._id_lookup.items()
        )

    def __repr__(self) -> str:
        return f"StructType({list(self._fields)!r})"

    def lookup_type(self, field_id: int) -> Optional[AnyType]:
        member = self._id_lookup.get(field_id)
        return None if member is None else member.field_type

    def lookup_field(self, field_id: int) -> Optional[Field]:
        return self._id_lookup.get(field_id)

    def lookup_field_by_name(self, field_name: str) -> Optional[Field]:
        return next((f for f in self._fields if f.name == field_name), None)


@dataclass(frozen=True)
class ListType:
    """A list of elements of one type."""

    element_id: int
    element_required: bool
    element_type: AnyType


@dataclass(frozen=True)
class MapType:
    """A map from keys of one type to values of another."""

    key_id: int
    key_type: AnyType
    value_id: int
    value_required: bool
    value_type: AnyType


AnyType = Union[Primitive, StructType, ListType, MapType]


@dataclass
class Schema:
    """A table schema: a struct of columns with an id."""

    schema_id: int
    identifier_field_ids: Optional[list[int]]
    struct_type: StructType

    @property
    def fields(self) -> tuple[Field, ...]:
        return self.struct_type.fields

    def look_up_field_by_id(self, field_id: int) -> Optional[Field]:
        return self.struct_type.lookup_field(field_id)


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def _check_type(kind: PrimitiveKind, value: Any, expected) -> None:
    if not isinstance(value, expected):
        raise TypeError(f"{kind.value} value must be {expected}, got {type(value).__name__}")


def _normalise(kind: PrimitiveKind, value: Any) -> Any:
    if kind is PrimitiveKind.BOOLEAN:
        _check_type(kind, value, bool)
        return value
    if kind in (PrimitiveKind.INT, PrimitiveKind.LONG):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{kind.value} value must be int, got {type(value).__name__}")
        bits = 32 if kind is PrimitiveKind.INT else 64
        if not -(1 << (bits - 1)) <= value < (1 << (bits - 1)):
            raise ValueError(f"{value} out of range for {kind.value}")
        return value
    if kind in (PrimitiveKind.FLOAT, PrimitiveKind.DOUBLE):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{kind.value} value must be float, got {type(value).__name__}")
        return float(value)
    if kind is PrimitiveKind.DECIMAL:
        _check_type(kind, value, Decimal)
        if not value.is_finite():
            raise ValueError("decimal value must be finite")
        return value
    if kind is PrimitiveKind.DATE:
        if isinstance(value, _dt.datetime) or not isinstance(value, _dt.date):
            raise TypeError(f"date value must be date, got {type(value).__name__}")
        return value
    if kind is PrimitiveKind.TIME:
        _check_type(kind, value, _dt.time)
        return value
    if kind is PrimitiveKind.TIMESTAMP:
        _check_type(kind, value, _dt.datetime)
        if value.tzinfo is not None:
            raise ValueError("timestamp value must be naive")
        return value
    if kind is PrimitiveKind.TIMESTAMPZ:
        _check_type(kind, value, _dt.datetime)
        if value.tzinfo is None:
            raise ValueError("timestamptz value must carry a time zone")
        return value.astimezone(_dt.timezone.utc)
    if kind is PrimitiveKind.STRING:
        _check_type(kind, value, str)
        return value
    if kind is PrimitiveKind.UUID:
        _check_type(kind, value, uuid.UUID)
        return value
    _check_type(kind, value, (bytes, bytearray, memoryview))
    return bytes(value)


def _decimal_mantissa_bytes(value: Decimal) -> bytes:
    sign, digits, exponent = value.as_tuple()
    mantissa = int("".join(map(str, digits)) or "0")
    if isinstance(exponent, int) and exponent > 0:
        mantissa *= 10**exponent
    if sign:
        mantissa = -mantissa
    return mantissa.to_bytes(16, "big", signed=True)


@dataclass(frozen=True, eq=False)
class PrimitiveValue:
    """A value of a primitive type; floating values compare NaN equal to NaN."""

    kind: PrimitiveKind
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _normalise(self.kind, self.value))

    def _key(self) -> tuple:
        if isinstance(self.value, float) and math.isnan(self.value):
            return (self.kind, "nan")
        return (self.kind, self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimitiveValue):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def serialize(self) -> Any:
        """Return the plain representation used when writing records."""
        kind, value = self.kind, self.value
        if kind is PrimitiveKind.DECIMAL:
            return _decimal_mantissa_bytes(value)
        if kind is PrimitiveKind.DATE:
            return value.toordinal()
        if kind is PrimitiveKind.TIME:
            seconds = value.hour * 3600 + value.minute * 60 + value.second
            return seconds * 1_000_000 + value.microsecond
        if kind is PrimitiveKind.TIMESTAMP:
            return (value - _EPOCH) // _ONE_MICRO
        if kind is PrimitiveKind.TIMESTAMPZ:
            return (value - _EPOCH_UTC) // _ONE_MICRO
        if kind is PrimitiveKind.UUID:
            return str(value)
        return value


def _hash_key(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_hash_key(v) for v in value)
    return value


@dataclass(frozen=True, eq=False)
class MapValue:
    """Parallel keys and (possibly null) values of a map."""

    keys: tuple = ()
    values: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", tuple(self.keys))
        object.__setattr__(self, "values", tuple(self.values))
        if len(self.keys) != len(self.values):
            raise ValueError("map keys and values must have the same length")

    def __eq__(self, other: object) -> bool:
        # Every entry of ``other`` must be found, with an equal value, in this map.
        if not isinstance(other, MapValue):
            return NotImplemented
        lookup = dict(zip(self.keys, self.values))
        return all(k in lookup and lookup[k] == v for k, v in zip(other.keys, other.values))

    def __hash__(self) -> int:
        return hash((_hash_key(self.keys), _hash_key(self.values)))

    def serialize(self) -> dict:
        return {serialize_value(k): serialize_value(v) for k, v in zip(self.keys, self.values)}


@dataclass(frozen=True)
class StructValue:
    """Values of a struct, in field order; ``None`` marks a null field."""

    type_info: StructType = field(default_factory=lambda: StructType([]))
    values: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if len(self.values) != len(self.type_info):
            raise ValueError(
                f"struct has {len(self.type_info)} fields but {len(self.values)} values"
            )

    def __iter__(self) -> Iterator[tuple[int, Optional[AnyValue], str, bool]]:
        """Yield ``(field_id, value, field_name, required)`` for each field."""
        for member, value in zip(self.type_info.fields, self.values):
            yield member.id, value, member.name, member.is_required

    def __hash__(self) -> int:
        return hash(tuple((fid, _hash_key(v), name, req) for fid, v, name, req in self))

    def serialize(self) -> dict:
        record = {}
        for field_id, value, name, required in self:
            if required and value is None:
                raise IcelakeError(
                    ErrorKind.ICEBERG_DATA_INVALID,
                    f"Field {field_id} is required but has no value",
                )
            record[name] = serialize_value(value)
        return record


AnyValue = Union[PrimitiveValue, StructValue, MapValue, list]


class StructValueBuilder:
    """Collects field values and builds a :class:`StructValue` valid for its type."""

    def __init__(self, type_info: StructType) -> None:
        self.type_info = type_info
        self._fields: dict[int, Optional[AnyValue]] = {}

    def add_field(self, field_id: int, field_value: Optional[AnyValue]) -> None:
        member = self.type_info.lookup_field(field_id)
        if member is None:
            raise IcelakeError(ErrorKind.ICEBERG_DATA_INVALID, f"Field {field_id} is not found")
        if member.is_required and field_value is None:
            raise IcelakeError(ErrorKind.ICEBERG_DATA_INVALID, f"Field {field_id} is required")
        self._fields[field_id] = field_value

    def build(self) -> StructValue:
        values = []
        for member in self.type_info.fields:
            if member.id not in self._fields:
                raise IcelakeError(
                    ErrorKind.ICEBERG_DATA_INVALID, f"Field {member.name} is required"
                )
            values.append(self._fields.pop(member.id))
        return StructValue(self.type_info, tuple(values))


def serialize_value(value: Optional[AnyValue]) -> Any:
    """Return the plain representation of any value; ``None`` stays ``None``."""
    if value is None:
        return None
    if isinstance(value, (PrimitiveValue, StructValue, MapValue)):
        return value.serialize()
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    raise TypeError(f"not an Iceberg value: {type(value).__name__}")