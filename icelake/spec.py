"""Partition transforms, partition specs and sort orders."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Optional

from icelake.types import (
    AnyType,
    ErrorKind,
    Field,
    IcelakeError,
    Primitive,
    Schema,
    StructType,
)

_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")


def _parse_i32(text: str) -> Optional[int]:
    if not _INTEGER.fullmatch(text):
        return None
    number = int(text)
    if not _I32_MIN <= number <= _I32_MAX:
        return None
    return number


class TransformKind(enum.Enum):
    """The kinds of partition transform."""

    IDENTITY = "identity"
    BUCKET = "bucket"
    TRUNCATE = "truncate"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    HOUR = "hour"
    VOID = "void"


_PARAMETRISED = frozenset({TransformKind.BUCKET, TransformKind.TRUNCATE})


@dataclass(frozen=True)
class Transform:
    """A transform from a source column value to a partition value.

    ``param`` is the bucket count for ``bucket`` and the width for
    ``truncate``; other transforms take none.
    """

    kind: TransformKind
    param: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind in _PARAMETRISED:
            if isinstance(self.param, bool) or not isinstance(self.param, int):
                raise ValueError(f"{self.kind.value} transform needs an integer parameter")
        elif self.param is not None:
            raise ValueError(f"{self.kind.value} transform takes no parameter")

    @classmethod
    def parse(cls, s: str) -> Transform:
        """Parse a transform from its textual form, such as ``bucket[16]``."""
        for kind in TransformKind:
            if kind not in _PARAMETRISED and s == kind.value:
                return cls(kind)
        for kind in (TransformKind.BUCKET, TransformKind.TRUNCATE):
            if s.startswith(kind.value):
                inner = s[len(kind.value):].lstrip("[").rstrip("]")
                number = _parse_i32(inner)
                if number is None:
                    raise IcelakeError(
                        ErrorKind.ICEBERG_DATA_INVALID,
                        f'transform {kind.value} type "{s}" is invalid',
                    )
                return cls(kind, number)
        raise IcelakeError(ErrorKind.ICEBERG_DATA_INVALID, f'transform "{s}" is invalid')

    def __str__(self) -> str:
        if self.kind in _PARAMETRISED:
            return f"{self.kind.value}[{self.param}]"
        return self.kind.value

    def result_type(self, input_type: AnyType) -> AnyType:
        """Return the type this transform produces from ``input_type``."""
        if self.kind in (TransformKind.IDENTITY, TransformKind.TRUNCATE):
            return input_type
        return Primitive.INT


@dataclass(frozen=True)
class PartitionField:
    """A field of a partition spec, derived from a source column."""

    source_column_id: int
    partition_field_id: int
    transform: Transform
    name: str


@dataclass
class PartitionSpec:
    """How a tuple of partition values is produced from a record."""

    spec_id: int
    fields: list[PartitionField] = field(default_factory=list)

    def partition_type(self, schema: Schema) -> StructType:
        """Return the struct type of partition tuples for ``schema``."""
        members = []
        for partition_field in self.fields:
            source = schema.look_up_field_by_id(partition_field.source_column_id)
            if source is None:
                raise IcelakeError(
                    ErrorKind.ICEBERG_DATA_INVALID,
                    f"Can't find field id {partition_field.source_column_id} in schema",
                )
            members.append(
                Field.optional(
                    partition_field.partition_field_id,
                    partition_field.name,
                    partition_field.transform.result_type(source.field_type),
                )
            )
        return StructType(members)

    def is_unpartitioned(self) -> bool:
        return not self.fields


class SortDirection(enum.Enum):
    """Sort direction of a sort field."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, s: str) -> SortDirection:
        try:
            return cls(s)
        except ValueError:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID, f'sort direction "{s}" is invalid'
            ) from None

    def __str__(self) -> str:
        return self.value


class NullOrder(enum.Enum):
    """Where nulls go when sorted."""

    FIRST = "nulls-first"
    LAST = "nulls-last"

    @classmethod
    def parse(cls, s: str) -> NullOrder:
        try:
            return cls(s)
        except ValueError:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID, f'null order "{s}" is invalid'
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SortField:
    """A field of a sort order."""

    source_column_id: int
    transform: Transform
    direction: SortDirection
    null_order: NullOrder


@dataclass
class SortOrder:
    """An ordered list of sort fields; order id 0 is the unsorted order."""

    order_id: int
    fields: list[SortField] = field(default_factory=list)