# icelake

A pure-Python, in-memory model of table-format data types and metadata:
primitive and nested types, typed values, partition transforms and specs,
sort orders, snapshots and table metadata. It also converts between these
types and a small Arrow-style type model, and turns Arrow-style arrays into
lists of typed values.

The package has no dependencies beyond the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `icelake.types`: the types `Primitive` (with `PrimitiveKind`,
  `Primitive.decimal` and `Primitive.fixed`), `Field`, `StructType`,
  `ListType`, `MapType` and `Schema`; the values `PrimitiveValue`,
  `MapValue` and `StructValue`; `StructValueBuilder`, which checks that
  every field is present and required fields are not null; and
  `serialize_value`. Errors are raised as `IcelakeError`, whose `kind` is an
  `ErrorKind`.
- `icelake.spec`: `Transform` (with `TransformKind`, `Transform.parse`,
  `result_type`), `PartitionField`, `PartitionSpec` (`partition_type`,
  `is_unpartitioned`), `SortField`, `SortOrder`, `SortDirection` and
  `NullOrder`.
- `icelake.metadata`: `TableMetadata` with lookups of schemas, partition
  specs, snapshots and snapshot references, `set_snapshot_ref` and
  `add_snapshot`; `Snapshot`, `SnapshotReference`, `SnapshotReferenceType`,
  `SnapshotLog`, `MetadataLog` and `TableFormatVersion`.
- `icelake.arrow_types`: the Arrow-style model `ArrowDataType`,
  `ArrowTypeId`, `TimeUnit`, `ArrowField` and `ArrowSchema`, and the
  conversions `schema_to_arrow`, `field_to_arrow`, `type_to_arrow`,
  `primitive_to_arrow` and `arrow_to_any`.
- `icelake.arrow_values`: `to_primitive`, converting one native Arrow value
  of a given data type into a `PrimitiveValue`.
- `icelake.arrow_arrays`: `ArrowArray`, `to_anyvalue_array`,
  `to_anyvalue_array_with_type` and `struct_to_anyvalue_array_with_type`.

## Examples

Building and serializing a struct value:

```python
from icelake.types import (
    Field, Primitive, PrimitiveKind, PrimitiveValue, StructType, StructValueBuilder,
)

struct_type = StructType([
    Field.optional(1, "a", Primitive.INT),
    Field.required(2, "b", Primitive.STRING),
])

builder = StructValueBuilder(struct_type)
builder.add_field(1, None)
builder.add_field(2, PrimitiveValue(PrimitiveKind.STRING, "hello"))
value = builder.build()

print(value.serialize())  # {'a': None, 'b': 'hello'}
```

Parsing a partition transform:

```python
from icelake.spec import Transform
from icelake.types import Primitive

transform = Transform.parse("bucket[16]")
print(transform)                                     # bucket[16]
print(transform.result_type(Primitive.STRING) == Primitive.INT)  # True
```

Converting an Arrow-style struct type; members are numbered by position:

```python
from icelake.arrow_types import ArrowDataType, ArrowField, ArrowTypeId, arrow_to_any

struct = ArrowDataType(
    ArrowTypeId.STRUCT,
    fields=(
        ArrowField("a", ArrowDataType.INT32, True),
        ArrowField("b", ArrowDataType.UTF8, False),
    ),
)
struct_type = arrow_to_any(struct)
print(struct_type.lookup_field(1).name)  # b
```

Invalid input raises `IcelakeError`; its `kind` tells the category, such as
`ErrorKind.ICEBERG_DATA_INVALID` or `ErrorKind.DATA_TYPE_UNSUPPORTED`.

## What it does not do

Everything here lives in memory. The package does not read or write table
metadata files, manifest lists, manifests or data files, does not model
manifest entries or data files, and has no storage layer, catalog or
transactions. The Arrow-style types and arrays are plain Python objects; the
package does not work with real Arrow buffers.