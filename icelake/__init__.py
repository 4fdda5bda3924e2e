"""In-memory table-format types, specs, table metadata and Arrow-style conversion."""

__version__ = "0.1.0"
__all__ = [
    "types",
    "spec",
    "metadata",
    "arrow_types",
    "arrow_values",
    "arrow_arrays",
]