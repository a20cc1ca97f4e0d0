from lib.tabular.codec import (
    Table,
    parse,
    parse_table,
    read_table,
    serialize,
    serialize_table,
    write_table,
    write_text_atomic,
)

__all__ = [
    "Table",
    "parse",
    "parse_table",
    "read_table",
    "serialize",
    "serialize_table",
    "write_table",
    "write_text_atomic",
]
