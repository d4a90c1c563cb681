"""Built-in entity kinds."""

from __future__ import annotations

from typing import Dict

from .errors import SchemaError
from .schema import EntitySchema, FieldSpec, FieldType

PRODUCT = EntitySchema(
    kind="Product",
    fields=(
        FieldSpec("name", FieldType.TEXT, required=True),
        FieldSpec("price", FieldType.REAL, required=True),
        FieldSpec("quantity", FieldType.INTEGER),
    ),
)

CATEGORY = EntitySchema(
    kind="Category",
    table_name="categories",
    fields=(FieldSpec("name", FieldType.TEXT, required=True, unique=True),),
)

TODO = EntitySchema(
    kind="Todo",
    fields=(
        FieldSpec("title", FieldType.TEXT, required=True),
        FieldSpec("description", FieldType.TEXT, required=True),
        FieldSpec("completed", FieldType.BOOLEAN),
    ),
)

STUDENT = EntitySchema(
    kind="Student",
    fields=(
        FieldSpec("name", FieldType.TEXT),
        FieldSpec("class_name", FieldType.TEXT, label="Class"),
    ),
)

ENTITY_KINDS: Dict[str, EntitySchema] = {
    schema.kind.lower(): schema for schema in (PRODUCT, CATEGORY, TODO, STUDENT)
}


def get_schema(kind: str) -> EntitySchema:
    """Look up a built-in kind by case-insensitive name or table name."""

    key = kind.strip().lower()
    if key in ENTITY_KINDS:
        return ENTITY_KINDS[key]
    for schema in ENTITY_KINDS.values():
        if schema.table_name == key:
            return schema
    known = ", ".join(sorted(ENTITY_KINDS))
    raise SchemaError(f"Unknown entity kind {kind!r}; expected one of: {known}")
