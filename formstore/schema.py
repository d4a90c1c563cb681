"""Declarative field sets for flat entity kinds.

An :class:`EntitySchema` lists the columns of one table in declaration order.
The store, the dispatcher and the page template all work from the schema, so a
new entity kind only needs a declaration (see :mod:`formstore.entities`).
"""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .errors import SchemaError
from .utils.numbers import INT64_MAX, INT64_MIN, parse_float_prefix, parse_int_prefix

ID_COLUMN = "id"

_TRUTHY = {"1", "true", "yes", "on"}


class FieldType(str, enum.Enum):
    INTEGER = "integer"
    REAL = "real"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"

    @classmethod
    def parse(cls, name: str) -> "FieldType":
        """Accept both the storage names and the declaration aliases."""

        aliases = {
            "int": cls.INTEGER,
            "float": cls.REAL,
            "string": cls.TEXT,
            "str": cls.TEXT,
            "bool": cls.BOOLEAN,
            "datetime": cls.DATE,
        }
        key = name.strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError as exc:
            raise SchemaError(f"Unknown field type {name!r}") from exc

    @property
    def input_type(self) -> str:
        return {
            FieldType.INTEGER: "number",
            FieldType.REAL: "number",
            FieldType.TEXT: "text",
            FieldType.BOOLEAN: "checkbox",
            FieldType.DATE: "date",
        }[self]

    def coerce(self, value: Any) -> Any:
        """Convert a Python value to its stored representation.

        Raises ``ValueError``/``TypeError`` when the value cannot represent
        this type.
        """

        if value is None:
            return None
        if self is FieldType.BOOLEAN:
            if isinstance(value, str):
                return 1 if value.strip().lower() in _TRUTHY else 0
            return 1 if value else 0
        if self is FieldType.INTEGER:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(f"{value!r} is not an integer")
            number = int(value)
            if not INT64_MIN <= number <= INT64_MAX:
                raise ValueError(f"{value!r} does not fit a 64-bit integer column")
            return number
        if self is FieldType.REAL:
            return float(value)
        if self is FieldType.DATE and isinstance(value, (dt.date, dt.datetime)):
            return value.isoformat()
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def from_form(self, raw: str) -> Any:
        """Convert a submitted form value the way a C ``atoll``/``atof`` would."""

        if self is FieldType.BOOLEAN:
            return 1
        if self is FieldType.INTEGER:
            return parse_int_prefix(raw)
        if self is FieldType.REAL:
            return parse_float_prefix(raw)
        return raw

    @property
    def form_default(self) -> Any:
        if self is FieldType.REAL:
            return 0.0
        if self in (FieldType.INTEGER, FieldType.BOOLEAN):
            return 0
        return ""


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: FieldType
    required: bool = False
    unique: bool = False
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name.isidentifier():
            raise SchemaError(f"Field name {self.name!r} is not a valid identifier")
        if self.name.lower() == ID_COLUMN:
            raise SchemaError("The id column is implicit and cannot be declared")
        if not isinstance(self.type, FieldType):
            object.__setattr__(self, "type", FieldType.parse(str(self.type)))

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()


@dataclass(frozen=True)
class EntitySchema:
    """Field set of one entity kind, backed by a single table."""

    kind: str
    fields: Tuple[FieldSpec, ...]
    table_name: str = ""

    def __post_init__(self) -> None:
        if not self.kind.isidentifier():
            raise SchemaError(f"Entity kind {self.kind!r} is not a valid identifier")
        if not self.fields:
            raise SchemaError(f"{self.kind} declares no fields")
        object.__setattr__(self, "fields", tuple(self.fields))
        names = [spec.name for spec in self.fields]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise SchemaError(f"{self.kind} declares duplicate fields: {', '.join(duplicates)}")
        if not self.table_name:
            object.__setattr__(self, "table_name", self.kind.lower() + "s")
        elif not self.table_name.isidentifier():
            raise SchemaError(f"Table name {self.table_name!r} is not a valid identifier")

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def column_names(self) -> Tuple[str, ...]:
        return (ID_COLUMN,) + self.field_names

    def get_field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def coerce(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate ``values`` against the declared fields.

        Unknown names raise :class:`SchemaError`; values that cannot be
        converted raise ``ValueError`` or ``TypeError``. Missing fields are
        left out so the storage layer decides whether they are acceptable.
        """

        unknown = sorted(set(values) - set(self.field_names))
        if unknown:
            raise SchemaError(f"{self.kind} has no field(s): {', '.join(unknown)}")
        return {
            spec.name: spec.type.coerce(values[spec.name])
            for spec in self.fields
            if spec.name in values
        }

    def form_values(self, pairs: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
        """Build create arguments from decoded form pairs.

        Every declared field gets a value: absent text fields become ``""``,
        absent numbers and booleans ``0``. A boolean field that appears at all
        is set. When a name repeats, the last value wins. Unknown names are
        ignored.
        """

        values = {spec.name: spec.type.form_default for spec in self.fields}
        declared = {spec.name: spec for spec in self.fields}
        for name, raw in pairs:
            spec = declared.get(name)
            if spec is not None:
                values[name] = spec.type.from_form(raw)
        return values

    def entity(self, identifier: int, row: Mapping[str, Any]) -> "Entity":
        return Entity(
            kind=self.kind,
            id=int(identifier),
            values={name: row.get(name) for name in self.field_names},
        )


@dataclass(frozen=True)
class Entity:
    """One stored row: identifier plus declared fields in order.

    Entities hash by kind, identifier and field values, so field values must
    themselves be hashable (every stored column type is).
    """

    kind: str
    id: int
    values: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        if name == ID_COLUMN:
            return self.id
        return self.values[name]

    def get(self, name: str, default: Any = None) -> Any:
        if name == ID_COLUMN:
            return self.id
        return self.values.get(name, default)

    def __hash__(self) -> int:
        return hash((self.kind, self.id, tuple(self.values.items())))

