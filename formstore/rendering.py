"""HTML page rendering for the entity listing."""

from __future__ import annotations

from typing import Dict, Sequence

from flask import render_template

from .schema import Entity, EntitySchema, FieldType

OUTCOME_MESSAGES: Dict[str, str] = {
    "created": "Item added.",
    "deleted": "Item deleted.",
    "failed": "The last change could not be saved.",
}


def format_value(value: object, field_type: FieldType) -> str:
    if field_type is FieldType.BOOLEAN:
        return "Yes" if value else "No"
    if value is None:
        return ""
    if field_type is FieldType.REAL:
        return f"{float(value):.2f}"
    return str(value)


class TemplateRenderer:
    """Render a table of entities plus a create form with Jinja2.

    Must be called inside a Flask application context.
    """

    def __init__(
        self,
        template: str = "listing.html",
        title: str | None = None,
        create_path: str | None = None,
        delete_path: str | None = None,
    ) -> None:
        self.template = template
        self.title = title
        self.create_path = create_path
        self.delete_path = delete_path

    def __call__(self, entities: Sequence[Entity], schema: EntitySchema, outcome: str) -> str:
        return render_template(
            self.template,
            title=self.title or f"{schema.kind}App",
            schema=schema,
            entities=entities,
            outcome=outcome,
            message=OUTCOME_MESSAGES.get(outcome, ""),
            create_path=self.create_path or f"/{schema.table_name}/create",
            delete_path=self.delete_path or f"/{schema.table_name}/delete",
            format_value=format_value,
            FieldType=FieldType,
        )
