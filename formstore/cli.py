"""formstore - command-line access to an entity store.

Usage:
    formstore init
    formstore --entity product create name=Widget price=9.5 quantity=3
    formstore find 1
    formstore list
    formstore delete 1
    formstore serve --port 8080
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from . import create_app
from .config import get_settings
from .errors import FormstoreError, StoreError
from .schema import Entity, EntitySchema
from .store import EntityStore
from .utils.logging_setup import setup_logging

logger = logging.getLogger("formstore")

console = Console()


def _parse_assignments(schema: EntitySchema, assignments: Sequence[str]) -> dict:
    """Turn ``field=value`` arguments into typed create values."""

    pairs = []
    for item in assignments:
        name, separator, value = item.partition("=")
        if not separator:
            raise argparse.ArgumentTypeError(f"Expected FIELD=VALUE, got {item!r}")
        pairs.append((name, value))
    unknown = sorted({name for name, _ in pairs} - set(schema.field_names))
    if unknown:
        raise argparse.ArgumentTypeError(f"{schema.kind} has no field(s): {', '.join(unknown)}")
    return schema.coerce(dict(pairs))


def print_entities(schema: EntitySchema, entities: List[Entity]) -> None:
    table = Table(title=f"{schema.kind} ({schema.table_name})", box=box.SIMPLE)
    table.add_column("Id", style="cyan", justify="right")
    for spec in schema.fields:
        table.add_column(spec.display_label)
    for entity in entities:
        cells = ["" if entity[name] is None else str(entity[name]) for name in schema.field_names]
        table.add_row(str(entity.id), *cells)
    console.print(table)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------
def cmd_init(app, args: argparse.Namespace) -> int:
    """Report whether the app factory could create or verify the table."""
    store: EntityStore = app.entity_store
    if not app.table_ready:
        logger.error("Table %s could not be created", store.table_name)
        return 1
    console.print(f"Table {store.table_name} ready")
    return 0


def cmd_create(store: EntityStore, args: argparse.Namespace) -> int:
    try:
        values = _parse_assignments(store.schema, args.fields)
    except (argparse.ArgumentTypeError, ValueError, TypeError) as exc:
        logger.error("%s", exc)
        return 2
    entity = store.create(values, id=args.id)
    console.print(f"Created {store.schema.kind} with ID: {entity.id}")
    return 0


def cmd_find(store: EntityStore, args: argparse.Namespace) -> int:
    entity = store.find(args.id)
    if entity is None:
        logger.warning("%s %s not found", store.schema.kind, args.id)
        return 1
    print_entities(store.schema, [entity])
    return 0


def cmd_list(store: EntityStore, args: argparse.Namespace) -> int:
    entities = store.list_all()
    print_entities(store.schema, entities)
    console.print(f"Found {len(entities)} records")
    return 0


def cmd_delete(store: EntityStore, args: argparse.Namespace) -> int:
    if not store.delete(args.id):
        return 1
    console.print(f"Deleted {store.schema.kind} {args.id}")
    return 0


def cmd_serve(app, args: argparse.Namespace) -> int:
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


# ------------------------------------------------------------------
# CLI argument parser
# ------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="formstore",
        description="Create, inspect and serve flat entity tables.",
    )
    parser.add_argument("--database", help="SQLAlchemy URL (default: FORMSTORE_DATABASE_URL)")
    parser.add_argument("--entity", help="Entity kind, e.g. todo or product (default: FORMSTORE_ENTITY)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init", help="Create the backing table if it does not exist")

    create = commands.add_parser("create", help="Insert one entity")
    create.add_argument("fields", nargs="*", metavar="FIELD=VALUE")
    create.add_argument("--id", type=int, help="Explicit identifier")

    find = commands.add_parser("find", help="Show one entity")
    find.add_argument("id", type=int)

    commands.add_parser("list", help="Show every entity")

    remove = commands.add_parser("delete", help="Delete one entity")
    remove.add_argument("id", type=int)

    serve = commands.add_parser("serve", help="Run the HTTP interface")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--debug", action="store_true")

    return parser


_COMMANDS = {
    "create": cmd_create,
    "find": cmd_find,
    "list": cmd_list,
    "delete": cmd_delete,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings(database_url=args.database, entity=args.entity)
        setup_logging("DEBUG" if args.verbose else settings.log_level)
        app = create_app(settings)
    except (FormstoreError, ValidationError) as exc:
        logger.critical("%s", exc)
        return 1

    if args.command == "serve":
        return cmd_serve(app, args)
    if args.command == "init":
        return cmd_init(app, args)

    try:
        return _COMMANDS[args.command](app.entity_store, args)
    except StoreError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
