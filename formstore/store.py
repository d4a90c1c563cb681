"""Generic create/find/list/delete persistence for one flat entity kind."""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Mapping, Optional, Type

from sqlalchemy import Column, Float, Integer, MetaData, Table, Text, delete, func, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    ArgumentError,
    CompileError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)

from .collector import GrowableCollector
from .errors import ExecutionError, SchemaError, StatementError, StoreError
from .schema import ID_COLUMN, Entity, EntitySchema, FieldType
from .utils.numbers import INT64_MAX, INT64_MIN

logger = logging.getLogger(__name__)

_COLUMN_TYPES = {
    FieldType.INTEGER: Integer,
    FieldType.REAL: Float,
    FieldType.TEXT: Text,
    FieldType.BOOLEAN: Integer,
    FieldType.DATE: Text,
}

# Errors SQLite reports while preparing a statement (missing table, bad SQL).
_PREPARE_ERRORS = (OperationalError, ProgrammingError, CompileError, ArgumentError)


def _row_id(value: Any) -> int:
    """Identifiers are signed 64-bit integers, the range of a SQLite rowid."""

    identifier = int(value)
    if not INT64_MIN <= identifier <= INT64_MAX:
        raise ValueError(f"identifier {value!r} is outside the 64-bit range")
    return identifier


def build_table(schema: EntitySchema, metadata: MetaData) -> Table:
    """Declare the backing table: ``id`` followed by the fields in order."""

    columns = [Column(ID_COLUMN, Integer, primary_key=True, autoincrement=True)]
    for spec in schema.fields:
        columns.append(
            Column(
                spec.name,
                _COLUMN_TYPES[spec.type],
                nullable=not spec.required,
                unique=spec.unique,
            )
        )
    return Table(
        schema.table_name,
        metadata,
        *columns,
        sqlite_autoincrement=True,
        extend_existing=True,
    )


class EntityStore:
    """Persistence for the entity kind described by ``schema``.

    Every call is blocking and runs on the caller's thread. Calls are
    serialized with a lock so the storage handle sees a single writer.
    Failures are logged once here and raised as
    :class:`~formstore.errors.StoreError` subclasses; nothing is retried.
    """

    def __init__(
        self,
        engine: Engine,
        schema: EntitySchema,
        metadata: Optional[MetaData] = None,
    ) -> None:
        self._engine = engine
        self.schema = schema
        self._metadata = metadata if metadata is not None else MetaData()
        self.table = build_table(schema, self._metadata)
        self._lock = threading.RLock()

    @property
    def table_name(self) -> str:
        return self.schema.table_name

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------
    def create_table(self) -> bool:
        """Create the backing table if needed. Returns ``False`` on failure."""

        with self._lock:
            try:
                self.table.create(self._engine, checkfirst=True)
            except SQLAlchemyError:
                logger.error("Could not create table %s", self.table_name, exc_info=True)
                return False
        logger.info("Table '%s' verified / created.", self.table_name)
        return True

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def create(self, values: Mapping[str, Any], id: Optional[int] = None) -> Entity:
        """Insert one row and return it with its assigned identifier.

        Raises
        ------
        StatementError
            The insert could not be built: unknown field, a value that does
            not fit its declared type, or a missing table.
        ExecutionError
            The insert ran but did not complete, e.g. a NOT NULL or UNIQUE
            constraint failed. Nothing is persisted in that case.
        """

        try:
            row = self.schema.coerce(values)
            if id is not None:
                row[ID_COLUMN] = _row_id(id)
        except (SchemaError, ValueError, TypeError) as exc:
            raise self._failure(StatementError, "create", exc) from exc

        statement = insert(self.table).values(**row)
        with self._lock:
            try:
                with self._engine.begin() as connection:
                    result = connection.execute(statement)
                    identifier = result.inserted_primary_key[0]
            except SQLAlchemyError as exc:
                raise self._failure(self._classify(exc), "create", exc) from exc

        logger.debug("Inserted %s id=%s", self.schema.kind, identifier)
        return self.schema.entity(identifier, row)

    def find(self, id: int) -> Optional[Entity]:
        """Return the entity with ``id``, or ``None`` when no row matches."""

        try:
            id = _row_id(id)
        except (ValueError, TypeError) as exc:
            raise self._failure(StatementError, "find", exc) from exc
        statement = select(self.table).where(self.table.c[ID_COLUMN] == id)
        with self._lock:
            try:
                with self._engine.connect() as connection:
                    row = connection.execute(statement).mappings().first()
            except SQLAlchemyError as exc:
                raise self._failure(self._classify(exc), "find", exc) from exc

        if row is None:
            return None
        return self.schema.entity(row[ID_COLUMN], row)

    def list_all(self) -> List[Entity]:
        """Return every row in whatever order the engine scans them."""

        statement = select(self.table)
        collector: GrowableCollector[Entity] = GrowableCollector()
        with self._lock:
            try:
                with self._engine.connect() as connection:
                    for row in connection.execute(statement).mappings():
                        collector.append(self.schema.entity(row[ID_COLUMN], row))
            except SQLAlchemyError as exc:
                raise self._failure(self._classify(exc), "list", exc) from exc
        return collector.to_list()

    def delete(self, id: int) -> bool:
        """Delete the row with ``id``.

        Returns whether the statement executed, not whether a row was removed:
        deleting an absent identifier is a successful no-op.
        """

        try:
            id = _row_id(id)
        except (ValueError, TypeError):
            logger.error("Cannot delete %s id=%r", self.schema.kind, id, exc_info=True)
            return False
        statement = delete(self.table).where(self.table.c[ID_COLUMN] == id)
        with self._lock:
            try:
                with self._engine.begin() as connection:
                    removed = connection.execute(statement).rowcount
            except SQLAlchemyError:
                logger.error(
                    "Failed to delete %s id=%s", self.schema.kind, id, exc_info=True
                )
                return False

        logger.debug("Deleted %s id=%s (rows=%s)", self.schema.kind, id, removed)
        return True

    def count(self) -> int:
        statement = select(func.count()).select_from(self.table)
        with self._lock:
            try:
                with self._engine.connect() as connection:
                    return int(connection.execute(statement).scalar_one())
            except SQLAlchemyError as exc:
                raise self._failure(self._classify(exc), "count", exc) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _classify(exc: SQLAlchemyError) -> Type[StoreError]:
        if isinstance(exc, _PREPARE_ERRORS):
            return StatementError
        return ExecutionError

    def _failure(
        self, error_type: Type[StoreError], action: str, exc: BaseException
    ) -> StoreError:
        logger.error(
            "%s %s failed on %s: %s",
            self.schema.kind,
            action,
            self.table_name,
            exc,
            exc_info=True,
        )
        return error_type(f"{action} failed: {exc}", table=self.table_name)
