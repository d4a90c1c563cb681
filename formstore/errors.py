"""Exception hierarchy shared by the store, the schema layer and the dispatcher."""

from __future__ import annotations


class FormstoreError(Exception):
    """Base class for every error raised by formstore."""


class SchemaError(FormstoreError):
    """Raised when an entity schema declaration is invalid."""


class StoreError(FormstoreError):
    """Raised when a storage operation cannot be completed.

    The store logs the failure before raising so callers only need to decide
    how to present it. No operation is retried.
    """

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.table = table

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}: {self.message}"
        return self.message


class StatementError(StoreError):
    """The query or command could not be built or prepared."""


class ExecutionError(StoreError):
    """A prepared statement failed to run to completion."""


class DispatchError(FormstoreError):
    """Raised when a request is driven past its terminal state."""
