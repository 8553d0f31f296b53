"""Errors raised by the ledger, catalog and store."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error the engine raises on purpose."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """A command carried a value the engine refuses to apply."""


class NotFoundError(LedgerError):
    """An order, item, payment or product id is unknown."""

    def __init__(self, message: str, entity_id: str | None = None) -> None:
        super().__init__(message)
        self.entity_id = entity_id


class CorruptStateError(LedgerError):
    """Persisted data could not be read; the affected collections were treated as empty."""

    def __init__(self, message: str, keys: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.keys = keys
