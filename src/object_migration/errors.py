"""Errors raised by stores, ledgers and the migration engine.

Per-key errors become `KeyFailure`s in the outcome; errors outside the
per-key work end the bulk call as `not_found` with the kind as its cause.
"""

from enum import StrEnum
from typing import final


class ErrorKind(StrEnum):
    """Why a migration step failed.

    `precondition_failed` is the store refusing a create-only copy because the
    destination exists. `conflict` is a resumption job changed by another
    consumer since it was read.
    """

    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    PROVIDER = "provider"


@final
class MigrationError(Exception):
    """A store, ledger or engine failure tagged with its `ErrorKind`."""

    __slots__ = ("kind", "message", "source")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PROVIDER,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source

    def __repr__(self) -> str:
        return f"MigrationError({self.message!r}, kind={self.kind!r})"
