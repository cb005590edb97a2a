"""Data types for the migration engine.

These types represent the values that flow between the engine and its
collaborators:
- `ListPage` and `KeyPage` for listing results
- `ResumableJob` for ledger records
- `ObjectMetadata`, `ObjectHead` and `ObjectContent` for store objects
- `Outcome` and `MigrationResponse` for what a bulk request reports upward
"""

import json
import time
import uuid
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field

from object_migration.errors import ErrorKind
from object_migration.models.contexts import OperationContext


class InvalidationKind(StrEnum):
    """What happened to a page object, from the collaboration cache's view."""

    DELETED = "deleted"
    SYNCED = "synced"


class ListPage(BaseModel, frozen=True):
    """One page of a store prefix listing."""

    keys: tuple[str, ...] = ()
    """Keys returned by the store, in store order."""

    next_token: str | None = None
    """Store cursor for the next page, if any."""


class KeyPage(BaseModel, frozen=True):
    """A batch of resolved store keys plus the store cursor for more."""

    keys: tuple[str, ...] = ()
    """Full store keys, synthetic keys first."""

    continuation_token: str | None = None
    """Store cursor; None when the listing is exhausted."""


class ResumableJob(BaseModel, frozen=True):
    """Keys a bulk operation still has to process."""

    token: str
    """Opaque job token handed to the caller."""

    keys: tuple[str, ...] = ()
    """Remaining keys, consumed from the front."""

    revision: str | None = None
    """Ledger revision the job was read at, used for compare-and-swap."""

    @staticmethod
    def copy_token(source: str, destination: str | None) -> str:
        return f"copy-{source}-{destination}-{uuid.uuid4()}"

    @staticmethod
    def delete_token(source: str) -> str:
        return f"delete-{source}-{uuid.uuid4()}"

    def take(self, count: int) -> tuple[tuple[str, ...], Self]:
        """Split off the first `count` keys; return them and the shrunk job."""
        head, rest = self.keys[:count], self.keys[count:]
        return head, self.model_copy(update={"keys": rest})


class ObjectMetadata(BaseModel, frozen=True):
    """Identity metadata stamped on an object that starts a new history."""

    id: str
    version: str
    timestamp: str
    users: str
    path: str

    @classmethod
    def fresh(cls, context: OperationContext, path: str, *, object_id: str | None = None) -> Self:
        """New version identity; new object identity unless `object_id` is given."""
        return cls(
            id=object_id or str(uuid.uuid4()),
            version=str(uuid.uuid4()),
            timestamp=str(int(time.time() * 1000)),
            users=context.serialized_users(),
            path=path,
        )

    def to_store(self) -> dict[str, str]:
        """User-metadata mapping as written to the store."""
        return {
            "ID": self.id,
            "Version": self.version,
            "Timestamp": self.timestamp,
            "Users": self.users,
            "Path": self.path,
        }


class ObjectHead(BaseModel, frozen=True):
    """Metadata of an existing store object."""

    key: str
    metadata: dict[str, str] = Field(default_factory=dict)
    content_type: str | None = None
    content_length: int = 0
    etag: str | None = None


class ObjectContent(BaseModel, frozen=True):
    """Body of a store object."""

    body: bytes
    content_type: str | None = None

    @property
    def length(self) -> int:
        return len(self.body)


class KeyFailure(BaseModel, frozen=True):
    """A per-key operation that did not succeed."""

    key: str
    kind: ErrorKind
    message: str = ""


class OutcomeKind(StrEnum):
    """Result classes a bulk coordinator reports upward."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


_STATUS = {
    OutcomeKind.COMPLETE: 204,
    OutcomeKind.PARTIAL: 206,
    OutcomeKind.CONFLICT: 409,
    OutcomeKind.NOT_FOUND: 404,
}


class MigrationResponse(BaseModel, frozen=True):
    """Status and body as handed to the HTTP layer."""

    status: int
    body: str | None = None


class Outcome(BaseModel, frozen=True):
    """Tagged result of a bulk copy or delete.

    `cause` keeps the reason behind a conflict or not-found outcome so that
    callers can tell a missing job from an unreachable store, while the
    status code mapping stays the same.
    """

    kind: OutcomeKind
    continuation_token: str | None = None
    cause: ErrorKind | None = None
    failures: tuple[KeyFailure, ...] = ()

    @classmethod
    def complete(cls, failures: tuple[KeyFailure, ...] = ()) -> Self:
        return cls(kind=OutcomeKind.COMPLETE, failures=failures)

    @classmethod
    def partial(cls, token: str, failures: tuple[KeyFailure, ...] = ()) -> Self:
        return cls(kind=OutcomeKind.PARTIAL, continuation_token=token, failures=failures)

    @classmethod
    def conflict(cls) -> Self:
        return cls(kind=OutcomeKind.CONFLICT, cause=ErrorKind.CONFLICT)

    @classmethod
    def not_found(cls, cause: ErrorKind = ErrorKind.NOT_FOUND) -> Self:
        return cls(kind=OutcomeKind.NOT_FOUND, cause=cause)

    @property
    def status(self) -> int:
        return _STATUS[self.kind]

    def to_response(self) -> MigrationResponse:
        """Map to the status/body pair exposed by the HTTP layer."""
        if self.kind is OutcomeKind.COMPLETE:
            return MigrationResponse(status=self.status)
        if self.kind is OutcomeKind.PARTIAL:
            body = json.dumps({"continuationToken": self.continuation_token})
            return MigrationResponse(status=self.status, body=body)
        return MigrationResponse(status=self.status, body="")
