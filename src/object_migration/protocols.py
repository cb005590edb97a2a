"""Core protocols for the collaborators the migration engine consumes."""

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from object_migration.models.datatypes import (
    InvalidationKind,
    ListPage,
    ObjectContent,
    ObjectHead,
    ResumableJob,
)


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for the flat-key object store holding the namespace."""

    async def list_by_prefix(
        self,
        bucket: str,
        prefix: str,
        max_keys: int,
        continuation_token: str | None = None,
    ) -> ListPage:
        """Return one page of keys under prefix plus the store's next-page token."""
        ...

    async def copy(
        self,
        bucket: str,
        source_key: str,
        dest_key: str,
        metadata: Mapping[str, str] | None = None,
        *,
        conditional: bool = False,
    ) -> None:
        """Server-side copy.

        Raises `precondition_failed` when `conditional` is set and the
        destination exists, `not_found` when the source is missing.
        """
        ...

    async def head(self, bucket: str, key: str) -> ObjectHead | None:
        """Return the object's metadata, or None when it does not exist."""
        ...

    async def get_content(self, bucket: str, key: str) -> ObjectContent:
        """Fetch the object's body. Raises `not_found` when missing."""
        ...

    async def put(
        self,
        bucket: str,
        key: str,
        content: ObjectContent,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        """Write content at key, replacing whatever is there."""
        ...

    async def delete(self, bucket: str, key: str) -> None:
        """Delete the object at key."""
        ...

    async def signed_delete_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        """Return a presigned URL that deletes key when called with DELETE."""
        ...


@runtime_checkable
class ResumptionLedger(Protocol):
    """Protocol for the durable job store used to resume bulk operations."""

    async def get(self, token: str) -> ResumableJob | None:
        """Return the job stored under token, or None."""
        ...

    async def put(self, job: ResumableJob, *, expected_revision: str | None = None) -> None:
        """Store job under its token.

        When `expected_revision` is given the write only succeeds if the
        stored job still carries that revision; otherwise `conflict` is raised.
        """
        ...

    async def delete(self, token: str) -> None:
        """Remove the job stored under token."""
        ...


@runtime_checkable
class CacheInvalidator(Protocol):
    """Protocol for the live-collaboration cache notifier."""

    async def notify(self, kind: InvalidationKind, document_url: str) -> None:
        """Tell the collaboration service a document changed. Never raises."""
        ...
