"""Context types for migration operations.

Contexts describe *who* is operating on *what*. They are created by the
request handler and passed through the engine untouched.
"""

import json

from pydantic import BaseModel, Field


class User(BaseModel, frozen=True):
    """A pre-validated identity performing an operation."""

    email: str
    """E-mail address, or "anonymous"."""


class OperationContext(BaseModel, frozen=True):
    """Per-request context for a bulk operation."""

    org: str
    """Organization identifier; selects the `<org>-content` bucket."""

    key: str
    """Logical key the operation targets, without a leading slash."""

    ext: str | None = None
    """File extension when the key denotes a single object."""

    users: tuple[User, ...] = Field(default_factory=tuple)
    """Authenticated users performing the operation."""

    origin: str = ""
    """Public origin used to build fully-qualified document URLs."""

    @property
    def bucket(self) -> str:
        """Bucket holding the organization's content."""
        return f"{self.org}-content"

    def document_url(self, key: str) -> str:
        """Fully-qualified location of a document, as the collaboration service knows it."""
        return f"{self.origin}/source/{self.org}/{key}"

    def serialized_users(self) -> str:
        """Compact JSON form of the user list, as stored in object metadata."""
        return json.dumps([user.model_dump() for user in self.users], separators=(",", ":"))


class MigrationDetails(BaseModel, frozen=True):
    """Source, destination and resumption token of one bulk request."""

    source: str
    """Logical path being copied, moved or deleted."""

    destination: str | None = None
    """Target path. Unused for deletes."""

    continuation_token: str | None = None
    """Token returned by a previous partial response."""
