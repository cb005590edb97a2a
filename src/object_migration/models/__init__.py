"""Pydantic models shared by the engine and its collaborators."""

from object_migration.models.contexts import MigrationDetails, OperationContext, User
from object_migration.models.datatypes import (
    InvalidationKind,
    KeyFailure,
    KeyPage,
    ListPage,
    MigrationResponse,
    ObjectContent,
    ObjectHead,
    ObjectMetadata,
    Outcome,
    OutcomeKind,
    ResumableJob,
)
from object_migration.models.params import ListRequest, MigrationParams

__all__ = [
    # Contexts (per-request state)
    "MigrationDetails",
    "OperationContext",
    "User",
    # Params (configuration)
    "ListRequest",
    "MigrationParams",
    # Data types
    "InvalidationKind",
    "KeyFailure",
    "KeyPage",
    "ListPage",
    "MigrationResponse",
    "ObjectContent",
    "ObjectHead",
    "ObjectMetadata",
    "Outcome",
    "OutcomeKind",
    "ResumableJob",
]
