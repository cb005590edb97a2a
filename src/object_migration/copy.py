"""Bulk copy and rename of a key or a whole directory subtree."""

import logging
from functools import partial

from object_migration.coordinator import run_bulk
from object_migration.env import MigrationEnv
from object_migration.errors import ErrorKind, MigrationError
from object_migration.models.contexts import MigrationDetails, OperationContext
from object_migration.models.datatypes import (
    InvalidationKind,
    KeyFailure,
    ObjectMetadata,
    Outcome,
    ResumableJob,
)
from object_migration.observability import log_event
from object_migration.versions import put_object_with_version

logger = logging.getLogger(__name__)


def destination_key(source_key: str, details: MigrationDetails) -> str:
    """Swap the source path for the destination path in source_key."""
    return source_key.replace(details.source, details.destination or "", 1)


async def _copy(
    env: MigrationEnv,
    context: OperationContext,
    source_key: str,
    dest_key: str,
    *,
    is_rename: bool,
) -> None:
    bucket = context.bucket

    # A copy is a new object: new ID and version, so it does not share the
    # source's history. A rename keeps the source's metadata and history.
    metadata = None if is_rename else ObjectMetadata.fresh(context, dest_key).to_store()

    try:
        await env.store.copy(bucket, source_key, dest_key, metadata, conditional=True)
    except MigrationError as e:
        if e.kind is not ErrorKind.PRECONDITION_FAILED:
            raise
        log_event(logger, "destination exists", src=source_key, dest=dest_key, rename=is_rename)
        if is_rename:
            await env.store.copy(bucket, source_key, dest_key)
        else:
            content = await env.store.get_content(bucket, source_key)
            _ = await put_object_with_version(env.store, context, dest_key, content)


async def copy_file(
    env: MigrationEnv,
    context: OperationContext,
    source_key: str,
    details: MigrationDetails,
    *,
    is_rename: bool = False,
) -> KeyFailure | None:
    """Copy one key to its place under the destination path.

    Returns a `not_found` failure when the source vanished; other store
    errors are raised.
    """
    dest_key = destination_key(source_key, details)
    try:
        await _copy(env, context, source_key, dest_key, is_rename=is_rename)
    except MigrationError as e:
        if e.kind is not ErrorKind.NOT_FOUND:
            raise
        log_event(logger, "copy source missing", src=source_key, dest=dest_key)
        return KeyFailure(key=source_key, kind=e.kind, message=e.message)
    finally:
        if dest_key.endswith(env.params.page_extension):
            await env.invalidator.notify(InvalidationKind.SYNCED, context.document_url(dest_key))
    return None


async def copy_objects(
    env: MigrationEnv,
    context: OperationContext,
    details: MigrationDetails,
    *,
    is_rename: bool = False,
) -> Outcome:
    """Copy (or rename) everything the context's key covers to details.destination."""
    if details.source == details.destination:
        return Outcome.conflict()
    if not details.destination:
        log_event(logger, "copy without destination", level=logging.WARNING, src=details.source)
        return Outcome.not_found(ErrorKind.INVALID_INPUT)

    return await run_bulk(
        env,
        context,
        details,
        partial(copy_file, env, context, details=details, is_rename=is_rename),
        partial(ResumableJob.copy_token, details.source, details.destination),
    )
