"""Writes that keep the destination's version history."""

import logging

from object_migration.models.contexts import OperationContext
from object_migration.models.datatypes import ObjectContent, ObjectMetadata
from object_migration.observability import log_event
from object_migration.protocols import ObjectStore

logger = logging.getLogger(__name__)

VERSIONS_PREFIX = ".da-versions"


def version_key(object_id: str, version: str, key: str) -> str:
    """Where a superseded version of an object is archived."""
    name = key.rsplit("/", 1)[-1]
    if "." in name:
        return f"{VERSIONS_PREFIX}/{object_id}/{version}.{name.rsplit('.', 1)[-1]}"
    return f"{VERSIONS_PREFIX}/{object_id}/{version}"


async def put_object_with_version(
    store: ObjectStore,
    context: OperationContext,
    key: str,
    content: ObjectContent,
) -> ObjectMetadata:
    """Write content at key, archiving what was there first.

    An existing object keeps its ID so its history stays attached; only the
    version changes. A missing object, or one without an ID, starts a new
    history.
    """
    bucket = context.bucket
    current = await store.head(bucket, key)
    # S3 hands user metadata back lower-cased
    existing = {k.lower(): v for k, v in current.metadata.items()} if current else {}
    object_id = existing.get("id")

    if current is None or not object_id:
        metadata = ObjectMetadata.fresh(context, key)
        await store.put(bucket, key, content, metadata.to_store())
        return metadata

    previous = await store.get_content(bucket, key)
    archive = version_key(object_id, existing.get("version", "initial"), key)
    await store.put(bucket, archive, previous, current.metadata)
    log_event(logger, "archived version", key=key, archive=archive)

    metadata = ObjectMetadata.fresh(context, key, object_id=object_id)
    await store.put(bucket, key, content, metadata.to_store())
    return metadata
