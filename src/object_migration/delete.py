"""Bulk delete of a key or a whole directory subtree."""

import logging
from functools import partial

import httpx

from object_migration.coordinator import run_bulk
from object_migration.env import MigrationEnv
from object_migration.errors import ErrorKind, MigrationError
from object_migration.models.contexts import MigrationDetails, OperationContext
from object_migration.models.datatypes import InvalidationKind, KeyFailure, Outcome, ResumableJob
from object_migration.observability import log_event

logger = logging.getLogger(__name__)


def _failure(key: str, error: Exception) -> KeyFailure:
    if isinstance(error, MigrationError):
        return KeyFailure(key=key, kind=error.kind, message=error.message)
    if isinstance(error, httpx.HTTPStatusError):
        kind = ErrorKind.NOT_FOUND if error.response.status_code == 404 else ErrorKind.PROVIDER
        return KeyFailure(key=key, kind=kind, message=str(error))
    return KeyFailure(key=key, kind=ErrorKind.CONNECTION, message=str(error))


async def delete_object(
    env: MigrationEnv,
    context: OperationContext,
    key: str,
) -> KeyFailure | None:
    """Delete one key through a short-lived presigned URL.

    Failures are logged and returned, never retried.
    """
    try:
        url = await env.store.signed_delete_url(context.bucket, key, env.params.signed_url_ttl)
        response = await env.http.delete(url)
        _ = response.raise_for_status()
    except (MigrationError, httpx.HTTPError) as e:
        failure = _failure(key, e)
        log_event(logger, "delete failed", level=logging.WARNING, key=key, kind=failure.kind)
        return failure

    if key.endswith(env.params.page_extension):
        await env.invalidator.notify(InvalidationKind.DELETED, context.document_url(key))
    return None


async def delete_objects(
    env: MigrationEnv,
    context: OperationContext,
    details: MigrationDetails,
) -> Outcome:
    """Delete everything the context's key covers.

    Per-key failures are reported in `Outcome.failures` but do not change
    the status: a batch with failed deletes still completes.
    """
    return await run_bulk(
        env,
        context,
        details,
        partial(delete_object, env, context),
        partial(ResumableJob.delete_token, details.source),
    )
