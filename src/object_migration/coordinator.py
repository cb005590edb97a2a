"""Batching, fan-out and resumption shared by the bulk copy and delete.

One call processes at most `batch_ceiling` keys. Anything left over, whether
from further store pages or from an oversized job, is parked in the
resumption ledger and the caller gets a token to continue with.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeAlias

from object_migration.env import MigrationEnv
from object_migration.errors import ErrorKind, MigrationError
from object_migration.listing import drain, list_keys
from object_migration.models.contexts import MigrationDetails, OperationContext
from object_migration.models.datatypes import KeyFailure, Outcome, ResumableJob
from object_migration.observability import log_event

logger = logging.getLogger(__name__)

KeyOperation: TypeAlias = Callable[[str], Awaitable[KeyFailure | None]]


async def fan_out(
    keys: Sequence[str],
    operation: KeyOperation,
    *,
    max_concurrency: int,
    timeout: float | None = None,
) -> tuple[KeyFailure, ...]:
    """Run operation over every key and wait for all of them.

    At most `max_concurrency` operations are in flight. A store error or a
    timeout on one key is recorded as that key's failure; its siblings run
    to completion regardless.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def run(key: str) -> KeyFailure | None:
        async with semaphore:
            try:
                async with asyncio.timeout(timeout):
                    return await operation(key)
            except TimeoutError:
                failure = KeyFailure(key=key, kind=ErrorKind.TIMEOUT, message="timed out")
            except MigrationError as e:
                failure = KeyFailure(key=key, kind=e.kind, message=e.message)
        log_event(
            logger,
            "key failed",
            level=logging.WARNING,
            key=key,
            kind=failure.kind,
            error=failure.message,
        )
        return failure

    results = await asyncio.gather(*(run(key) for key in keys), return_exceptions=True)
    failures: list[KeyFailure] = []
    for result in results:
        if isinstance(result, BaseException):
            raise result
        if result is not None:
            failures.append(result)
    return tuple(failures)


async def _plan(
    env: MigrationEnv,
    context: OperationContext,
    details: MigrationDetails,
) -> tuple[tuple[str, ...], tuple[str, ...], str | None]:
    """Pick this call's batch; return it, the remainder and the job revision read."""
    ceiling = env.params.batch_ceiling

    if details.continuation_token:
        job = await env.ledger.get(details.continuation_token)
        if job is None:
            msg = f"Job '{details.continuation_token}' not found"
            raise MigrationError(msg, kind=ErrorKind.NOT_FOUND)
        batch, rest = job.take(ceiling)
        return batch, rest.keys, job.revision

    page = await list_keys(env.store, context, page_size=env.params.page_size)
    keys = page.keys
    remainder: tuple[str, ...] = ()
    if page.continuation_token:
        drained = await drain(
            env.store, context, page.continuation_token, page_size=env.params.page_size
        )
        remainder = tuple(drained)
    if len(keys) > ceiling:
        keys, remainder = keys[:ceiling], keys[ceiling:] + remainder
    return keys, remainder, None


async def run_bulk(
    env: MigrationEnv,
    context: OperationContext,
    details: MigrationDetails,
    operation: KeyOperation,
    mint_token: Callable[[], str],
) -> Outcome:
    """Process one batch of the keys details covers and report the outcome."""
    try:
        batch, remainder, revision = await _plan(env, context, details)

        failures = await fan_out(
            batch,
            operation,
            max_concurrency=env.params.max_concurrency,
            timeout=env.params.per_key_timeout,
        )

        if remainder:
            token = details.continuation_token or mint_token()
            job = ResumableJob(token=token, keys=remainder)
            await env.ledger.put(job, expected_revision=revision)
            log_event(logger, "job parked", token=token, done=len(batch), left=len(remainder))
            return Outcome.partial(token, failures)

        if details.continuation_token:
            await env.ledger.delete(details.continuation_token)
            log_event(logger, "job finished", token=details.continuation_token, done=len(batch))
        return Outcome.complete(failures)
    except MigrationError as e:
        log_event(
            logger,
            "bulk operation failed",
            level=logging.WARNING,
            source=details.source,
            kind=e.kind,
            error=e.message,
        )
        return Outcome.not_found(e.kind)
    except Exception:
        logger.exception("bulk operation failed source=%s", details.source)
        return Outcome.not_found(ErrorKind.PROVIDER)
