"""Resumption ledgers: where bulk operations park the keys they still owe.

A job is a JSON array of store keys addressed by an opaque token. Only the
coordinator holding a token reads, shrinks and finally deletes it. Writers
that replace a job they have read pass the revision they read so a competing
writer is detected instead of silently overwritten.
"""

import asyncio
import json
from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar

from botocore.exceptions import BotoCoreError, ClientError

from object_migration.errors import ErrorKind, MigrationError
from object_migration.models.datatypes import ResumableJob
from object_migration.providers.s3 import error_kind

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def _decode(token: str, raw: bytes | str) -> tuple[str, ...]:
    try:
        keys = json.loads(raw)
    except ValueError as e:
        msg = f"Job '{token}' is not valid JSON"
        raise MigrationError(msg, kind=ErrorKind.INVALID_INPUT, source=e) from e
    if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
        msg = f"Job '{token}' is not a list of keys"
        raise MigrationError(msg, kind=ErrorKind.INVALID_INPUT)
    return tuple(keys)


class MemoryLedger:
    """In-process ledger, for single-worker deployments and tests."""

    __slots__: ClassVar[tuple[str, str]] = ("_jobs", "_lock")

    def __init__(self) -> None:
        self._jobs: dict[str, tuple[str, int]] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, token: object) -> bool:
        return token in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    async def get(self, token: str) -> ResumableJob | None:
        async with self._lock:
            stored = self._jobs.get(token)
        if stored is None:
            return None
        raw, revision = stored
        return ResumableJob(token=token, keys=_decode(token, raw), revision=str(revision))

    async def put(self, job: ResumableJob, *, expected_revision: str | None = None) -> None:
        async with self._lock:
            current = self._jobs.get(job.token)
            if expected_revision is not None and (
                current is None or str(current[1]) != expected_revision
            ):
                msg = f"Job '{job.token}' changed since revision {expected_revision}"
                raise MigrationError(msg, kind=ErrorKind.CONFLICT)
            revision = current[1] + 1 if current else 1
            self._jobs[job.token] = (json.dumps(list(job.keys)), revision)

    async def delete(self, token: str) -> None:
        async with self._lock:
            _ = self._jobs.pop(token, None)


class S3Ledger:
    """Ledger persisting each job as a JSON object in a dedicated bucket.

    Compare-and-swap relies on the store's ETag and `If-Match` on put.
    """

    __slots__: ClassVar[tuple[str, str, str]] = ("_bucket", "_client", "_prefix")

    def __init__(self, client: "S3Client", bucket: str, prefix: str = "jobs/") -> None:
        self._client = client
        self._bucket = bucket
        self._prefix = prefix

    def _key(self, token: str) -> str:
        return f"{self._prefix}{token}.json"

    async def _call(self, fn: Any, /, **kwargs: Any) -> Any:
        return await asyncio.to_thread(partial(fn, **kwargs))

    async def get(self, token: str) -> ResumableJob | None:
        try:
            response = await self._call(
                self._client.get_object, Bucket=self._bucket, Key=self._key(token)
            )
            raw = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if error_kind(e) is ErrorKind.NOT_FOUND:
                return None
            msg = f"Failed to read job '{token}': {e}"
            raise MigrationError(msg, source=e) from e
        except BotoCoreError as e:
            msg = f"Failed to read job '{token}': {e}"
            raise MigrationError(msg, kind=ErrorKind.CONNECTION, source=e) from e

        return ResumableJob(token=token, keys=_decode(token, raw), revision=response.get("ETag"))

    async def put(self, job: ResumableJob, *, expected_revision: str | None = None) -> None:
        kwargs: dict[str, Any] = {
            "Bucket": self._bucket,
            "Key": self._key(job.token),
            "Body": json.dumps(list(job.keys)).encode(),
            "ContentType": "application/json",
        }
        if expected_revision is not None:
            kwargs["IfMatch"] = expected_revision
        try:
            _ = await self._call(self._client.put_object, **kwargs)
        except ClientError as e:
            if error_kind(e) is ErrorKind.PRECONDITION_FAILED:
                msg = f"Job '{job.token}' changed since revision {expected_revision}"
                raise MigrationError(msg, kind=ErrorKind.CONFLICT, source=e) from e
            msg = f"Failed to write job '{job.token}': {e}"
            raise MigrationError(msg, source=e) from e
        except BotoCoreError as e:
            msg = f"Failed to write job '{job.token}': {e}"
            raise MigrationError(msg, kind=ErrorKind.CONNECTION, source=e) from e

    async def delete(self, token: str) -> None:
        try:
            _ = await self._call(
                self._client.delete_object, Bucket=self._bucket, Key=self._key(token)
            )
        except (ClientError, BotoCoreError) as e:
            msg = f"Failed to remove job '{token}': {e}"
            raise MigrationError(msg, source=e) from e
