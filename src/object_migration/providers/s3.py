"""S3 object store using boto3."""

import asyncio
from collections.abc import Mapping
from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar

from object_migration.errors import ErrorKind, MigrationError
from object_migration.models.datatypes import ListPage, ObjectContent, ObjectHead

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

try:
    from botocore.exceptions import BotoCoreError, ClientError
except ImportError as e:
    _msg = "botocore is required for S3 support. Install with: pip install boto3"
    raise ImportError(_msg) from e

# Extra CopyObject argument carrying the create-only precondition through
# botocore's parameter validation.
CONDITIONAL_PARAM = "ObjectMigrationIfNoneMatch"

_PRECONDITION_CODES = frozenset({"PreconditionFailed", "412"})
_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

_STASH_HOOK_ID = "object-migration-stash-conditional"
_INJECT_HOOK_ID = "object-migration-inject-if-none-match"


def stash_conditional(params: dict[str, Any], context: dict[str, Any], **_: Any) -> None:
    """Move the custom precondition argument out of the API params."""
    value = params.pop(CONDITIONAL_PARAM, None)
    if value is not None:
        context["if_none_match"] = value


def inject_if_none_match(params: dict[str, Any], context: dict[str, Any], **_: Any) -> None:
    """Add the If-None-Match header stashed by `stash_conditional`."""
    value = context.get("if_none_match")
    if value is not None:
        params["headers"]["If-None-Match"] = value


def error_kind(error: ClientError) -> ErrorKind:
    """Classify a botocore client error."""
    code = str(error.response.get("Error", {}).get("Code", "Unknown"))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if code in _PRECONDITION_CODES or status == 412:
        return ErrorKind.PRECONDITION_FAILED
    if code in _NOT_FOUND_CODES or status == 404:
        return ErrorKind.NOT_FOUND
    return ErrorKind.PROVIDER


def _wrap(error: Exception, action: str, key: str | None = None) -> MigrationError:
    target = f" '{key}'" if key else ""
    if isinstance(error, ClientError):
        kind = error_kind(error)
        if kind is ErrorKind.NOT_FOUND:
            return MigrationError(f"Object{target} not found", kind=kind, source=error)
        return MigrationError(f"Failed to {action}{target}: {error}", kind=kind, source=error)
    if isinstance(error, BotoCoreError):
        msg = f"Failed to {action}{target}: {error}"
        return MigrationError(msg, kind=ErrorKind.CONNECTION, source=error)
    return MigrationError(f"Failed to {action}{target}: {error}", source=error)


class S3Store:
    """S3 store implementing the operations the migration engine needs.

    boto3 is synchronous; every call runs in a worker thread so that a batch
    of per-key operations actually overlaps.
    """

    __slots__: ClassVar[tuple[str]] = ("_client",)

    _client: "S3Client"

    def __init__(self, client: "S3Client") -> None:
        self._client = client
        events = client.meta.events
        # The client is shared process-wide; unique ids keep one handler per event.
        events.register(
            "before-parameter-build.s3.CopyObject", stash_conditional, unique_id=_STASH_HOOK_ID
        )
        events.register(
            "before-call.s3.CopyObject", inject_if_none_match, unique_id=_INJECT_HOOK_ID
        )

    async def disconnect(self) -> None:
        """Close the S3 client."""
        self._client.close()

    async def _call(self, fn: Any, /, **kwargs: Any) -> Any:
        return await asyncio.to_thread(partial(fn, **kwargs))

    async def list_by_prefix(
        self,
        bucket: str,
        prefix: str,
        max_keys: int,
        continuation_token: str | None = None,
    ) -> ListPage:
        """List one page of keys under prefix."""
        kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix, "MaxKeys": max_keys}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token
        try:
            response = await self._call(self._client.list_objects_v2, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "list", prefix) from e

        keys = tuple(obj["Key"] for obj in response.get("Contents", []) if obj.get("Key"))
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListPage(keys=keys, next_token=next_token)

    async def copy(
        self,
        bucket: str,
        source_key: str,
        dest_key: str,
        metadata: Mapping[str, str] | None = None,
        *,
        conditional: bool = False,
    ) -> None:
        """Copy source_key to dest_key within bucket."""
        kwargs: dict[str, Any] = {
            "Bucket": bucket,
            "Key": dest_key,
            "CopySource": f"{bucket}/{source_key}",
        }
        if metadata is not None:
            kwargs["Metadata"] = dict(metadata)
            kwargs["MetadataDirective"] = "REPLACE"
        if conditional:
            kwargs[CONDITIONAL_PARAM] = "*"
        try:
            _ = await self._call(self._client.copy_object, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "copy", source_key) from e

    async def head(self, bucket: str, key: str) -> ObjectHead | None:
        """Return object metadata, or None when the object does not exist."""
        try:
            response = await self._call(self._client.head_object, Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            error = _wrap(e, "head", key)
            if error.kind is ErrorKind.NOT_FOUND:
                return None
            raise error from e

        return ObjectHead(
            key=key,
            metadata=response.get("Metadata", {}),
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength", 0),
            etag=response.get("ETag"),
        )

    async def get_content(self, bucket: str, key: str) -> ObjectContent:
        """Get object content by key."""
        try:
            response = await self._call(self._client.get_object, Bucket=bucket, Key=key)
            body = await asyncio.to_thread(response["Body"].read)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "get", key) from e

        return ObjectContent(body=body, content_type=response.get("ContentType"))

    async def put(
        self,
        bucket: str,
        key: str,
        content: ObjectContent,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        """Put object content by key."""
        kwargs: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "Body": content.body,
            "ContentType": content.content_type or "application/octet-stream",
            "ContentLength": content.length,
        }
        if metadata is not None:
            kwargs["Metadata"] = dict(metadata)
        try:
            _ = await self._call(self._client.put_object, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "put", key) from e

    async def delete(self, bucket: str, key: str) -> None:
        """Delete object by key."""
        try:
            _ = await self._call(self._client.delete_object, Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "remove", key) from e

    async def signed_delete_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        """Presign a DeleteObject request for key."""
        try:
            return await self._call(
                self._client.generate_presigned_url,
                ClientMethod="delete_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "sign delete for", key) from e


Provider = S3Store
