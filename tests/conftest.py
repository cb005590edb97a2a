import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse

import httpx
import pytest

from object_migration.env import MigrationEnv
from object_migration.errors import ErrorKind, MigrationError
from object_migration.ledger import MemoryLedger
from object_migration.models import (
    InvalidationKind,
    ListPage,
    MigrationParams,
    ObjectContent,
    ObjectHead,
    OperationContext,
    User,
)

ORIGIN = "https://da.live"


@dataclass
class StoredObject:
    body: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    content_type: str | None = "text/html"


@dataclass
class CopyCall:
    bucket: str
    source_key: str
    dest_key: str
    metadata: dict[str, str] | None
    conditional: bool


class FakeStore:
    """In-memory object store for one bucket.

    Listing is derived from the stored keys unless `pages` is set, in which
    case each continuation token maps to a canned page.
    """

    def __init__(self, pages: Mapping[str | None, ListPage] | None = None) -> None:
        self.objects: dict[str, StoredObject] = {}
        self.pages = dict(pages or {})
        self.list_calls: list[tuple[str, str, int, str | None]] = []
        self.copies: list[CopyCall] = []
        self.copy_errors: dict[str, MigrationError] = {}
        self.list_error: MigrationError | None = None
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, key: str, body: bytes = b"<html></html>", **metadata: str) -> None:
        self.objects[key] = StoredObject(body=body, metadata=dict(metadata))

    async def list_by_prefix(self, bucket, prefix, max_keys, continuation_token=None):
        self.list_calls.append((bucket, prefix, max_keys, continuation_token))
        if self.list_error is not None:
            raise self.list_error
        if self.pages:
            return self.pages[continuation_token]
        keys = sorted(k for k in self.objects if k.startswith(prefix))
        start = int(continuation_token or 0)
        end = start + max_keys
        return ListPage(keys=tuple(keys[start:end]), next_token=str(end) if end < len(keys) else None)

    async def copy(self, bucket, source_key, dest_key, metadata=None, *, conditional=False):
        self.copies.append(
            CopyCall(bucket, source_key, dest_key, dict(metadata) if metadata else None, conditional)
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if source_key in self.copy_errors:
            raise self.copy_errors[source_key]
        source = self.objects.get(source_key)
        if source is None:
            raise MigrationError(f"Object '{source_key}' not found", kind=ErrorKind.NOT_FOUND)
        if conditional and dest_key in self.objects:
            raise MigrationError("At least one precondition failed", kind=ErrorKind.PRECONDITION_FAILED)
        self.objects[dest_key] = StoredObject(
            body=source.body,
            metadata=dict(metadata) if metadata is not None else dict(source.metadata),
            content_type=source.content_type,
        )

    async def head(self, bucket, key):
        stored = self.objects.get(key)
        if stored is None:
            return None
        return ObjectHead(
            key=key,
            # S3 lower-cases user metadata keys on the way back
            metadata={k.lower(): v for k, v in stored.metadata.items()},
            content_type=stored.content_type,
            content_length=len(stored.body),
        )

    async def get_content(self, bucket, key):
        stored = self.objects.get(key)
        if stored is None:
            raise MigrationError(f"Object '{key}' not found", kind=ErrorKind.NOT_FOUND)
        return ObjectContent(body=stored.body, content_type=stored.content_type)

    async def put(self, bucket, key, content, metadata=None):
        self.objects[key] = StoredObject(
            body=content.body,
            metadata=dict(metadata or {}),
            content_type=content.content_type,
        )

    async def delete(self, bucket, key):
        _ = self.objects.pop(key, None)

    async def signed_delete_url(self, bucket, key, ttl_seconds):
        return f"https://store.test/{bucket}/{key}?X-Amz-Expires={ttl_seconds}&X-Amz-Signature=sig"


class RecordingInvalidator:
    def __init__(self) -> None:
        self.calls: list[tuple[InvalidationKind, str]] = []

    async def notify(self, kind, document_url):
        self.calls.append((kind, document_url))


class SignedDeleteServer:
    """Plays the store's side of presigned DELETE requests."""

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.requests: list[httpx.Request] = []
        self.failing: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        _, _, key = unquote(urlparse(str(request.url)).path).lstrip("/").partition("/")
        if key in self.failing:
            return httpx.Response(500)
        self.store.objects.pop(key, None)
        return httpx.Response(204)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def ledger() -> MemoryLedger:
    return MemoryLedger()


@pytest.fixture
def invalidator() -> RecordingInvalidator:
    return RecordingInvalidator()


@pytest.fixture
def delete_server(store: FakeStore) -> SignedDeleteServer:
    return SignedDeleteServer(store)


@pytest.fixture
def params() -> MigrationParams:
    return MigrationParams()


@pytest.fixture
def env(store, ledger, invalidator, delete_server, params) -> MigrationEnv:
    http = httpx.AsyncClient(transport=httpx.MockTransport(delete_server))
    return MigrationEnv(store, ledger, invalidator, http, params)


@pytest.fixture
def ctx() -> OperationContext:
    return OperationContext(
        org="foo",
        key="mydir",
        users=[User(email="haha@foo.com")],
        origin=ORIGIN,
    )
