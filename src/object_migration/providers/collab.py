"""Live-collaboration cache invalidation over HTTP."""

import logging
from typing import ClassVar

import httpx

from object_migration.models.datatypes import InvalidationKind
from object_migration.observability import log_event

logger = logging.getLogger(__name__)

_ENDPOINTS = {
    InvalidationKind.DELETED: "deleteadmin",
    InvalidationKind.SYNCED: "syncadmin",
}


class CollabInvalidator:
    """Tells the collaboration service to drop cached state for a document."""

    __slots__: ClassVar[tuple[str, str]] = ("_client", "_origin")

    def __init__(self, client: httpx.AsyncClient, origin: str) -> None:
        self._client = client
        self._origin = origin.rstrip("/")

    async def disconnect(self) -> None:
        await self._client.aclose()

    async def notify(self, kind: InvalidationKind, document_url: str) -> None:
        url = f"{self._origin}/api/v1/{_ENDPOINTS[kind]}"
        try:
            response = await self._client.get(url, params={"doc": document_url})
            _ = response.raise_for_status()
        except httpx.HTTPError as e:
            log_event(
                logger,
                "collab invalidation failed",
                level=logging.WARNING,
                kind=kind,
                doc=document_url,
                error=e,
            )


Provider = CollabInvalidator
