"""Collaborators wired together for one engine instance."""

from typing import ClassVar, Self

import httpx

from object_migration.ledger import S3Ledger
from object_migration.models.params import MigrationParams
from object_migration.protocols import CacheInvalidator, ObjectStore, ResumptionLedger
from object_migration.providers.collab import CollabInvalidator
from object_migration.providers.s3 import S3Store
from object_migration.settings import MigrationSettings, get_client


class MigrationEnv:
    """Store, ledger, invalidator and HTTP client used by the bulk coordinators."""

    __slots__: ClassVar[tuple[str, ...]] = ("http", "invalidator", "ledger", "params", "store")

    def __init__(
        self,
        store: ObjectStore,
        ledger: ResumptionLedger,
        invalidator: CacheInvalidator,
        http: httpx.AsyncClient,
        params: MigrationParams | None = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.invalidator = invalidator
        self.http = http
        self.params = params or MigrationParams()

    @classmethod
    def from_settings(cls, settings: MigrationSettings | None = None) -> Self:
        """Production wiring: shared boto3 client, S3 ledger, HTTP invalidator."""
        settings = settings or MigrationSettings()
        client = get_client(settings)
        http = httpx.AsyncClient(timeout=30.0)
        return cls(
            store=S3Store(client),
            ledger=S3Ledger(client, settings.jobs_bucket),
            invalidator=CollabInvalidator(http, settings.collab_origin),
            http=http,
            params=settings.params(),
        )

    async def aclose(self) -> None:
        await self.http.aclose()
