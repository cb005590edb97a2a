"""Provider implementations for the engine's external collaborators.

Each provider module exports a `Provider` class alias for its main class.

Available providers:
- s3: object store over AWS S3 / R2 / MinIO via boto3
- collab: collaboration cache invalidation via httpx
"""

from object_migration.providers import collab, s3

__all__ = [
    "collab",
    "s3",
]
