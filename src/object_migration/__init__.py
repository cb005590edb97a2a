"""Bulk copy, rename and delete over prefix-simulated directories in an object store."""

from object_migration.copy import copy_file, copy_objects
from object_migration.delete import delete_object, delete_objects
from object_migration.env import MigrationEnv
from object_migration.errors import ErrorKind, MigrationError
from object_migration.protocols import CacheInvalidator, ObjectStore, ResumptionLedger

__all__ = [
    "CacheInvalidator",
    "ErrorKind",
    "MigrationEnv",
    "MigrationError",
    "ObjectStore",
    "ResumptionLedger",
    "copy_file",
    "copy_objects",
    "delete_object",
    "delete_objects",
]
