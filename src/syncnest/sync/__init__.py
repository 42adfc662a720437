"""Sync engine for backup operations."""

from .backup_manager import BackupManager, BackupResult, run_backup
from .engine import EntryResult, SyncAction, SyncEngine
from .exceptions import (
    BackupRootError,
    CorruptManifest,
    PersistenceError,
    SourceUnavailable,
    SyncNestError,
)
from .manifest import Manifest, ManifestStore
from .tombstone import TombstoneResolver
from .walker import EntryKind, WalkEntry, walk

__all__ = [
    "BackupManager",
    "BackupResult",
    "BackupRootError",
    "CorruptManifest",
    "EntryKind",
    "EntryResult",
    "Manifest",
    "ManifestStore",
    "PersistenceError",
    "SourceUnavailable",
    "SyncAction",
    "SyncEngine",
    "SyncNestError",
    "TombstoneResolver",
    "WalkEntry",
    "run_backup",
    "walk",
]
