"""Diff and sync engine: fingerprint, compare and copy each source entry."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set

from ..utils.file_utils import FileHelper, calculate_file_hash
from .manifest import Manifest
from .walker import EntryKind, SkipReason, WalkEntry, WalkSkip

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Outcome of processing a single entry."""
    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    DIRECTORY = "directory"
    TOMBSTONE = "tombstone"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class EntryResult:
    """Result of processing one entry, carried as a value instead of raised."""
    relative_path: str
    action: SyncAction
    fingerprint: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @property
    def copied(self) -> bool:
        return self.action in (SyncAction.NEW, SyncAction.CHANGED)


class SyncEngine:
    """Bring the backup tree in line with the source tree, entry by entry.

    The engine owns the in-memory manifest for the duration of the run and
    collects the seen set consumed later by the tombstone resolver.
    """

    def __init__(self, source_root: Path, backup_root: Path, manifest: Manifest,
                 chunk_size: int = 8192, preserve_timestamps: bool = False,
                 reserved_paths: Iterable[str] = ()):
        """Initialize sync engine.

        Args:
            source_root: Resolved source root
            backup_root: Resolved backup root
            manifest: Manifest loaded for this run, mutated in place
            chunk_size: Read size used when fingerprinting
            preserve_timestamps: Copy modification times along with content
            reserved_paths: Backup-root relative paths that must never be written
        """
        self.source_root = Path(source_root)
        self.backup_root = Path(backup_root)
        self.manifest = manifest
        self.chunk_size = chunk_size
        self.preserve_timestamps = preserve_timestamps
        self.reserved_paths = set(reserved_paths)
        self.seen: Set[str] = set()
        self.unreadable_dirs: Set[str] = set()

    def run(self, entries: Iterable[WalkEntry]) -> Iterator[EntryResult]:
        """Process walker entries in order.

        Args:
            entries: Entries produced by the tree walker (or any fake)

        Yields:
            One EntryResult per entry
        """
        for entry in entries:
            yield self.process(entry)

    def process(self, entry: WalkEntry) -> EntryResult:
        """Process a single file or directory entry."""
        if entry.kind == EntryKind.DIRECTORY:
            result = self.sync_directory(entry.relative_path)
        else:
            result = self.sync_file(entry.relative_path)

        self.seen.add(result.relative_path)
        return result

    def _resolve(self, relative_path: str):
        source_path = FileHelper.resolve_within(self.source_root, relative_path)
        backup_path = FileHelper.resolve_within(self.backup_root, relative_path)
        return source_path, backup_path

    def _rejected(self, relative_path: str, error: Exception) -> EntryResult:
        logger.warning(f"Path traversal violation for {relative_path!r}: {error}")
        return EntryResult(
            relative_path=relative_path,
            action=SyncAction.SKIPPED,
            message=f"Rejected path outside backup roots: {relative_path}",
            error=str(error)
        )

    def sync_file(self, relative_path: str) -> EntryResult:
        """Fingerprint a source file and copy it if the backup differs.

        Args:
            relative_path: Path relative to the source root

        Returns:
            EntryResult describing the decision taken
        """
        try:
            source_path, backup_path = self._resolve(relative_path)
        except ValueError as e:
            return self._rejected(relative_path, e)

        if relative_path in self.reserved_paths:
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.SKIPPED,
                message=f"Skipping reserved path: {relative_path}",
                error="path is reserved for the manifest"
            )

        try:
            source_fingerprint = calculate_file_hash(source_path, self.chunk_size)

            dest_fingerprint = None
            if backup_path.is_file() and not backup_path.is_symlink():
                dest_fingerprint = calculate_file_hash(backup_path, self.chunk_size)

            if dest_fingerprint == source_fingerprint:
                logger.debug(f"Unchanged: {relative_path}")
                action = SyncAction.UNCHANGED
                message = None
            else:
                FileHelper.copy_file(source_path, backup_path, self.preserve_timestamps)
                if dest_fingerprint is None:
                    action = SyncAction.NEW
                    message = f"{relative_path} new backup"
                else:
                    action = SyncAction.CHANGED
                    message = f"{relative_path} change backed up"

        except OSError as e:
            logger.error(f"Error backing up {relative_path}: {e}")
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.FAILED,
                message=f"Could not back up {relative_path}: {e}",
                error=str(e)
            )

        # Recorded even when unchanged so the manifest mirrors current truth
        self.manifest.record(relative_path, source_fingerprint)
        return EntryResult(relative_path, action, fingerprint=source_fingerprint, message=message)

    def sync_directory(self, relative_path: str) -> EntryResult:
        """Ensure the mirrored directory exists under the backup root."""
        try:
            _, backup_path = self._resolve(relative_path)
        except ValueError as e:
            return self._rejected(relative_path, e)

        try:
            backup_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating backup directory {backup_path}: {e}")
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.FAILED,
                message=f"Could not back up {relative_path}: {e}",
                error=str(e)
            )

        return EntryResult(
            relative_path=relative_path,
            action=SyncAction.DIRECTORY,
            message=f"{relative_path} directory backed up"
        )

    def skip(self, skipped: WalkSkip) -> EntryResult:
        """Turn an entry the walker refused into a result.

        A link pointing at its own backup copy is a tombstone left by an
        earlier run; it is not marked seen so the manifest entry stays with
        the tombstone resolver. Anything else is present in the source in
        some form and is marked seen.
        """
        relative_path = skipped.relative_path

        if skipped.link_target is not None and self._is_tombstone(relative_path, skipped.link_target):
            logger.debug(f"Tombstone in place: {relative_path}")
            return EntryResult(relative_path, SyncAction.SKIPPED)

        self.seen.add(relative_path)

        if skipped.reason == SkipReason.UNREADABLE:
            if skipped.is_directory:
                self.unreadable_dirs.add(relative_path)
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.FAILED,
                message=f"Could not read {relative_path}: {skipped.error}",
                error=str(skipped.error)
            )

        return EntryResult(
            relative_path=relative_path,
            action=SyncAction.SKIPPED,
            message=f"Skipping non-regular file: {skipped.path}",
            error=skipped.reason.value
        )

    def _is_tombstone(self, relative_path: str, link_target: Path) -> bool:
        try:
            backup_path = FileHelper.resolve_within(self.backup_root, relative_path)
        except ValueError:
            return False
        return Path(os.path.realpath(backup_path)) == link_target
