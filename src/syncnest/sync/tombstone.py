"""Tombstones for files that vanished from the source."""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Set

from ..utils.file_utils import FileHelper
from .engine import EntryResult, SyncAction
from .manifest import Manifest

logger = logging.getLogger(__name__)


class TombstoneResolver:
    """Leave a link back to the backup copy wherever a tracked file vanished."""

    def __init__(self, source_root: Path, backup_root: Path, manifest: Manifest,
                 create_links: bool = True):
        """Initialize tombstone resolver.

        Args:
            source_root: Resolved source root
            backup_root: Resolved backup root
            manifest: Manifest after traversal
            create_links: Create symbolic links; when False vanished entries are
                only reported and kept in the manifest
        """
        self.source_root = Path(source_root)
        self.backup_root = Path(backup_root)
        self.manifest = manifest
        self.create_links = create_links

    def vanished_paths(self, seen: Set[str], unreadable_dirs: Iterable[str] = ()) -> list:
        """Tracked paths not observed during traversal.

        Paths below a directory that could not be listed are not considered
        vanished.
        """
        prefixes = tuple(f"{d}/" for d in unreadable_dirs)
        return sorted(
            path for path in self.manifest.paths() - seen
            if not (prefixes and path.startswith(prefixes))
        )

    def resolve(self, seen: Set[str], unreadable_dirs: Iterable[str] = ()) -> Iterator[EntryResult]:
        """Create tombstones for every vanished tracked path.

        Args:
            seen: Relative paths observed during traversal
            unreadable_dirs: Directories whose content could not be listed

        Yields:
            One EntryResult per vanished path
        """
        for relative_path in self.vanished_paths(seen, unreadable_dirs):
            yield self.resolve_path(relative_path)

    def resolve_path(self, relative_path: str) -> EntryResult:
        try:
            source_path = FileHelper.resolve_within(self.source_root, relative_path)
            backup_path = FileHelper.resolve_within(self.backup_root, relative_path)
        except ValueError as e:
            logger.warning(f"Dropping manifest entry {relative_path!r}: {e}")
            self.manifest.discard(relative_path)
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.SKIPPED,
                message=f"Rejected path outside backup roots: {relative_path}",
                error=str(e)
            )

        fingerprint = self.manifest.get(relative_path)

        if os.path.lexists(source_path):
            # An earlier tombstone, or something the walker would not yield
            logger.debug(f"Source location already occupied: {relative_path}")
            return EntryResult(relative_path, SyncAction.SKIPPED, fingerprint=fingerprint)

        if not backup_path.is_file():
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.SKIPPED,
                fingerprint=fingerprint,
                message=f"{relative_path} missing from source and backup"
            )

        if not self.create_links:
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.SKIPPED,
                fingerprint=fingerprint,
                message=f"{relative_path} removed from source, kept in backup"
            )

        try:
            source_path.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(backup_path.resolve(), source_path)
        except (OSError, NotImplementedError) as e:
            logger.error(f"Could not create soft link for {relative_path}: {e}")
            return EntryResult(
                relative_path=relative_path,
                action=SyncAction.FAILED,
                fingerprint=fingerprint,
                message=f"Could not create soft link for {relative_path}: {e}",
                error=str(e)
            )

        return EntryResult(
            relative_path=relative_path,
            action=SyncAction.TOMBSTONE,
            fingerprint=fingerprint,
            message=f"{relative_path} soft link created"
        )
