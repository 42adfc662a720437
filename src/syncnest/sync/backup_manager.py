"""Main backup manager orchestrating the backup process."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config.settings import SyncOptions
from ..utils.file_utils import FileHelper
from ..utils.logging import LoggerSink, LogSink, TimedOperation
from .engine import EntryResult, SyncAction, SyncEngine
from .exceptions import BackupRootError
from .manifest import ManifestStore
from .tombstone import TombstoneResolver
from .walker import check_source_root, walk

# Module logger
logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    """Summary of a single backup run."""
    source_dir: Path
    backup_dir: Path
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    files_processed: int = 0
    files_copied: int = 0
    files_unchanged: int = 0
    directories: int = 0
    tombstones_created: int = 0
    entries_skipped: int = 0
    manifest_entries: int = 0
    errors: List[str] = field(default_factory=list)
    entries: List[EntryResult] = field(default_factory=list)

    @property
    def duration(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    def add(self, result: EntryResult):
        """Accumulate one entry result into the counters."""
        self.entries.append(result)

        if result.action in (SyncAction.NEW, SyncAction.CHANGED, SyncAction.UNCHANGED):
            self.files_processed += 1
            if result.copied:
                self.files_copied += 1
            else:
                self.files_unchanged += 1
        elif result.action == SyncAction.DIRECTORY:
            self.directories += 1
        elif result.action == SyncAction.TOMBSTONE:
            self.tombstones_created += 1
        elif result.action == SyncAction.SKIPPED:
            if result.message:
                self.entries_skipped += 1
        elif result.action == SyncAction.FAILED:
            self.errors.append(result.message or f"{result.relative_path}: {result.error}")

    def copied_paths(self) -> List[str]:
        return [r.relative_path for r in self.entries if r.copied]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_dir': str(self.source_dir),
            'backup_dir': str(self.backup_dir),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.duration,
            'files_processed': self.files_processed,
            'files_copied': self.files_copied,
            'files_unchanged': self.files_unchanged,
            'directories': self.directories,
            'tombstones_created': self.tombstones_created,
            'entries_skipped': self.entries_skipped,
            'manifest_entries': self.manifest_entries,
            'errors': list(self.errors),
        }


class BackupManager:
    """Main backup manager that runs the sync phases in sequence."""

    def __init__(self, options: Optional[SyncOptions] = None):
        """Initialize backup manager.

        Args:
            options: Synchronization options
        """
        self.options = options or SyncOptions()

    def _prepare_backup_root(self, backup_dir: Union[str, Path], source_root: Path) -> Path:
        backup_root = Path(backup_dir)
        try:
            backup_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupRootError(f"Could not create backup directory {backup_root}: {e}") from e

        if not backup_root.is_dir():
            raise BackupRootError(f"Backup path is not a directory: {backup_root}")

        backup_root = backup_root.resolve()
        if backup_root == source_root:
            raise BackupRootError(f"Backup directory must differ from source directory: {backup_root}")

        return backup_root

    def run_backup(self, source_dir: Union[str, Path], backup_dir: Union[str, Path],
                   log_sink: Optional[LogSink] = None) -> BackupResult:
        """Run one backup of source_dir into backup_dir.

        Phases run strictly in order: load manifest, traverse and sync,
        resolve tombstones, save manifest.

        Args:
            source_dir: Directory to back up
            backup_dir: Backup root (created if absent)
            log_sink: Callable receiving one progress line at a time

        Returns:
            BackupResult with counters and per-entry errors

        Raises:
            SourceUnavailable: Source missing or not a directory
            BackupRootError: Backup root cannot be created
            CorruptManifest: Persisted manifest cannot be parsed
            PersistenceError: Final manifest cannot be written
        """
        sink = log_sink or LoggerSink()

        source_root = check_source_root(Path(source_dir))
        backup_root = self._prepare_backup_root(backup_dir, source_root)

        result = BackupResult(source_dir=source_root, backup_dir=backup_root)
        sink(f"Starting backup from: {source_root}")

        def emit(entry_result: EntryResult):
            result.add(entry_result)
            if entry_result.message:
                sink(entry_result.message)

        with TimedOperation(logger, f"backup of {source_root}", log_level="DEBUG"):
            store = ManifestStore(backup_root, self.options.manifest_filename)
            manifest = store.load()

            engine = SyncEngine(
                source_root,
                backup_root,
                manifest,
                chunk_size=self.options.chunk_size,
                preserve_timestamps=self.options.preserve_timestamps,
                reserved_paths=store.reserved_paths()
            )

            entries = walk(
                source_root,
                exclude=[backup_root],
                on_skip=lambda skipped: emit(engine.skip(skipped))
            )
            for entry_result in engine.run(entries):
                emit(entry_result)

            resolver = TombstoneResolver(
                source_root,
                backup_root,
                manifest,
                create_links=self.options.create_tombstones
            )
            for entry_result in resolver.resolve(engine.seen, engine.unreadable_dirs):
                emit(entry_result)

            store.save(manifest)
            result.manifest_entries = len(manifest)

        result.end_time = datetime.now()

        log_location = getattr(sink, 'path', None)
        if log_location:
            sink(f"Backup complete. Log at {log_location}")
        else:
            sink("Backup complete.")

        logger.info(
            f"Backup of {source_root} finished: {result.files_copied} copied, "
            f"{result.files_unchanged} unchanged, {result.tombstones_created} tombstoned, "
            f"{len(result.errors)} errors"
        )
        return result

    def get_manifest_stats(self, backup_dir: Union[str, Path],
                           source_dir: Optional[Union[str, Path]] = None) -> Dict[str, int]:
        """Get statistics about the manifest stored under a backup root.

        Args:
            backup_dir: Backup root
            source_dir: Source root, to count tombstoned entries

        Returns:
            Dictionary with statistics
        """
        backup_root = Path(backup_dir)
        manifest = ManifestStore(backup_root, self.options.manifest_filename).load()

        stats = {
            'tracked_files': len(manifest),
            'backed_up_files': 0,
            'total_size': 0,
            'tombstones': 0,
        }

        for relative_path in manifest:
            try:
                backup_path = FileHelper.resolve_within(backup_root, relative_path)
            except ValueError:
                continue
            if backup_path.is_file():
                stats['backed_up_files'] += 1
                stats['total_size'] += backup_path.stat().st_size

            if source_dir is not None:
                try:
                    source_path = FileHelper.resolve_within(Path(source_dir), relative_path)
                except ValueError:
                    continue
                if source_path.is_symlink():
                    stats['tombstones'] += 1

        return stats


def run_backup(source_dir: Union[str, Path], backup_dir: Union[str, Path],
               log_sink: Optional[LogSink] = None,
               options: Optional[SyncOptions] = None) -> BackupResult:
    """Run one backup with the given options.

    See BackupManager.run_backup.
    """
    return BackupManager(options).run_backup(source_dir, backup_dir, log_sink)
