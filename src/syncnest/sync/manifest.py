"""Manifest persistence for change detection and backup state management."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, Optional, Set

from .exceptions import CorruptManifest, PersistenceError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


class Manifest:
    """Mutable mapping of relative path to content fingerprint.

    Loaded once at the start of a run, mutated in memory during traversal
    and written once at the end.
    """

    def __init__(self, entries: Optional[Dict[str, str]] = None):
        """Initialize manifest.

        Args:
            entries: Initial relative path to fingerprint mapping
        """
        self._entries: Dict[str, str] = dict(entries or {})

    def get(self, relative_path: str) -> Optional[str]:
        """Get the recorded fingerprint for a path.

        Args:
            relative_path: Path relative to the source root

        Returns:
            Hex fingerprint if tracked, None otherwise
        """
        return self._entries.get(relative_path)

    def record(self, relative_path: str, fingerprint: str):
        """Record the current fingerprint of a path."""
        self._entries[relative_path] = fingerprint

    def discard(self, relative_path: str):
        """Stop tracking a path."""
        self._entries.pop(relative_path, None)

    def paths(self) -> Set[str]:
        """Get set of all tracked relative paths.

        Returns:
            Set of relative paths
        """
        return set(self._entries.keys())

    def as_dict(self) -> Dict[str, str]:
        return dict(self._entries)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"Manifest({len(self._entries)} entries)"


class ManifestStore:
    """Load and persist the manifest document under a backup root."""

    def __init__(self, backup_root: Path, filename: str = MANIFEST_FILENAME):
        """Initialize manifest store.

        Args:
            backup_root: Backup root directory holding the manifest
            filename: Manifest filename under the backup root
        """
        self.backup_root = Path(backup_root)
        self.filename = filename

    @property
    def manifest_path(self) -> Path:
        return self.backup_root / self.filename

    @property
    def temp_path(self) -> Path:
        return self.backup_root / f"{self.filename}.tmp"

    def reserved_paths(self) -> Set[str]:
        """Relative paths at the backup root owned by the store itself."""
        return {self.filename, self.temp_path.name}

    def load(self) -> Manifest:
        """Load the manifest from disk.

        Returns:
            The persisted manifest, or an empty one if no document exists

        Raises:
            CorruptManifest: If the document cannot be parsed as string to string
        """
        if not self.manifest_path.exists():
            logger.debug(f"No manifest at {self.manifest_path}, starting empty")
            return Manifest()

        try:
            with open(self.manifest_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptManifest(f"Could not read manifest {self.manifest_path}: {e}") from e

        if not isinstance(data, dict):
            raise CorruptManifest(
                f"Manifest {self.manifest_path} must be an object, got {type(data).__name__}"
            )

        for path, fingerprint in data.items():
            if not isinstance(fingerprint, str):
                raise CorruptManifest(
                    f"Manifest {self.manifest_path} has non-string fingerprint for {path!r}"
                )

        logger.debug(f"Loaded {len(data)} manifest entries from {self.manifest_path}")
        return Manifest(data)

    def save(self, manifest: Manifest):
        """Write the manifest wholesale, replacing any prior document atomically.

        Args:
            manifest: Manifest to persist

        Raises:
            PersistenceError: On any I/O failure
        """
        try:
            with open(self.temp_path, 'w', encoding='utf-8') as f:
                json.dump(manifest.as_dict(), f, indent=2, sort_keys=True)
                f.write('\n')
                f.flush()
                os.fsync(f.fileno())
            # os.replace is atomic on POSIX and Windows
            os.replace(self.temp_path, self.manifest_path)
        except (OSError, ValueError) as e:
            try:
                self.temp_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove {self.temp_path}: {cleanup_error}")
            raise PersistenceError(f"Could not save manifest {self.manifest_path}: {e}") from e

        logger.debug(f"Saved {len(manifest)} manifest entries to {self.manifest_path}")


def load(backup_root: Path, filename: str = MANIFEST_FILENAME) -> Manifest:
    """Load the manifest stored under a backup root."""
    return ManifestStore(backup_root, filename).load()


def save(backup_root: Path, manifest: Manifest, filename: str = MANIFEST_FILENAME):
    """Persist a manifest under a backup root."""
    ManifestStore(backup_root, filename).save(manifest)
