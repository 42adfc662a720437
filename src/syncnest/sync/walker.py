"""Lazy traversal of the source tree."""

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set

from ..utils.file_utils import FileHelper
from .exceptions import SourceUnavailable

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    """Kinds of entries the walker yields."""
    FILE = "file"
    DIRECTORY = "directory"


class SkipReason(str, Enum):
    """Why the walker refused to yield an entry."""
    NON_REGULAR = "non-regular file"
    ESCAPING_LINK = "symbolic link escapes source root"
    BROKEN_LINK = "broken symbolic link"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class WalkEntry:
    """A file or directory found under the source root."""
    relative_path: str
    kind: EntryKind


@dataclass(frozen=True)
class WalkSkip:
    """An entry the walker refused to yield."""
    relative_path: str
    path: Path
    reason: SkipReason
    link_target: Optional[Path] = None
    error: Optional[OSError] = None
    is_directory: bool = False


SkipHandler = Callable[[WalkSkip], None]


def check_source_root(source_root: Path) -> Path:
    """Ensure the source root exists and is a directory.

    Returns:
        The resolved source root

    Raises:
        SourceUnavailable: If the root is missing or not a directory
    """
    source_root = Path(source_root)
    if not source_root.exists():
        raise SourceUnavailable(f"Source directory does not exist: {source_root}")
    if not source_root.is_dir():
        raise SourceUnavailable(f"Source path is not a directory: {source_root}")
    return source_root.resolve()


def walk(source_root: Path, exclude: Iterable[Path] = (),
         on_skip: Optional[SkipHandler] = None) -> Iterator[WalkEntry]:
    """Enumerate every file and directory below the source root.

    Symbolic links are never followed into directories. A link to a regular
    file that stays inside the root is yielded as a file; any other link is
    skipped. Single-entry errors are reported through ``on_skip`` and the
    traversal continues.

    Args:
        source_root: Directory to traverse
        exclude: Directories not to descend into (e.g. a nested backup root)
        on_skip: Called for each skipped entry

    Yields:
        WalkEntry for every file and directory, the root itself excluded

    Raises:
        SourceUnavailable: If the root is missing or not a directory
    """
    # Checked here rather than inside the generator so it raises on call
    root = check_source_root(source_root)
    excluded = {Path(p).resolve() for p in exclude}
    return _walk_tree(root, excluded, on_skip or _log_skip)


def _log_skip(skip: WalkSkip):
    logger.warning(f"Skipping {skip.relative_path}: {skip.reason.value}")


def _walk_tree(root: Path, excluded: Set[Path], on_skip: SkipHandler) -> Iterator[WalkEntry]:
    pending: List[Path] = [root]

    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            # The root itself was checked up front, so this is a subdirectory
            on_skip(WalkSkip(
                relative_path=FileHelper.get_relative_path(directory, root),
                path=directory,
                reason=SkipReason.UNREADABLE,
                error=e,
                is_directory=True
            ))
            continue

        subdirectories = []
        for entry in entries:
            path = Path(entry.path)
            relative_path = FileHelper.get_relative_path(path, root)

            try:
                kind = _classify(entry, path, root, relative_path, on_skip)
            except OSError as e:
                on_skip(WalkSkip(relative_path, path, SkipReason.UNREADABLE, error=e))
                continue

            if kind is None:
                continue

            if kind == EntryKind.DIRECTORY:
                if path.resolve() in excluded:
                    logger.debug(f"Not descending into excluded directory {path}")
                    continue
                subdirectories.append(path)

            yield WalkEntry(relative_path, kind)

        # Reversed so the stack pops subdirectories in name order
        pending.extend(reversed(subdirectories))


def _classify(entry: os.DirEntry, path: Path, root: Path, relative_path: str,
              on_skip: SkipHandler) -> Optional[EntryKind]:
    if entry.is_symlink():
        target = Path(os.path.realpath(path))
        if not target.exists():
            on_skip(WalkSkip(relative_path, path, SkipReason.BROKEN_LINK, target))
            return None
        if not FileHelper.is_within(root, target):
            on_skip(WalkSkip(relative_path, path, SkipReason.ESCAPING_LINK, target))
            return None
        if not target.is_file():
            on_skip(WalkSkip(relative_path, path, SkipReason.NON_REGULAR, target))
            return None
        return EntryKind.FILE

    mode = entry.stat(follow_symlinks=False).st_mode
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE

    on_skip(WalkSkip(relative_path, path, SkipReason.NON_REGULAR))
    return None
