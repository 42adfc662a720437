"""File utility functions."""

import hashlib
import os
import shutil
from pathlib import Path, PurePosixPath, PureWindowsPath


def calculate_file_hash(file_path: Path, chunk_size: int = 8192) -> str:
    """Calculate the SHA-256 fingerprint of a file.

    Args:
        file_path: Path to the file
        chunk_size: Size of chunks to read

    Returns:
        SHA-256 digest as lowercase hex string
    """
    hash_sha256 = hashlib.sha256()

    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hash_sha256.update(chunk)

    return hash_sha256.hexdigest()


class FileHelper:
    """Helper class for file operations."""

    @staticmethod
    def normalize_relative_path(relative_path: str) -> str:
        """Normalize a relative path to forward-slash segments.

        Args:
            relative_path: Path relative to a backup root, either separator

        Returns:
            Normalized path such as ``a/b.txt``

        Raises:
            ValueError: If the path is empty, absolute, or contains ``..``
        """
        normalized = relative_path.replace('\\', '/')

        # Drive letters only mean something on Windows; "a:" is a legal POSIX name
        if normalized.startswith('/') or (os.name == 'nt' and PureWindowsPath(normalized).drive):
            raise ValueError(f"Absolute path not allowed: {relative_path}")

        parts = [part for part in normalized.split('/') if part not in ('', '.')]
        if not parts:
            raise ValueError(f"Empty relative path: {relative_path!r}")
        if '..' in parts:
            raise ValueError(f"Parent segment not allowed: {relative_path}")

        return str(PurePosixPath(*parts))

    @staticmethod
    def resolve_within(root: Path, relative_path: str) -> Path:
        """Join a relative path onto a root, refusing anything that escapes it.

        The final component is not resolved, so a symbolic link at the
        location itself (a tombstone) is allowed. Every parent directory is
        resolved and must stay under the resolved root.

        Args:
            root: Root directory
            relative_path: Path relative to the root

        Returns:
            The joined (unresolved) path

        Raises:
            ValueError: If the path would normalize outside the root
        """
        normalized = FileHelper.normalize_relative_path(relative_path)
        candidate = root.joinpath(*normalized.split('/'))

        real_root = root.resolve()
        real_parent = candidate.parent.resolve()
        if real_parent != real_root and real_root not in real_parent.parents:
            raise ValueError(f"Path escapes root {root}: {relative_path}")

        return candidate

    @staticmethod
    def is_within(root: Path, path: Path) -> bool:
        """Check whether a fully resolved path lies inside a root.

        Args:
            root: Root directory
            path: Path to check (resolved here)

        Returns:
            True if path is the root or below it
        """
        real_root = root.resolve()
        real_path = path.resolve()
        return real_path == real_root or real_root in real_path.parents

    @staticmethod
    def copy_file(source: Path, destination: Path, preserve_timestamps: bool = False):
        """Copy a file with full truncate-and-rewrite semantics.

        Args:
            source: Source file
            destination: Destination file (overwritten if present)
            preserve_timestamps: Whether to copy modification times as well
        """
        destination.parent.mkdir(parents=True, exist_ok=True)

        # Never write through a link sitting in the backup tree
        if destination.is_symlink():
            destination.unlink()

        if preserve_timestamps:
            shutil.copy2(source, destination)
        else:
            shutil.copyfile(source, destination)

    @staticmethod
    def get_relative_path(file_path: Path, base_path: Path) -> str:
        """Get forward-slash relative path from base path.

        Args:
            file_path: Full file path
            base_path: Base path to calculate relative from

        Returns:
            Relative path as string
        """
        return file_path.relative_to(base_path).as_posix()

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"
