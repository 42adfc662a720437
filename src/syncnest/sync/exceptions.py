"""Backup-specific exceptions for error handling."""


class SyncNestError(Exception):
    """Base class for errors that abort a backup run."""

    pass


class SourceUnavailable(SyncNestError):
    """Raised when the source root is missing or is not a directory.

    Checked once, before traversal begins.
    """

    pass


class BackupRootError(SyncNestError):
    """Raised when the backup root cannot be created or is not a directory."""

    pass


class CorruptManifest(SyncNestError):
    """Raised when a persisted manifest exists but cannot be parsed.

    The document must be a JSON object mapping strings to strings. Anything
    else (truncated JSON, a list, non-string fingerprints) is corrupt.
    """

    pass


class PersistenceError(SyncNestError):
    """Raised when the manifest cannot be written at the end of a run.

    The backup tree is already updated at this point; the previous manifest
    stays on disk and the next run re-detects copied files as unchanged.
    """

    pass
