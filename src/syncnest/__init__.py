"""
SyncNest - Smart Backup

Incremental, content-addressed synchronization of a source directory into a
backup directory, tracked across runs by a persisted manifest.
"""

__version__ = "1.0.0"
__author__ = "SyncNest"
__description__ = "Incremental content-addressed directory backup"

from .sync.backup_manager import BackupManager, BackupResult, run_backup
from .config.settings import SyncNestConfig, SyncOptions

__all__ = ["BackupManager", "BackupResult", "SyncNestConfig", "SyncOptions", "run_backup"]
