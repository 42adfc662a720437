"""Configuration management for SyncNest."""

from .settings import SyncNestConfig, SyncOptions

__all__ = ["SyncNestConfig", "SyncOptions"]
