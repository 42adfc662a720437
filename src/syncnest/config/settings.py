"""Configuration settings and models for the backup application."""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator


class SyncOptions(BaseModel):
    """Synchronization options."""
    chunk_size: int = 8192  # bytes read per hashing step
    manifest_filename: str = "manifest.json"
    preserve_timestamps: bool = False
    create_tombstones: bool = True

    @field_validator('chunk_size')
    @classmethod
    def validate_chunk_size(cls, v):
        if v <= 0:
            raise ValueError('chunk_size must be positive')
        return v

    @field_validator('manifest_filename')
    @classmethod
    def validate_manifest_filename(cls, v):
        if not v or v in ('.', '..') or '/' in v or '\\' in v:
            raise ValueError('manifest_filename must be a plain filename')
        return v


class SyncNestConfig(BaseModel):
    """Main configuration class."""
    source_dir: Optional[Path] = None
    backup_dir: Optional[Path] = None
    log_dir: Path = Path("logs")
    log_level: str = "WARNING"
    sync_options: SyncOptions = Field(default_factory=SyncOptions)

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        if v.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Unknown log level: {v}')
        return v.upper()

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "SyncNestConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.model_dump(mode='json', exclude_none=True), f,
                           default_flow_style=False, indent=2)
