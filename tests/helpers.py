"""Helpers shared by the test modules."""

import hashlib
import json
from pathlib import Path


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def write_file(root: Path, relative_path: str, content: str) -> Path:
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def read_manifest(backup_root: Path, filename: str = "manifest.json") -> dict:
    return json.loads((backup_root / filename).read_text(encoding="utf-8"))
