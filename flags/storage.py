"""
Tenant flag snapshot files.

Features
- Read/write snapshot JSON under {SNAPSHOT_DIR}/{TENANT}/flags.json
- Atomic writes via temp files + os.replace
- JSON Schema validation (schemas/flag_snapshot.schema.json)

Used by:
- app/container.py (local layers for Flags.is_feature_enabled)
- cli/main.py (check --snapshot, snapshot export)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import jsonschema

from flags.keys import FlagKeyError
from flags.models import FlagSnapshot

REPO_ROOT = Path(__file__).resolve().parents[1]
SCHEMA_PATH = REPO_ROOT / "schemas" / "flag_snapshot.schema.json"
SNAPSHOT_FILE = "flags.json"


class SnapshotError(Exception):
    pass


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        f.write(text)
    os.replace(tmp, path)


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def validate_snapshot_data(data: Any, schema_path: Path = SCHEMA_PATH) -> None:
    if not schema_path.exists():
        raise SnapshotError(f"Schema file missing: {schema_path}")
    schema = _read_json(schema_path)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise SnapshotError(f"Invalid flag snapshot: {e.message}") from e


def load_snapshot_file(path: Path) -> FlagSnapshot:
    """Load + validate an arbitrary snapshot file (used by the CLI)."""
    try:
        data = _read_json(path)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise SnapshotError(f"Snapshot is not UTF-8: {path}: {e}") from e
    except OSError as e:
        raise SnapshotError(f"Snapshot unreadable: {path}: {e}") from e
    validate_snapshot_data(data)
    try:
        return FlagSnapshot.from_dict(data)
    except FlagKeyError as e:
        raise SnapshotError(f"Invalid flag key in snapshot {path}: {e}") from e


@dataclass(frozen=True)
class SnapshotStore:
    root: Path

    def file_path(self, tenant: str) -> Path:
        # tenant ids name a single directory under root
        if not tenant or "/" in tenant or "\\" in tenant or ".." in tenant:
            raise SnapshotError(f"Invalid tenant id for snapshot path: {tenant!r}")
        return self.root / tenant / SNAPSHOT_FILE

    def exists(self, tenant: str) -> bool:
        return self.file_path(tenant).exists()

    def load(self, tenant: Optional[str]) -> FlagSnapshot:
        """
        Snapshot for a tenant; an empty snapshot when the tenant has no file.
        """
        if not tenant or not self.exists(tenant):
            return FlagSnapshot()
        return load_snapshot_file(self.file_path(tenant))

    def save(self, tenant: str, snapshot: FlagSnapshot) -> Path:
        data = snapshot.to_dict()
        validate_snapshot_data(data)
        dest = self.file_path(tenant)
        _atomic_write_text(dest, json.dumps(data, ensure_ascii=False, indent=2))
        return dest
