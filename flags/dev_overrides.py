"""
DevOverridesStore
- Loads local experimentation overrides from a JSON file (dev/test only)
- Keys are matched case-insensitively against flag keys:
  {
    "ff_tenant_urls": "on",
    "FF_MAP_CARD": false
  }
- "on"/true/1 force a flag on, "off"/false/0 force it off; anything else is ignored
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger("FlagsPanel")

_ON = {"on", "true", "1", "yes"}
_OFF = {"off", "false", "0", "no"}


def _to_state(v: Any) -> Optional[bool]:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v) if v in (0, 1) else None
    if isinstance(v, str):
        s = v.strip().lower()
        if s in _ON:
            return True
        if s in _OFF:
            return False
    return None


@dataclass
class DevOverridesStore:
    path: Optional[Path] = None

    def __post_init__(self):
        self._data: Dict[str, bool] = self._load()

    def _load(self) -> Dict[str, bool]:
        if self.path is None:
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            log.warning(f"Ignoring unreadable dev overrides file {self.path}: {e}")
            return {}
        if not isinstance(raw, dict):
            return {}
        out: Dict[str, bool] = {}
        for k, v in raw.items():
            state = _to_state(v)
            if state is not None:
                out[str(k).strip().upper()] = state
        return out

    # -------- public API --------

    def get(self, flag: str) -> Optional[bool]:
        return self._data.get(flag.strip().upper())

    def set(self, flag: str, value: Optional[bool]) -> None:
        """In-memory only; used by tests and the CLI for one-off experiments."""
        key = flag.strip().upper()
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = bool(value)

    def raw(self) -> Dict[str, bool]:
        return dict(self._data)
