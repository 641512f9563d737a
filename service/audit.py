"""
Append-only audit trail for admin flag mutations.

Records:
- action (flag.upsert / flag.override), tenant, flag
- value (enabled / override state) and rollout when given
- actor (if known), request id, timestamp

Writes JSON Lines to logs/flags_audit.jsonl by default, or a custom file.
"""

from __future__ import annotations
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

log = logging.getLogger("FlagsAudit")


@dataclass
class AuditService:
    log_path: str = "logs/flags_audit.jsonl"

    def _ensure_dir(self) -> None:
        d = os.path.dirname(self.log_path)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)

    def record(
        self,
        *,
        action: str,
        tenant: str,
        flag: str,
        value: Any = None,
        rollout: Optional[str] = None,
        actor: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._ensure_dir()
        evt = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "action": action,
            "tenant": tenant,
            "flag": flag,
            "value": value,
            "rollout": rollout,
            "actor": actor,
            "request_id": request_id,
        }
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(evt, ensure_ascii=False) + "\n")
        log.info(f"{action} tenant={tenant} flag={flag} value={value!r}")
        return evt

    def entries(self, tenant: Optional[str] = None) -> List[Dict[str, Any]]:
        if not os.path.exists(self.log_path):
            return []
        out: List[Dict[str, Any]] = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    evt = json.loads(line)
                except json.JSONDecodeError:
                    # tolerate bad lines
                    continue
                if tenant is None or evt.get("tenant") == tenant:
                    out.append(evt)
        return out
