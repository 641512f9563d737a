"""
Rollout descriptors.

The backend stores rollout as a free-form string. Three shapes are understood
locally; anything else (e.g. "Pilot: 5 tenants") is a note and never gates:

  "25%" / "percentage:25"      stable per-tenant bucket < 25
  "pilot:t_1,t_2"              listed tenants only
  "region:us-east,eu-west"     listed regions only
"""

from __future__ import annotations
import hashlib
import re
from dataclasses import dataclass
from typing import FrozenSet, Optional

_PERCENT = re.compile(r"^\s*(?:percentage\s*:\s*)?(\d{1,3})\s*%?\s*$", re.I)
_LIST = re.compile(r"^\s*(pilot|region)\s*:\s*(.+)$", re.I)
_MEMBER = re.compile(r"^[A-Za-z0-9_.\-]+$")


@dataclass(frozen=True)
class Rollout:
    strategy: str                       # percentage | pilot | region
    percentage: int = 0
    members: FrozenSet[str] = frozenset()

    def allows(self, flag: str, tenant_id: Optional[str], region: Optional[str] = None) -> bool:
        if self.strategy == "percentage":
            if not tenant_id:
                return False
            return bucket(flag, tenant_id) < self.percentage
        if self.strategy == "pilot":
            return bool(tenant_id) and tenant_id in self.members
        if self.strategy == "region":
            return bool(region) and region.lower() in self.members
        return True


def bucket(flag: str, tenant_id: str) -> int:
    digest = hashlib.sha256(f"{flag}:{tenant_id}".encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % 100


def parse_rollout(raw: Optional[str]) -> Optional[Rollout]:
    if not raw:
        return None
    text = raw.strip()
    m = _PERCENT.match(text)
    if m and ("%" in text or text.lower().startswith("percentage")):
        return Rollout("percentage", percentage=min(100, int(m.group(1))))
    m = _LIST.match(text)
    if m:
        kind = m.group(1).lower()
        items = [p.strip() for p in m.group(2).split(",") if p.strip()]
        if not items or not all(_MEMBER.match(p) for p in items):
            return None
        if kind == "region":
            items = [p.lower() for p in items]
        return Rollout(kind, members=frozenset(items))
    return None
