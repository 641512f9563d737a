"""
Container: creates and holds singletons.

Provides:
- Local flag sources (flags/storage.py snapshot files, dev overrides)
- Flags gate (app/feature_flags.py)
- AuditService
- Factories for per-request AdminApiClient / TenantFlagsPanel (cookies differ per request)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional

import requests

from app.config import Settings
from app.feature_flags import Flags
from flags.dev_overrides import DevOverridesStore
from flags.storage import SnapshotStore
from service.admin_api import AdminApiClient
from service.audit import AuditService
from service.flag_panel import Confirm, TenantFlagsPanel


@dataclass
class Container:
    settings: Settings
    # tests swap this for a fake; None -> a fresh requests.Session per client
    session_factory: Optional[Callable[[], requests.Session]] = None
    flags: Optional[Flags] = field(default=None, init=False)

    def __post_init__(self):
        # ---------- Local flag sources ----------
        self.snapshots = SnapshotStore(Path(self.settings.SNAPSHOT_DIR))
        dev_path = self.settings.DEV_OVERRIDES_PATH
        self.dev_overrides = DevOverridesStore(Path(dev_path) if dev_path else None)

        # ---------- Services ----------
        self.audit = AuditService(log_path=str(Path(self.settings.LOG_DIR) / "flags_audit.jsonl"))
        self.flags = Flags(self.settings, self.snapshots.load, self.dev_overrides)

    def api_client(self, cookies: Optional[Mapping[str, str]] = None) -> AdminApiClient:
        session = self.session_factory() if self.session_factory else None
        return AdminApiClient(
            base_url=self.settings.API_BASE_URL,
            timeout=self.settings.API_TIMEOUT,
            cookies=cookies,
            session=session,
        )

    def panel(
        self,
        tenant_id: str,
        cookies: Optional[Mapping[str, str]] = None,
        confirm: Optional[Confirm] = None,
        actor: Optional[str] = None,
    ) -> TenantFlagsPanel:
        return TenantFlagsPanel(
            self.api_client(cookies),
            tenant_id,
            confirm=confirm,
            audit=self.audit,
            error_clear_seconds=self.settings.ERROR_CLEAR_SECONDS,
            actor=actor,
        )
