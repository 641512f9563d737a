"""
Tenant feature flags panel.

Server-side state for the admin "Tenant Feature Flags" screen:
- load(): flag rows, then the effective-flags map (audit only)
- upsert() / set_tenant_override(): single request, then a full reload
  (no optimistic merge, so rows and effective data never disagree by ordering)
- add_flag(): prefix validation before any request; TENANT_ keys need confirmation
- conflicts(): stored `enabled` differs from the effective value; informational,
  never written back

Errors never escape: they become `error`. Validation errors are transient and
clear after ERROR_CLEAR_SECONDS.
"""

from __future__ import annotations
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from flags.keys import FlagKeyError, TENANT_PREFIX, validate_new_flag_key
from flags.models import EffectiveRow, FlagRow
from service.admin_api import AdminApiClient, ApiError
from service.audit import AuditService

log = logging.getLogger("FlagsPanel")

ERROR_CLEAR_SECONDS = 5.0

CUSTOM_FLAG_WARNING = (
    "Custom Flag Warning\n\n"
    "This custom flag will NOT affect any functionality until:\n"
    "1. A developer adds code to check this flag\n"
    "2. The code is deployed to production\n\n"
    "Custom flags are an advanced feature for tenant-specific customizations.\n\n"
    "Continue creating this flag?"
)

Confirm = Callable[[str], bool]


class TenantFlagsPanel:
    def __init__(
        self,
        client: AdminApiClient,
        tenant_id: str,
        *,
        clock: Callable[[], float] = time.monotonic,
        confirm: Optional[Confirm] = None,
        audit: Optional[AuditService] = None,
        error_clear_seconds: float = ERROR_CLEAR_SECONDS,
        actor: Optional[str] = None,
    ):
        self.client = client
        self.tenant_id = tenant_id
        self.clock = clock
        self.confirm = confirm
        self.audit = audit
        self.error_clear_seconds = error_clear_seconds
        self.actor = actor

        self.rows: List[FlagRow] = []
        self.effective: Dict[str, EffectiveRow] = {}
        self.loading = False
        self.saving: Optional[str] = None
        self._error: Optional[str] = None
        self._error_expires: Optional[float] = None

    # -------- error state --------

    @property
    def error(self) -> Optional[str]:
        if self._error_expires is not None and self.clock() >= self._error_expires:
            self._error = None
            self._error_expires = None
        return self._error

    def _set_error(self, message: Optional[str], transient: bool = False) -> None:
        self._error = message
        self._error_expires = self.clock() + self.error_clear_seconds if (message and transient) else None

    def _fail(self, action: str, e: Exception) -> None:
        if isinstance(e, ApiError):
            log.warning(f"{action} failed tenant={self.tenant_id}: {e.message}")
            self._set_error(e.message)
        else:
            log.exception(f"{action} failed tenant={self.tenant_id}")
            self._set_error(str(e) or e.__class__.__name__)

    # -------- operations --------

    def load(self) -> bool:
        self.loading = True
        self._set_error(None)
        try:
            self.rows = self.client.list_tenant_flags(self.tenant_id)
            self.effective = self.client.list_effective_flags(self.tenant_id)
            return True
        except Exception as e:
            self._fail("load", e)
            return False
        finally:
            self.loading = False

    def upsert(self, flag: str, enabled: Optional[bool] = None, rollout: Optional[str] = None) -> bool:
        if rollout is None:
            cur = self.row(flag)
            rollout = cur.rollout if cur else None
        self.saving = flag
        self._set_error(None)
        try:
            self.client.upsert_tenant_flag(self.tenant_id, flag, enabled, rollout or None)
            self._record("flag.upsert", flag, enabled, rollout)
            return self.load()
        except Exception as e:
            self._fail("upsert", e)
            return False
        finally:
            self.saving = None

    def add_flag(self, raw_key: Optional[str]) -> bool:
        raw = (raw_key or "").strip()
        if not raw:
            return False
        try:
            flag = validate_new_flag_key(raw)
        except FlagKeyError as e:
            self._set_error(str(e), transient=True)
            return False
        if flag.startswith(TENANT_PREFIX):
            if self.confirm is None or not self.confirm(CUSTOM_FLAG_WARNING):
                log.info(f"add_flag declined tenant={self.tenant_id} flag={flag}")
                return False
        return self.upsert(flag, enabled=True)

    def set_tenant_override(self, flag: str, value: Optional[bool]) -> bool:
        self.saving = flag
        try:
            self.client.set_tenant_override(self.tenant_id, flag, value)
            self._record("flag.override", flag, value, None)
            return self.load()
        except Exception as e:
            self._fail("override", e)
            return False
        finally:
            self.saving = None

    # -------- derived --------

    def row(self, flag: str) -> Optional[FlagRow]:
        for r in self.rows:
            if r.flag == flag:
                return r
        return None

    def is_conflict(self, row: FlagRow) -> bool:
        eff = self.effective.get(row.flag)
        return eff is not None and row.enabled != eff.tenant_effective_on

    def conflicts(self) -> List[str]:
        return [r.flag for r in self.rows if self.is_conflict(r)]

    def view(self) -> Dict[str, Any]:
        items: List[Dict[str, Any]] = []
        for r in self.rows:
            eff = self.effective.get(r.flag)
            items.append({
                **r.to_dict(),
                "badges": {
                    "platform_override_allowed": r.platform_inherited,
                    "tenant_only": r.flag.startswith(TENANT_PREFIX),
                },
                "live": None if eff is None else {
                    "on": eff.tenant_effective_on,
                    "source": eff.tenant_effective_source,
                    "has_override": eff.has_override,
                    "sources": {**dict(eff.sources), **dict(eff.tenant_sources)},
                },
                "conflict": self.is_conflict(r),
                "saving": self.saving == r.flag,
            })
        return {
            "tenant_id": self.tenant_id,
            "loading": self.loading,
            "error": self.error,
            "flags": items,
            "conflicts": self.conflicts(),
        }

    def _record(self, action: str, flag: str, value: Any, rollout: Optional[str]) -> None:
        if self.audit is None:
            return
        self.audit.record(
            action=action,
            tenant=self.tenant_id,
            flag=flag,
            value=value,
            rollout=rollout,
            actor=self.actor,
        )
