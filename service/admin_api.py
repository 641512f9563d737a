"""
Admin flags API client.

Purpose:
- Thin wrapper around the backend's tenant/platform flag endpoints.
- One request per call; no retries, no local caching. Callers reload after
  mutating (see service/flag_panel.py).

Response contract:
- JSON bodies carry {"success": bool, "data"?: ..., "error"?: str}
- non-JSON bodies are surfaced as text (truncated to 200 chars on 2xx)

Dependencies:
- requests (Session keeps cookies: every request carries the admin session)

Typical usage:
    c = AdminApiClient(base_url="https://api.example.com", cookies=request.cookies)
    rows = c.list_tenant_flags("t_123")
    c.set_tenant_override("t_123", "FF_MAP_CARD", None)
"""

from __future__ import annotations
import logging
import time
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from flags.models import EffectiveRow, FlagRow, PlatformFlagRow

log = logging.getLogger("FlagsApi")

_TEXT_PREVIEW = 200


class ApiError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _seg(value: str) -> str:
    return quote(str(value), safe="")


class AdminApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        cookies: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        :param base_url: Backend root (e.g., https://api.example.com)
        :param timeout: Request timeout in seconds
        :param cookies: Session cookies to forward (admin auth lives in them)
        :param session: Pre-built session (tests inject a fake)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        if cookies:
            self._session.cookies.update(dict(cookies))

    # -------- Tenant flag rows --------
    def list_tenant_flags(self, tenant_id: str) -> List[FlagRow]:
        body = self._request("GET", f"/api/admin/tenant-flags/{_seg(tenant_id)}")
        return [FlagRow.from_dict(d) for d in (body.get("data") or [])]

    def upsert_tenant_flag(
        self,
        tenant_id: str,
        flag: str,
        enabled: Optional[bool],
        rollout: Optional[str] = None,
    ) -> Dict[str, Any]:
        # enabled=None means "leave as is" (rollout-only edit)
        payload: Dict[str, Any] = {"rollout": rollout}
        if enabled is not None:
            payload["enabled"] = bool(enabled)
        return self._request(
            "PUT",
            f"/api/admin/tenant-flags/{_seg(tenant_id)}/{_seg(flag)}",
            json=payload,
        )

    # -------- Effective flags (audit only) --------
    def list_effective_flags(self, tenant_id: str) -> Dict[str, EffectiveRow]:
        body = self._request("GET", f"/api/admin/effective-flags/{_seg(tenant_id)}")
        out: Dict[str, EffectiveRow] = {}
        for d in body.get("data") or []:
            row = EffectiveRow.from_dict(d)
            out[row.flag] = row
        return out

    # -------- Tenant override (three-state) --------
    def set_tenant_override(self, tenant_id: str, flag: str, value: Optional[bool]) -> Dict[str, Any]:
        """
        value=True forces on, False kills, None clears the override so the flag
        falls back to the next layer.
        """
        if value is not None and not isinstance(value, bool):
            raise TypeError("Override value must be True, False or None")
        return self._request(
            "POST",
            f"/api/admin/flags/override/tenant/{_seg(tenant_id)}/{_seg(flag)}",
            json={"value": value},
        )

    # -------- Platform flags --------
    def list_platform_flags(self) -> List[PlatformFlagRow]:
        body = self._request("GET", "/api/admin/platform-flags")
        return [PlatformFlagRow.from_dict(d) for d in (body.get("data") or [])]

    def update_platform_flag(self, flag: str, **updates: Any) -> Dict[str, Any]:
        """
        Example: update_platform_flag("FF_MAP_CARD", enabled=True, allowTenantOverride=False)
        """
        return self._request("PUT", "/api/admin/platform-flags", json={"flag": flag, **updates})

    # -------- Helpers --------
    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if json is not None:
            headers["Content-Type"] = "application/json"
        t0 = time.time()
        try:
            resp = self._session.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"{method} {path} failed: {e}")
            raise ApiError(str(e) or e.__class__.__name__) from e
        dt = int((time.time() - t0) * 1000)
        log.info(f"{method} {path} -> {resp.status_code} ({dt}ms)")
        return self._parse(resp)

    @staticmethod
    def _parse(resp: requests.Response) -> Dict[str, Any]:
        status = resp.status_code
        ok = 200 <= status < 300
        ctype = resp.headers.get("content-type") or ""
        if "application/json" in ctype:
            try:
                body = resp.json()
            except ValueError as e:
                raise ApiError(f"Unexpected response: {resp.text[:_TEXT_PREVIEW]}", status) from e
            if not isinstance(body, dict):
                body = {"success": False, "error": None}
            if not ok or not body.get("success"):
                raise ApiError(body.get("error") or f"HTTP {status}", status)
            return body
        text = resp.text or ""
        if not ok:
            raise ApiError(text or f"HTTP {status}", status)
        raise ApiError(f"Unexpected response: {text[:_TEXT_PREVIEW]}", status)
