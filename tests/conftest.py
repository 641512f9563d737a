"""
Global test fixtures for the tenant flags repo.

Creates an isolated Flask app and injects an in-memory fake of the backend
flag API (a requests.Session stand-in) so tests never hit the network.
The fake computes effective flags with the same resolver the app uses.
"""

from __future__ import annotations
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app  # noqa: E402
from flags.models import FlagRow, FlagSnapshot, PlatformLayers, TenantLayers  # noqa: E402
from flags.resolver import FlagResolver  # noqa: E402

API_BASE = "http://backend.test"
TENANT = "t_123"

# ---------------------------------------------------------------------------
# Fake HTTP layer
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None,
                 content_type: str = "application/json"):
        self.status_code = status_code
        self._body = body
        self.headers = {"content-type": content_type} if content_type else {}
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text

    def json(self):
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeBackend:
    """Just enough of the flag endpoints, backed by a FlagSnapshot."""

    def __init__(self, snapshot: FlagSnapshot):
        self.snapshot = snapshot
        self.calls: List[Tuple[str, str, Any]] = []
        self.cookies_seen: List[Dict[str, str]] = []
        self.queued: List[FakeResponse] = []

    def handle(self, method: str, url: str, body: Any, cookies: Dict[str, str]) -> FakeResponse:
        path = urlsplit(url).path
        self.calls.append((method, path, body))
        self.cookies_seen.append(dict(cookies))
        if self.queued:
            return self.queued.pop(0)

        parts = [unquote(p) for p in path.strip("/").split("/")]
        # api/admin/...
        if parts[:3] == ["api", "admin", "tenant-flags"] and method == "GET" and len(parts) == 4:
            return FakeResponse(body={"success": True, "data": [r.to_dict() for r in self.rows(parts[3])]})
        if parts[:3] == ["api", "admin", "tenant-flags"] and method == "PUT" and len(parts) == 5:
            tenant, flag = parts[3], parts[4]
            cur = self.snapshot.tenants.get(tenant, {}).get(flag)
            enabled = body.get("enabled", cur.db if cur and cur.db is not None else False)
            self.snapshot = self.snapshot.with_tenant_row(tenant, flag, enabled, body.get("rollout"))
            return FakeResponse(body={"success": True})
        if parts[:3] == ["api", "admin", "effective-flags"] and method == "GET":
            rows = FlagResolver(self.snapshot).effective_map(parts[3])
            return FakeResponse(body={"success": True, "data": [r.to_dict() for r in rows.values()]})
        if parts[:5] == ["api", "admin", "flags", "override", "tenant"] and method == "POST":
            tenant, flag = parts[5], parts[6]
            self.snapshot = self.snapshot.with_tenant_override(tenant, flag, body.get("value"))
            return FakeResponse(body={"success": True})
        if parts == ["api", "admin", "platform-flags"] and method == "GET":
            data = [
                {"id": f, "flag": f, "enabled": bool(p.db), "rollout": p.rollout,
                 "allowTenantOverride": p.allow_override, "updatedAt": "2026-01-01T00:00:00Z"}
                for f, p in self.snapshot.platform.items()
            ]
            return FakeResponse(body={"success": True, "data": data})
        return FakeResponse(404, text="Cannot " + method + " " + path, content_type="text/html")

    def rows(self, tenant: str) -> List[FlagRow]:
        out = []
        for flag, t in self.snapshot.tenants.get(tenant, {}).items():
            if t.db is not None:
                out.append(FlagRow(id=f"{tenant}:{flag}", flag=flag, enabled=t.db, rollout=t.rollout))
        return out

    def mutations(self) -> List[Tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] != "GET"]


class FakeSession:
    def __init__(self, backend: FakeBackend):
        self.backend = backend
        self.cookies = requests.cookies.RequestsCookieJar()

    def request(self, method, url, json=None, headers=None, timeout=None):
        return self.backend.handle(method, url, json, self.cookies.get_dict())


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def base_snapshot() -> FlagSnapshot:
    return FlagSnapshot(
        platform={
            "FF_MAP_CARD": PlatformLayers(env=False, db=True),
            "FF_SWIS_PREVIEW": PlatformLayers(env=False, db=False, allow_override=True, override=True),
            "FF_DARK_MODE": PlatformLayers(env=False),
        },
        tenants={
            TENANT: {
                "FF_DARK_MODE": TenantLayers(db=True),
                "TENANT_SPECIAL": TenantLayers(db=False),
            }
        },
    )


@pytest.fixture()
def backend(base_snapshot) -> FakeBackend:
    return FakeBackend(base_snapshot)


@pytest.fixture()
def session(backend) -> FakeSession:
    return FakeSession(backend)


@pytest.fixture()
def api_client(session):
    from service.admin_api import AdminApiClient
    return AdminApiClient(base_url=API_BASE, session=session)


class Clock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def app(tmp_path: Path, backend, monkeypatch):
    """
    Flask app fixture (testing mode ON); logs + snapshots under tmp_path.
    """
    for key in ("FF_MAP_CARD", "FF_TENANT_URLS", "FF_DEV_OVERRIDES"):
        monkeypatch.delenv(key, raising=False)
    flask_app = create_app(
        {
            "ENV": "test",
            "API_BASE_URL": API_BASE,
            "LOG_DIR": str(tmp_path / "logs"),
            "SNAPSHOT_DIR": str(tmp_path / "tenants"),
        },
        session_factory=lambda: FakeSession(backend),
    )
    flask_app.config.update(TESTING=True)
    yield flask_app


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def json_headers():
    return {"Content-Type": "application/json"}
