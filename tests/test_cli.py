"""
CLI smoke tests: local check against a snapshot file, admin commands
through the fake backend, exit codes.
"""

from __future__ import annotations
import json
from pathlib import Path

import pytest

import cli.main as cli_main
from app.config import load_settings
from app.container import Container
from tests.conftest import API_BASE, TENANT, FakeResponse, FakeSession


@pytest.fixture()
def container(tmp_path: Path, backend, monkeypatch):
    for key in ("FF_MAP_CARD", "FF_TENANT_URLS", "FF_DEV_OVERRIDES"):
        monkeypatch.delenv(key, raising=False)
    settings = load_settings({
        "ENV": "test",
        "API_BASE_URL": API_BASE,
        "LOG_DIR": str(tmp_path / "logs"),
        "SNAPSHOT_DIR": str(tmp_path / "tenants"),
    })
    c = Container(settings, session_factory=lambda: FakeSession(backend))
    monkeypatch.setattr(cli_main, "_container", lambda _args: c)
    return c


def _run(capsys, *argv):
    code = cli_main.main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


def test_check_against_snapshot_file(container, tmp_path, base_snapshot, capsys):
    path = tmp_path / "snap.json"
    path.write_text(json.dumps(base_snapshot.to_dict()))
    code, out, _ = _run(capsys, "check", "--tenant", TENANT, "--flag", "FF_DARK_MODE", "--snapshot", str(path))
    assert code == 0
    data = json.loads(out)
    assert data["enabled"] is True
    assert data["explain"]["tenantEffectiveSource"] == "tenant_db"


def test_check_remote(container, capsys):
    code, out, _ = _run(capsys, "check", "--tenant", TENANT, "--flag", "FF_MAP_CARD", "--remote")
    assert code == 0
    assert json.loads(out)["enabled"] is True


def test_override_and_conflicts(container, backend, capsys):
    code, _, _ = _run(capsys, "override", "--tenant", TENANT, "--flag", "FF_DARK_MODE", "--value", "off")
    assert code == 0
    assert backend.mutations()[-1][2] == {"value": False}
    code, out, _ = _run(capsys, "conflicts", "--tenant", TENANT)
    assert code == 0
    assert json.loads(out) == ["FF_DARK_MODE"]


def test_add_invalid_key_exits_1(container, backend, capsys):
    code, _, err = _run(capsys, "add", "--tenant", TENANT, "--flag", "my_feature", "--yes")
    assert code == 1
    assert "TENANT_" in err
    assert backend.mutations() == []


def test_add_tenant_flag_with_yes(container, backend, capsys):
    code, out, _ = _run(capsys, "add", "--tenant", TENANT, "--flag", "TENANT_PROMO", "--yes")
    assert code == 0
    assert any(f["flag"] == "TENANT_PROMO" for f in json.loads(out)["flags"])


def test_set_rollout_only(container, backend, capsys):
    code, _, _ = _run(capsys, "set", "--tenant", TENANT, "--flag", "FF_DARK_MODE", "--rollout", "pilot:t_123")
    assert code == 0
    assert backend.mutations()[-1][2] == {"rollout": "pilot:t_123"}


def test_snapshot_command_writes_tenant_file(container, capsys):
    code, out, _ = _run(capsys, "snapshot", "--tenant", TENANT)
    assert code == 0
    assert container.snapshots.exists(TENANT)
    assert container.flags.is_feature_enabled("FF_DARK_MODE", TENANT) is True


def test_backend_error_exits_1(container, backend, capsys):
    backend.queued.append(FakeResponse(503, text="down", content_type="text/plain"))
    code, _, err = _run(capsys, "effective", "--tenant", TENANT)
    assert code == 1
    assert "down" in err
