"""
TenantFlagsPanel: fire-and-refetch mutations, add-flag validation and
confirmation, transient errors, conflict markers, audit records.
"""

from __future__ import annotations
import pytest

from service.audit import AuditService
from service.flag_panel import CUSTOM_FLAG_WARNING, TenantFlagsPanel
from tests.conftest import TENANT, FakeResponse


@pytest.fixture()
def audit(tmp_path):
    return AuditService(log_path=str(tmp_path / "audit.jsonl"))


@pytest.fixture()
def panel(api_client, clock, audit):
    p = TenantFlagsPanel(api_client, TENANT, clock=clock, audit=audit, confirm=lambda _m: True)
    assert p.load()
    return p


def _reloads(backend, after: int):
    return [c[:2] for c in backend.calls[after:] if c[0] == "GET"]


def test_load_populates_rows_and_effective(panel):
    assert {r.flag for r in panel.rows} == {"FF_DARK_MODE", "TENANT_SPECIAL"}
    assert panel.effective["FF_DARK_MODE"].tenant_effective_source == "tenant_db"
    assert panel.error is None and panel.loading is False


def test_override_then_full_reload(panel, backend):
    n = len(backend.calls)
    assert panel.set_tenant_override("FF_MAP_CARD", False)
    assert backend.calls[n][:2] == ("POST", f"/api/admin/flags/override/tenant/{TENANT}/FF_MAP_CARD")
    assert _reloads(backend, n) == [
        ("GET", f"/api/admin/tenant-flags/{TENANT}"),
        ("GET", f"/api/admin/effective-flags/{TENANT}"),
    ]
    assert panel.effective["FF_MAP_CARD"].tenant_effective_on is False
    assert panel.saving is None


def test_clear_override_reverts_to_next_layer(panel):
    panel.set_tenant_override("FF_MAP_CARD", False)
    assert panel.effective["FF_MAP_CARD"].tenant_effective_on is False
    panel.set_tenant_override("FF_MAP_CARD", None)
    assert panel.effective["FF_MAP_CARD"].tenant_effective_on is True
    assert panel.effective["FF_MAP_CARD"].tenant_effective_source == "platform_db"


def test_upsert_reflected_on_next_read(panel, backend):
    assert panel.upsert("TENANT_SPECIAL", enabled=True)
    assert panel.row("TENANT_SPECIAL").enabled is True
    assert panel.effective["TENANT_SPECIAL"].tenant_effective_on is True


def test_upsert_keeps_existing_rollout(panel, backend):
    panel.upsert("FF_DARK_MODE", rollout="25%")
    assert panel.row("FF_DARK_MODE").rollout == "25%"
    panel.upsert("FF_DARK_MODE", enabled=False)
    assert backend.mutations()[-1][2] == {"enabled": False, "rollout": "25%"}


def test_upsert_blank_rollout_clears(panel, backend):
    panel.upsert("FF_DARK_MODE", rollout="25%")
    panel.upsert("FF_DARK_MODE", rollout="")
    assert backend.mutations()[-1][2] == {"rollout": None}
    assert panel.row("FF_DARK_MODE").rollout is None


def test_add_flag_invalid_prefix_makes_no_request(panel, backend, clock):
    n = len(backend.calls)
    assert panel.add_flag("MY_FEATURE") is False
    assert len(backend.calls) == n
    assert "TENANT_" in panel.error
    clock.advance(4.9)
    assert panel.error is not None
    clock.advance(0.2)
    assert panel.error is None


def test_add_flag_blank_is_noop(panel, backend):
    n = len(backend.calls)
    assert panel.add_flag("   ") is False
    assert panel.add_flag(None) is False
    assert len(backend.calls) == n and panel.error is None


def test_add_tenant_flag_requires_confirmation(api_client, backend, clock):
    prompts = []

    def decline(msg):
        prompts.append(msg)
        return False

    p = TenantFlagsPanel(api_client, TENANT, clock=clock, confirm=decline)
    assert p.add_flag("TENANT_PROMO_BANNER") is False
    assert prompts == [CUSTOM_FLAG_WARNING]
    assert backend.mutations() == []

    # no confirm callback at all behaves like "cancel"
    p = TenantFlagsPanel(api_client, TENANT, clock=clock)
    assert p.add_flag("TENANT_PROMO_BANNER") is False
    assert backend.mutations() == []


def test_add_tenant_flag_confirmed_creates_enabled_row(panel, backend):
    assert panel.add_flag(" TENANT_PROMO_BANNER ")
    assert backend.mutations()[-1][:2] == ("PUT", f"/api/admin/tenant-flags/{TENANT}/TENANT_PROMO_BANNER")
    assert panel.row("TENANT_PROMO_BANNER").enabled is True


def test_add_ff_flag_skips_confirmation(api_client, backend, clock):
    asked = []
    p = TenantFlagsPanel(api_client, TENANT, clock=clock, confirm=lambda m: asked.append(m) or False)
    assert p.add_flag("FF_NEW_FEATURE")
    assert asked == []


def test_api_error_becomes_sticky_error(panel, backend, clock):
    backend.queued.append(FakeResponse(500, {"success": False, "error": "db_down"}))
    assert panel.set_tenant_override("FF_MAP_CARD", True) is False
    assert panel.error == "db_down"
    clock.advance(60)
    assert panel.error == "db_down"
    assert panel.saving is None


def test_load_failure_keeps_previous_rows(panel, backend):
    backend.queued.append(FakeResponse(502, text="upstream down", content_type="text/plain"))
    assert panel.load() is False
    assert panel.error == "upstream down"
    assert panel.rows  # previous state still shown


def test_conflict_is_informational(panel, backend):
    panel.set_tenant_override("FF_DARK_MODE", False)
    assert panel.conflicts() == ["FF_DARK_MODE"]
    # nothing auto-corrects the stored row
    assert panel.row("FF_DARK_MODE").enabled is True
    assert [m for m in backend.mutations() if m[0] == "PUT"] == []


def test_view_model(panel):
    panel.set_tenant_override("FF_DARK_MODE", False)
    view = panel.view()
    by_flag = {f["flag"]: f for f in view["flags"]}
    dark = by_flag["FF_DARK_MODE"]
    assert dark["conflict"] is True
    assert dark["live"]["on"] is False and dark["live"]["source"] == "tenant_override"
    assert dark["live"]["has_override"] is True
    assert by_flag["TENANT_SPECIAL"]["badges"]["tenant_only"] is True
    assert view["conflicts"] == ["FF_DARK_MODE"]
    assert view["error"] is None


def test_mutations_are_audited(panel, audit):
    panel.upsert("FF_DARK_MODE", enabled=False)
    panel.set_tenant_override("FF_MAP_CARD", None)
    actions = [(e["action"], e["flag"], e["value"]) for e in audit.entries(TENANT)]
    assert actions == [("flag.upsert", "FF_DARK_MODE", False), ("flag.override", "FF_MAP_CARD", None)]
