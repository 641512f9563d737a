from __future__ import annotations
from flask import Blueprint, abort, g, jsonify, request
from routes import get_container, json_body

bp = Blueprint("admin_flags", __name__, url_prefix="/admin/tenants")

# The panel never raises; failures come back as {"error": "..."} in the view,
# the same way the settings page shows an error banner instead of crashing.

def _panel(tenant_id: str, confirm=None):
    c = get_container()
    return c.panel(tenant_id, cookies=request.cookies, confirm=confirm, actor=request.headers.get("X-Actor"))

def _view(panel):
    view = panel.view()
    view["request_id"] = g.get("request_id")
    return jsonify(view)

# -------- Tenant flag rows + effective audit --------

@bp.get("/<tenant_id>/flags")
def list_flags(tenant_id: str):
    panel = _panel(tenant_id)
    panel.load()
    return _view(panel)

@bp.get("/<tenant_id>/flags/conflicts")
def list_conflicts(tenant_id: str):
    panel = _panel(tenant_id)
    panel.load()
    return jsonify({"tenant_id": tenant_id, "conflicts": panel.conflicts(), "error": panel.error})

@bp.put("/<tenant_id>/flags/<flag>")
def put_flag(tenant_id: str, flag: str):
    payload = json_body()
    enabled = payload.get("enabled")
    if enabled is not None and not isinstance(enabled, bool):
        abort(400, description="enabled_must_be_boolean")
    rollout = payload.get("rollout")
    if rollout is not None and not isinstance(rollout, str):
        abort(400, description="rollout_must_be_string")
    panel = _panel(tenant_id)
    panel.upsert(flag, enabled=enabled, rollout=rollout)
    return _view(panel)

# -------- Add custom flag (validated before any backend call) --------

@bp.post("/<tenant_id>/flags")
def add_flag(tenant_id: str):
    payload = json_body()
    confirmed = bool(payload.get("confirm", False))
    panel = _panel(tenant_id, confirm=lambda _msg: confirmed)
    created = panel.add_flag(payload.get("flag"))
    view = panel.view()
    view["created"] = created
    view["request_id"] = g.get("request_id")
    return jsonify(view)

# -------- Tenant override: force on / kill / clear --------

@bp.post("/<tenant_id>/flags/<flag>/override")
def set_override(tenant_id: str, flag: str):
    payload = json_body()
    if "value" not in payload:
        abort(400, description="value_required")
    value = payload.get("value")
    if value is not None and not isinstance(value, bool):
        abort(400, description="value_must_be_true_false_or_null")
    panel = _panel(tenant_id)
    panel.set_tenant_override(flag, value)
    return _view(panel)
