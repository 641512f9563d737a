from __future__ import annotations
from flask import Blueprint, jsonify, request
from routes import get_container

bp = Blueprint("flags", __name__, url_prefix="/api/flags")

# -------- Local gate (end-user rendering decisions) --------

@bp.get("/<tenant_id>/<flag>")
def flag_enabled(tenant_id: str, flag: str):
    c = get_container()
    region = request.args.get("region") or None
    enabled = c.flags.is_feature_enabled(flag, tenant_id, region)
    return jsonify({"flag": flag, "tenant": tenant_id, "region": region, "enabled": enabled})

@bp.get("/<tenant_id>")
def tenant_flags(tenant_id: str):
    """All locally known flags for a tenant (snapshot + env defaults)."""
    c = get_container()
    region = request.args.get("region") or None
    resolver = c.flags.resolver_for(tenant_id)
    out = {
        flag: c.flags.evaluate(resolver, flag, tenant_id, region)
        for flag in resolver.snapshot.flags(tenant_id)
    }
    return jsonify({"tenant": tenant_id, "flags": out})
