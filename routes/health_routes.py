from __future__ import annotations
from flask import Blueprint, current_app, jsonify
from app.config import Settings
from flags.models import FlagSnapshot
from flags.storage import SnapshotError, validate_snapshot_data

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    # lightweight liveness
    return "ok", 200, {"Content-Type": "text/plain; charset=utf-8"}

@bp.get("/version")
def version():
    s: Settings = current_app.config.get("SETTINGS") or getattr(current_app, "container").settings
    info = {
        "env": s.ENV,
        "api_base_url": s.API_BASE_URL,
        "dev_overrides": s.FF_DEV_OVERRIDES,
        "env_flags": sorted(s.FLAG_DEFAULTS),
    }
    return jsonify(info)

@bp.get("/ready")
def ready():
    # snapshot files cannot be validated without the schema
    try:
        validate_snapshot_data(FlagSnapshot().to_dict())
        return jsonify({"ready": True}), 200
    except SnapshotError as e:
        current_app.logger.error(f"Readiness check failed: {e}")
        return jsonify({"ready": False, "error": str(e)}), 503
