"""
Route helpers.

Exports:
- get_container(): typed access to app.container
- json_body(): parsed JSON object body or 400
"""

from __future__ import annotations
from typing import Any, Dict

from flask import abort, current_app, request

from app.container import Container

# ---- Container access ----

def get_container() -> Container:
    c = getattr(current_app, "container", None)
    if c is None:
        raise RuntimeError("Container not initialized on app")
    return c

# ---- Request bodies ----

def json_body() -> Dict[str, Any]:
    if not request.data:
        return {}
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="invalid_json")
    return payload
