"""
Feature flag resolution.

Precedence, highest first:
  tenant_override > tenant_db > platform_override (only with allow_override)
  > platform_db > platform_env

The first defined layer wins. Nothing defined -> off (closed by default).
Resolution is a pure function of a FlagSnapshot; callers that mutate flags build
a new snapshot instead of patching this one.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple

from flags.models import EffectiveRow, FlagLayers, FlagSnapshot

Resolved = Tuple[bool, str]


def resolve_platform(layers: FlagLayers) -> Resolved:
    if layers.allow_override and layers.platform_override is not None:
        return layers.platform_override, "override"
    if layers.platform_db is not None:
        return layers.platform_db, "platform_db"
    if layers.platform_env is not None:
        return layers.platform_env, "env"
    return False, "off"


def resolve_tenant(layers: FlagLayers) -> Resolved:
    if layers.tenant_override is not None:
        return layers.tenant_override, "tenant_override"
    if layers.tenant_db is not None:
        return layers.tenant_db, "tenant_db"
    return resolve_platform(layers)


def winning_rollout(layers: FlagLayers, source: str) -> Optional[str]:
    """Rollout descriptor attached to the layer that decided the value (db rows only)."""
    if source == "tenant_db":
        return layers.tenant_rollout
    if source == "platform_db":
        return layers.platform_rollout
    return None


def explain_layers(layers: FlagLayers) -> EffectiveRow:
    on, source = resolve_platform(layers)
    t_on, t_source = resolve_tenant(layers)

    # only defined layers are listed
    sources: Dict[str, object] = {"allow_override": layers.allow_override}
    if layers.platform_env is not None:
        sources["platform_env"] = layers.platform_env
    if layers.platform_db is not None:
        sources["platform_db"] = layers.platform_db
    if layers.platform_override is not None:
        sources["platform_override"] = layers.platform_override

    tenant_sources: Dict[str, object] = {}
    if layers.tenant_db is not None:
        tenant_sources["tenant_db"] = layers.tenant_db
    if layers.tenant_override is not None:
        tenant_sources["tenant_override"] = layers.tenant_override

    return EffectiveRow(
        flag=layers.flag,
        tenant_id=layers.tenant_id or "",
        effective_on=on,
        effective_source=source,
        sources=sources,
        tenant_effective_on=t_on,
        tenant_effective_source=t_source,
        tenant_sources=tenant_sources,
    )


class FlagResolver:
    def __init__(self, snapshot: FlagSnapshot):
        self.snapshot = snapshot

    def resolve(self, flag: str, tenant_id: Optional[str]) -> Resolved:
        return resolve_tenant(self.snapshot.layers(flag, tenant_id))

    def effective(self, flag: str, tenant_id: Optional[str]) -> bool:
        return self.resolve(flag, tenant_id)[0]

    def explain(self, flag: str, tenant_id: Optional[str]) -> EffectiveRow:
        return explain_layers(self.snapshot.layers(flag, tenant_id))

    def effective_map(self, tenant_id: str) -> Dict[str, EffectiveRow]:
        return {flag: self.explain(flag, tenant_id) for flag in self.snapshot.flags(tenant_id)}
