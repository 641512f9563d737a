"""
Flag data model.

Wire rows (as the backend sends them):
- FlagRow          GET /api/admin/tenant-flags/{tenantId}
- PlatformFlagRow  GET /api/admin/platform-flags
- EffectiveRow     GET /api/admin/effective-flags/{tenantId}

Resolution input:
- FlagLayers    the five raw layers for one (flag, tenant) pair
- FlagSnapshot  immutable view over every layer for every flag/tenant
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flags.keys import FlagKey


def _opt_bool(v: Any) -> Optional[bool]:
    return None if v is None else bool(v)


# -------- wire rows --------

@dataclass(frozen=True)
class FlagRow:
    id: str
    flag: str
    enabled: bool
    rollout: Optional[str] = None
    platform_inherited: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FlagRow":
        return cls(
            id=str(d.get("id") or d.get("flag") or ""),
            flag=str(d.get("flag") or ""),
            enabled=bool(d.get("enabled")),
            rollout=d.get("rollout") or None,
            platform_inherited=bool(d.get("_isPlatformInherited", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "flag": self.flag,
            "enabled": self.enabled,
            "rollout": self.rollout,
            "_isPlatformInherited": self.platform_inherited,
        }


@dataclass(frozen=True)
class PlatformFlagRow:
    id: str
    flag: str
    enabled: bool
    rollout: Optional[str] = None
    allow_tenant_override: bool = False
    updated_at: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PlatformFlagRow":
        return cls(
            id=str(d.get("id") or d.get("flag") or ""),
            flag=str(d.get("flag") or ""),
            enabled=bool(d.get("enabled")),
            rollout=d.get("rollout") or None,
            allow_tenant_override=bool(d.get("allowTenantOverride", False)),
            updated_at=d.get("updatedAt"),
            description=d.get("description"),
        )


@dataclass(frozen=True)
class EffectiveRow:
    """
    Audit projection of one resolved flag. `sources` / `tenant_sources` expose
    each layer's raw value; an override key is absent when that layer is unset.
    """
    flag: str
    tenant_id: str
    effective_on: bool
    effective_source: str
    sources: Mapping[str, Any]
    tenant_effective_on: bool
    tenant_effective_source: str
    tenant_sources: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))
        object.__setattr__(self, "tenant_sources", MappingProxyType(dict(self.tenant_sources)))

    @property
    def has_override(self) -> bool:
        return "platform_override" in self.sources or "tenant_override" in self.tenant_sources

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EffectiveRow":
        return cls(
            flag=str(d.get("flag") or ""),
            tenant_id=str(d.get("tenantId") or ""),
            effective_on=bool(d.get("effectiveOn")),
            effective_source=str(d.get("effectiveSource") or "off"),
            sources=dict(d.get("sources") or {}),
            tenant_effective_on=bool(d.get("tenantEffectiveOn")),
            tenant_effective_source=str(d.get("tenantEffectiveSource") or "off"),
            tenant_sources=dict(d.get("tenantSources") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flag": self.flag,
            "tenantId": self.tenant_id,
            "effectiveOn": self.effective_on,
            "effectiveSource": self.effective_source,
            "sources": dict(self.sources),
            "tenantEffectiveOn": self.tenant_effective_on,
            "tenantEffectiveSource": self.tenant_effective_source,
            "tenantSources": dict(self.tenant_sources),
        }


# -------- resolution input --------

@dataclass(frozen=True)
class PlatformLayers:
    env: Optional[bool] = None
    db: Optional[bool] = None
    allow_override: bool = False
    override: Optional[bool] = None
    rollout: Optional[str] = None


@dataclass(frozen=True)
class TenantLayers:
    db: Optional[bool] = None
    override: Optional[bool] = None
    rollout: Optional[str] = None


@dataclass(frozen=True)
class FlagLayers:
    flag: str
    tenant_id: Optional[str]
    platform_env: Optional[bool] = None
    platform_db: Optional[bool] = None
    allow_override: bool = False
    platform_override: Optional[bool] = None
    tenant_db: Optional[bool] = None
    tenant_override: Optional[bool] = None
    platform_rollout: Optional[str] = None
    tenant_rollout: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return any(
            v is not None
            for v in (
                self.platform_env,
                self.platform_db,
                self.platform_override,
                self.tenant_db,
                self.tenant_override,
            )
        )


def _freeze_tenants(tenants: Mapping[str, Mapping[str, TenantLayers]]) -> Mapping[str, Mapping[str, TenantLayers]]:
    return MappingProxyType({t: MappingProxyType(dict(rows)) for t, rows in tenants.items()})


@dataclass(frozen=True)
class FlagSnapshot:
    platform: Mapping[str, PlatformLayers] = field(default_factory=dict)
    tenants: Mapping[str, Mapping[str, TenantLayers]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "platform", MappingProxyType(dict(self.platform)))
        object.__setattr__(self, "tenants", _freeze_tenants(self.tenants))

    # -------- lookups --------

    def flags(self, tenant_id: Optional[str] = None) -> List[str]:
        keys = set(self.platform)
        if tenant_id is not None:
            keys.update(self.tenants.get(tenant_id, {}))
        return sorted(keys)

    def layers(self, flag: str, tenant_id: Optional[str]) -> FlagLayers:
        p = self.platform.get(flag) or PlatformLayers()
        t = TenantLayers()
        if tenant_id is not None:
            t = self.tenants.get(tenant_id, {}).get(flag) or TenantLayers()
        return FlagLayers(
            flag=flag,
            tenant_id=tenant_id,
            platform_env=p.env,
            platform_db=p.db,
            allow_override=p.allow_override,
            platform_override=p.override,
            tenant_db=t.db,
            tenant_override=t.override,
            platform_rollout=p.rollout,
            tenant_rollout=t.rollout,
        )

    # -------- derived snapshots (never mutate self) --------

    def with_env_defaults(self, env: Mapping[str, bool]) -> "FlagSnapshot":
        """Fill platform_env from deploy-time defaults where the snapshot has none."""
        platform = dict(self.platform)
        for flag, value in env.items():
            cur = platform.get(flag) or PlatformLayers()
            if cur.env is None:
                platform[flag] = replace(cur, env=bool(value))
        return FlagSnapshot(platform=platform, tenants=self.tenants)

    def with_tenant_override(self, tenant_id: str, flag: str, value: Optional[bool]) -> "FlagSnapshot":
        tenants = {t: dict(rows) for t, rows in self.tenants.items()}
        rows = tenants.setdefault(tenant_id, {})
        rows[flag] = replace(rows.get(flag) or TenantLayers(), override=_opt_bool(value))
        return FlagSnapshot(platform=self.platform, tenants=tenants)

    def with_tenant_row(self, tenant_id: str, flag: str, enabled: Optional[bool], rollout: Optional[str] = None) -> "FlagSnapshot":
        tenants = {t: dict(rows) for t, rows in self.tenants.items()}
        rows = tenants.setdefault(tenant_id, {})
        rows[flag] = replace(rows.get(flag) or TenantLayers(), db=_opt_bool(enabled), rollout=rollout)
        return FlagSnapshot(platform=self.platform, tenants=tenants)

    # -------- constructors --------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlagSnapshot":
        """
        File format:
        {
          "platform": {"FF_MAP_CARD": {"env": false, "db": true, "allow_override": false,
                                       "override": null, "rollout": null}},
          "tenants":  {"t_123": {"FF_MAP_CARD": {"db": null, "override": false, "rollout": "25%"}}}
        }
        """
        platform: Dict[str, PlatformLayers] = {}
        for flag, p in (data.get("platform") or {}).items():
            platform[FlagKey(flag)] = PlatformLayers(
                env=_opt_bool(p.get("env")),
                db=_opt_bool(p.get("db")),
                allow_override=bool(p.get("allow_override", False)),
                override=_opt_bool(p.get("override")),
                rollout=p.get("rollout") or None,
            )
        tenants: Dict[str, Dict[str, TenantLayers]] = {}
        for tenant_id, rows in (data.get("tenants") or {}).items():
            tenants[tenant_id] = {
                FlagKey(flag): TenantLayers(
                    db=_opt_bool(t.get("db")),
                    override=_opt_bool(t.get("override")),
                    rollout=t.get("rollout") or None,
                )
                for flag, t in (rows or {}).items()
            }
        return cls(platform=platform, tenants=tenants)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": {
                flag: {
                    "env": p.env,
                    "db": p.db,
                    "allow_override": p.allow_override,
                    "override": p.override,
                    "rollout": p.rollout,
                }
                for flag, p in self.platform.items()
            },
            "tenants": {
                tenant_id: {
                    flag: {"db": t.db, "override": t.override, "rollout": t.rollout}
                    for flag, t in rows.items()
                }
                for tenant_id, rows in self.tenants.items()
            },
        }

    @classmethod
    def from_effective_rows(
        cls,
        tenant_id: str,
        effective: Iterable[EffectiveRow],
        flag_rows: Optional[Iterable[FlagRow]] = None,
    ) -> "FlagSnapshot":
        """
        Rebuild layers from the backend's audit projection. When tenant flag rows
        are supplied they are authoritative for tenant_db (and carry rollout);
        platform-inherited rows mirror the platform and are not tenant rows.
        """
        own_rows: Optional[Dict[str, FlagRow]] = None
        if flag_rows is not None:
            own_rows = {r.flag: r for r in flag_rows if not r.platform_inherited}

        platform: Dict[str, PlatformLayers] = {}
        tenant: Dict[str, TenantLayers] = {}
        for e in effective:
            s = e.sources
            env = _opt_bool(s.get("platform_env"))
            platform_db = _opt_bool(s.get("platform_db"))
            # some backends send false for unset layers; the source tag says which were set
            if e.effective_source in ("env", "off"):
                platform_db = None
            if e.effective_source == "off":
                env = None
            platform[e.flag] = PlatformLayers(
                env=env,
                db=platform_db,
                allow_override=bool(s.get("allow_override", False)),
                override=_opt_bool(s.get("platform_override")),
            )
            ts = e.tenant_sources
            if own_rows is not None:
                row = own_rows.get(e.flag)
                db = row.enabled if row else None
                rollout = row.rollout if row else None
            elif e.tenant_effective_source in ("tenant_db", "tenant_override"):
                db, rollout = _opt_bool(ts.get("tenant_db")), None
            else:
                db, rollout = None, None
            tenant[e.flag] = TenantLayers(db=db, override=_opt_bool(ts.get("tenant_override")), rollout=rollout)

        for flag, row in (own_rows or {}).items():
            if flag not in tenant:
                tenant[flag] = TenantLayers(db=row.enabled, rollout=row.rollout)

        return cls(platform=platform, tenants={tenant_id: tenant})
