"""
Feature flags (read-only helpers).

Global defaults come from Settings (platform_env); every other layer comes from
the tenant's FlagSnapshot (snapshot file, or rebuilt from the backend's
effective-flags projection). Local dev overrides live in a JSON file:

{
  "ff_tenant_urls": "on",
  "FF_MAP_CARD": false
}

Usage in settings views:
    if flags.is_feature_enabled("FF_MAP_CARD", tenant.id, tenant.region) and profile:
        ...
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from app.config import Settings
from flags.dev_overrides import DevOverridesStore
from flags.keys import FlagKey, FlagKeyError
from flags.models import FlagSnapshot
from flags.resolver import FlagResolver, winning_rollout
from flags.rollout import parse_rollout
from flags.storage import SnapshotError

log = logging.getLogger("FlagsPanel")

SnapshotLoader = Callable[[Optional[str]], FlagSnapshot]


class Flags:
    def __init__(
        self,
        settings: Settings,
        snapshots: SnapshotLoader,
        dev_overrides: Optional[DevOverridesStore] = None,
    ):
        self.settings = settings
        self.snapshots = snapshots
        self.dev_overrides = dev_overrides

    def resolver_for(self, tenant_id: Optional[str]) -> FlagResolver:
        try:
            snap = self.snapshots(tenant_id)
        except SnapshotError as e:
            # a broken snapshot file degrades to deploy-time defaults only
            log.warning(f"Flag snapshot unavailable for tenant={tenant_id}: {e}")
            snap = FlagSnapshot()
        return FlagResolver(snap.with_env_defaults(self.settings.FLAG_DEFAULTS))

    def is_feature_enabled(
        self,
        flag_key: str,
        tenant_id: Optional[str] = None,
        region: Optional[str] = None,
    ) -> bool:
        try:
            flag = FlagKey(flag_key)
        except FlagKeyError:
            return False

        return self.evaluate(self.resolver_for(tenant_id), flag, tenant_id, region)

    def evaluate(
        self,
        resolver: FlagResolver,
        flag: FlagKey,
        tenant_id: Optional[str] = None,
        region: Optional[str] = None,
    ) -> bool:
        """Gate one flag against an already loaded resolver (one snapshot read per request)."""
        if self.settings.FF_DEV_OVERRIDES and self.dev_overrides is not None:
            o = self.dev_overrides.get(flag)
            if o is not None:
                return o

        layers = resolver.snapshot.layers(flag, tenant_id)
        if not layers.is_known:
            return False

        on, source = resolver.resolve(flag, tenant_id)
        if not on:
            return False

        rollout = parse_rollout(winning_rollout(layers, source))
        if rollout is None:
            return True
        return rollout.allows(flag, tenant_id, region)

    # Named helpers for the sections gated on tenant settings pages

    def map_card(self, tenant_id: Optional[str], region: Optional[str] = None) -> bool:
        return self.is_feature_enabled("FF_MAP_CARD", tenant_id, region)

    def business_profile(self, tenant_id: Optional[str], region: Optional[str] = None) -> bool:
        return self.is_feature_enabled("FF_BUSINESS_PROFILE", tenant_id, region)

    def swis_preview(self, tenant_id: Optional[str], region: Optional[str] = None) -> bool:
        return self.is_feature_enabled("FF_SWIS_PREVIEW", tenant_id, region)

    def google_connect_suite(self, tenant_id: Optional[str], region: Optional[str] = None) -> bool:
        return self.is_feature_enabled("FF_GOOGLE_CONNECT_SUITE", tenant_id, region)

    def tenant_urls(self, tenant_id: Optional[str]) -> bool:
        return self.is_feature_enabled("FF_TENANT_URLS", tenant_id)
