from flags.keys import FlagKey, FlagKeyError, validate_new_flag_key
from flags.models import EffectiveRow, FlagLayers, FlagRow, FlagSnapshot, PlatformFlagRow
from flags.resolver import FlagResolver, resolve_platform, resolve_tenant

__all__ = [
    "FlagKey",
    "FlagKeyError",
    "validate_new_flag_key",
    "EffectiveRow",
    "FlagLayers",
    "FlagRow",
    "FlagSnapshot",
    "PlatformFlagRow",
    "FlagResolver",
    "resolve_platform",
    "resolve_tenant",
]
