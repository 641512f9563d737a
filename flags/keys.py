"""
Flag key type + naming rules.

- FF_*      platform-wide flags (unprefixed keys are platform too)
- TENANT_*  tenant-private custom flags, inert until code checks them

New custom flags created from the admin panel must carry one of the two prefixes.
"""

from __future__ import annotations
import re

TENANT_PREFIX = "TENANT_"
PLATFORM_PREFIX = "FF_"

_NEW_FLAG_RE = re.compile(r"^(TENANT_|FF_)")


class FlagKeyError(ValueError):
    pass


class FlagKey(str):
    """Non-empty flag identifier. Runtime-checked, otherwise a plain str."""

    def __new__(cls, raw: str) -> "FlagKey":
        if not isinstance(raw, str):
            raise FlagKeyError(f"Flag key must be a string, got {type(raw).__name__}")
        value = raw.strip()
        if not value:
            raise FlagKeyError("Flag key must not be empty")
        return super().__new__(cls, value)

    @property
    def is_custom(self) -> bool:
        return self.startswith(TENANT_PREFIX)

    @property
    def is_platform(self) -> bool:
        return not self.is_custom


def validate_new_flag_key(raw: str) -> FlagKey:
    """
    Validate a key for a flag that is about to be created.
    Raises FlagKeyError before any request is made.
    """
    key = FlagKey(raw)
    if not _NEW_FLAG_RE.match(key):
        raise FlagKeyError(
            "Custom flags must start with TENANT_ prefix (e.g., TENANT_MY_FEATURE)"
        )
    return key
