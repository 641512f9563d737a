"""
Service package: backend flag API client, tenant flags panel, audit log.

Exposes:
- AdminApiClient / ApiError
- TenantFlagsPanel
- AuditService
"""

from service.admin_api import AdminApiClient, ApiError
from service.audit import AuditService
from service.flag_panel import TenantFlagsPanel

__all__ = ["AdminApiClient", "ApiError", "AuditService", "TenantFlagsPanel"]
