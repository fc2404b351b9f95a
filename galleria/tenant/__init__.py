"""Request context and tenant resolution.

The request context carries tenant and user ids through every await of a
request; the database bridge reads it on each connection checkout.

Usage:
    from galleria.tenant import get_context, run_with_context, RequestContext
"""

from galleria.tenant.accessor import FixedTenantAccessor, TenantAccessor, default_accessor
from galleria.tenant.context import (
    RequestContext,
    RequestContextScope,
    get_context,
    get_context_or_none,
    get_current_tenant_id,
    get_current_user_id,
    run_with_context,
    update_context,
)
from galleria.tenant.logging import (
    TenantLogger,
    get_tenant_log_context,
    log_tenant_operation,
    log_with_tenant,
)

__all__ = [
    "RequestContext",
    "RequestContextScope",
    "get_context",
    "get_context_or_none",
    "get_current_tenant_id",
    "get_current_user_id",
    "run_with_context",
    "update_context",
    "TenantAccessor",
    "FixedTenantAccessor",
    "default_accessor",
    "TenantLogger",
    "get_tenant_log_context",
    "log_tenant_operation",
    "log_with_tenant",
]
