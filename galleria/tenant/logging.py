"""Tenant-aware logging helpers.

Adds the active request's tenant and user ids to log records so isolation
problems can be traced per tenant.
"""

import logging
from typing import Any, Dict, MutableMapping, Tuple

from galleria.tenant.context import get_context_or_none


def get_tenant_log_context() -> Dict[str, Any]:
    """Current tenant/user/request ids as a logging ``extra`` dict.

    Safe to call outside any request context; missing values are None.
    """
    ctx = get_context_or_none()
    base: Dict[str, Any] = {"tenant_id": None, "user_id": None, "request_id": None}
    if ctx is not None:
        base.update(ctx.to_log_context())
    return base


def log_with_tenant(logger: logging.Logger, level: int, message: str, **fields: Any) -> None:
    extra = get_tenant_log_context()
    extra.update(fields)
    logger.log(level, message, extra=extra)


class TenantLogger(logging.LoggerAdapter):
    """Logger adapter that stamps every record with tenant context.

    Usage:
        logger = TenantLogger(__name__)
        logger.info("Album created", extra={"album_id": str(album.id)})
    """

    def __init__(self, name: str):
        super().__init__(logging.getLogger(name), {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = get_tenant_log_context()
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def log_tenant_operation(
    logger: logging.Logger,
    operation: str,
    success: bool = True,
    **details: Any,
) -> None:
    """Log a tenant-scoped operation for the audit trail.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "switch_tenant", "provision_tenant")
        success: Whether the operation succeeded
        **details: Additional operation details
    """
    extra = get_tenant_log_context()
    extra.update({"operation": operation, "success": success})
    extra.update(details)

    level = logging.INFO if success else logging.WARNING
    status = "completed" if success else "failed"
    logger.log(level, f"Tenant operation {operation} {status}", extra=extra)
