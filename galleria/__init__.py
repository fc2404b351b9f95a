"""
Galleria - Multi-Tenant Photo Albums Service

Albums and photos over a REST API, with Keycloak login and per-tenant
isolation enforced by PostgreSQL row level security.
"""

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy imports for public API - avoids loading the web stack at import time."""
    if name == "create_app":
        from galleria.api.app import create_app
        return create_app
    if name == "RequestContext":
        from galleria.tenant.context import RequestContext
        return RequestContext
    if name == "run_with_context":
        from galleria.tenant.context import run_with_context
        return run_with_context
    if name == "get_config":
        from galleria.config import get_config
        return get_config
    raise AttributeError(f"module 'galleria' has no attribute {name!r}")


__all__ = [
    "__version__",
    "create_app",
    "RequestContext",
    "run_with_context",
    "get_config",
]
