"""Application middleware, listed outermost first."""

from galleria.api.shared.middleware.authentication import AuthenticationMiddleware
from galleria.api.shared.middleware.context import RequestContextMiddleware
from galleria.api.shared.middleware.correlation import CorrelationIdMiddleware
from galleria.api.shared.middleware.session import ServerSessionMiddleware
from galleria.api.shared.middleware.tenant import TenantResolutionMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "RequestContextMiddleware",
    "ServerSessionMiddleware",
    "AuthenticationMiddleware",
    "TenantResolutionMiddleware",
]
