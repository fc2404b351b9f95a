"""Service metadata, read through the request context's application state."""

from fastapi import APIRouter

from galleria.api.models import MetaResponse
from galleria.tenant.context import get_context

router = APIRouter(prefix="/meta", tags=["meta"])


@router.get("", response_model=MetaResponse)
async def meta() -> MetaResponse:
    app_state = get_context().app_state
    return MetaResponse(
        name=app_state.app_name,
        version=app_state.version,
        environment=app_state.environment,
        routes=list(app_state.route_paths),
    )
