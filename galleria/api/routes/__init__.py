"""API routers."""

from galleria.api.routes import albums, auth, meta, photos, tenants

__all__ = ["albums", "auth", "meta", "photos", "tenants"]
