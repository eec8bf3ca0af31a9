"""Versioned API routing for Vidhub."""

from fastapi import APIRouter

from . import routes_admin, routes_catalog, routes_previews, routes_system, routes_videos


def get_api_router(prefix: str = "/api/v1") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(routes_system.router)
    router.include_router(routes_admin.router)
    router.include_router(routes_videos.router)
    router.include_router(routes_previews.router)
    router.include_router(routes_catalog.router)
    return router


__all__ = ["get_api_router"]
