from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from vidhub.catalog.store import MetadataCatalog
from vidhub.core.auth import CallerIdentity, get_caller_identity
from vidhub.core.config import Settings, get_settings
from vidhub.services.ingest_service import IngestService


def get_catalog(request: Request) -> MetadataCatalog:
    catalog: MetadataCatalog = request.app.state.catalog
    return catalog


def get_ingest_service(request: Request) -> IngestService:
    service = getattr(request.app.state, "ingest_service", None)
    if not isinstance(service, IngestService):
        raise RuntimeError("ingest_service_not_configured")
    return service


def get_app_settings() -> Settings:
    return get_settings()


CatalogDependency = Annotated[MetadataCatalog, Depends(get_catalog)]
IngestServiceDependency = Annotated[IngestService, Depends(get_ingest_service)]
CallerDependency = Annotated[CallerIdentity, Depends(get_caller_identity)]


__all__ = [
    "get_catalog",
    "get_ingest_service",
    "get_app_settings",
    "CatalogDependency",
    "IngestServiceDependency",
    "CallerDependency",
]
