from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from vidhub.api import deps
from vidhub.catalog.ranking import list_previews

from . import schemas


router = APIRouter(prefix="/previews", tags=["previews"])


@router.get("", response_model=schemas.PreviewListResponse, summary="Ranked, paginated video previews")
async def get_previews(
    catalog: deps.CatalogDependency,
    page: int = Query(default=1),
    limit: int = Query(default=12),
    category: Optional[str] = Query(default=None),
    sort: str = Query(default="latest", description="latest, popular or trending"),
) -> schemas.PreviewListResponse:
    result = list_previews(catalog, category=category, sort=sort, page=page, limit=limit)
    return schemas.PreviewListResponse.from_page(result)


__all__ = ["router"]
