from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from vidhub.api import deps
from vidhub.core.config import Settings

from . import schemas


router = APIRouter(prefix="/catalog", tags=["catalog"])


def _records(records) -> schemas.RecordListResponse:
    return schemas.RecordListResponse(data=[schemas.ContentRecordModel.from_record(record) for record in records])


@router.get("", response_model=schemas.RecordListResponse, summary="Filtered records, newest first")
async def list_records(
    catalog: deps.CatalogDependency,
    category: Optional[str] = Query(default=None),
    uploader_id: Optional[str] = Query(default=None, alias="uploaderId"),
) -> schemas.RecordListResponse:
    return _records(catalog.list(category=category, uploader_id=uploader_id))


@router.get("/search", response_model=schemas.RecordListResponse, summary="Substring search over title and description")
async def search_records(catalog: deps.CatalogDependency, q: str = Query(default="")) -> schemas.RecordListResponse:
    return _records(catalog.search(q))


@router.get("/categories", response_model=schemas.CategoriesResponse, summary="Per-category record counts")
async def get_categories(catalog: deps.CatalogDependency) -> schemas.CategoriesResponse:
    return schemas.CategoriesResponse(data=catalog.categories())


@router.get("/featured", response_model=schemas.RecordListResponse, summary="Most viewed and liked records")
async def get_featured(
    catalog: deps.CatalogDependency,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    settings: Settings = Depends(deps.get_app_settings),
) -> schemas.RecordListResponse:
    return _records(catalog.featured(limit or settings.featured_limit))


@router.get("/{content_id}", response_model=schemas.ContentRecordModel)
async def get_record(content_id: str, catalog: deps.CatalogDependency) -> schemas.ContentRecordModel:
    record = catalog.get(content_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="video_not_found")
    return schemas.ContentRecordModel.from_record(record)


@router.patch("/{content_id}", response_model=schemas.ContentRecordModel)
async def update_record(
    content_id: str,
    payload: schemas.RecordUpdateRequest,
    catalog: deps.CatalogDependency,
    caller: deps.CallerDependency,
) -> schemas.ContentRecordModel:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    try:
        record = catalog.update(content_id, **changes)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="video_not_found")
    return schemas.ContentRecordModel.from_record(record)


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    content_id: str,
    service: deps.IngestServiceDependency,
    caller: deps.CallerDependency,
) -> Response:
    if service.delete(content_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="video_not_found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{content_id}/views", status_code=status.HTTP_204_NO_CONTENT)
async def record_view(content_id: str, catalog: deps.CatalogDependency) -> Response:
    catalog.increment_views(content_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
