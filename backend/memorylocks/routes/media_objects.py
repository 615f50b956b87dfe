"""
Memory Locks API — Media Object Route Handlers
===============================================

What:  /media-objects endpoints. Uploads themselves go straight to
       Cloudflare from the app; these routes only store the metadata.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.database import get_db_session
from memorylocks.exceptions import ValidationError
from memorylocks.middleware.rate_limit import rate_limit
from memorylocks.schemas.common import ApiResponse, ErrorResponse
from memorylocks.schemas.media_object import (
    BatchReorderRequest,
    BatchReorderResult,
    MediaObjectCreate,
    MediaObjectDto,
    MediaObjectUpdate,
)
from memorylocks.services.media_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media-objects", tags=["Media Objects"])

_errors = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    404: {"description": "Media object or lock not found", "model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[MediaObjectDto],
    responses=_errors,
    dependencies=[Depends(rate_limit("media_upload"))],
    summary="Store metadata for an uploaded photo or video",
)
async def create_media_object(
    body: MediaObjectCreate,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.lock_id:
        raise ValidationError("lockId is required")
    media = await media_service.create(db, body)
    return ApiResponse(
        message="Media object created successfully",
        data=MediaObjectDto.from_media(media),
    )


@router.post(
    "/batch-reorder",
    response_model=ApiResponse[BatchReorderResult],
    responses={400: _errors[400]},
    dependencies=[Depends(rate_limit("batch"))],
    summary="Set the display order of many media objects",
    description=(
        "Each item is applied independently; unknown ids are reported in FailedIds "
        "instead of failing the whole request."
    ),
)
async def batch_reorder(
    body: BatchReorderRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.items:
        raise ValidationError("items must be a non-empty array")
    if any(item.id is None or item.display_order is None for item in body.items):
        raise ValidationError("Each item requires id and displayOrder")

    outcome = await media_service.batch_reorder(
        db, [(item.id, item.display_order) for item in body.items]
    )
    return ApiResponse(
        message=f"Reordered {outcome.updated} media objects ({outcome.failed} failed)",
        data=BatchReorderResult(
            updated=outcome.updated, failed=outcome.failed, failed_ids=outcome.failed_ids
        ),
    )


@router.get(
    "/lock/{lock_id}",
    response_model=ApiResponse[List[MediaObjectDto]],
    summary="List the media of a lock in display order",
)
async def list_media_for_lock(
    lock_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    items = await media_service.list_for_lock(db, lock_id)
    return ApiResponse(
        message=f"Retrieved {len(items)} media objects for lock {lock_id}",
        data=[MediaObjectDto.from_media(m) for m in items],
    )


@router.patch(
    "/{media_id}",
    response_model=ApiResponse[MediaObjectDto],
    responses=_errors,
    summary="Partially update a media object",
    description=(
        "Only the fields present in the body are written. Setting isMainImage to "
        "true clears it on every other media object of the same lock."
    ),
)
async def update_media_object(
    media_id: int,
    body: MediaObjectUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    media = await media_service.update(db, media_id, body)
    return ApiResponse(
        message="Media object updated successfully",
        data=MediaObjectDto.from_media(media),
    )


@router.delete(
    "/{media_id}",
    response_model=ApiResponse[bool],
    responses={404: _errors[404]},
    summary="Delete a media object",
)
async def delete_media_object(
    media_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    await media_service.delete(db, media_id)
    return ApiResponse(message="Media object deleted successfully", data=True)
