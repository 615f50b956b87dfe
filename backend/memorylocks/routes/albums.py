"""
Memory Locks API — Public Album Route
======================================

What:  The page a visitor sees after scanning a lock's QR code.
Who:   The album website; no Worker-API-Key required.

Identifiers:
    The QR code carries the obfuscated id (GET /album/k5Rj9B); older
    printed locks and internal tools use the raw id (GET /album/7). Both
    return the same payload. Anything that resolves to no lock is a 404,
    so probing ids reveals nothing about which ones exist.

Viewing an album does not count as a scan; the app records scans through
POST /locks/{lockId}/scan.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.database import get_db_session
from memorylocks.exceptions import NotFoundError
from memorylocks.models.lock import Lock
from memorylocks.schemas.album import AlbumDto, AlbumMediaDto
from memorylocks.schemas.common import ApiResponse, ErrorResponse
from memorylocks.services.id_codec import decode_id, encode_id, is_hashed_id
from memorylocks.services.media_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Albums"])

MAX_LOCK_ID = 2**31 - 1


def candidate_ids(identifier: str) -> List[int]:
    """Lock ids an album identifier may refer to, obfuscated form first."""
    ids: List[int] = []
    if is_hashed_id(identifier):
        ids.append(decode_id(identifier))
    if identifier.isascii() and identifier.isdigit():
        raw = int(identifier)
        if 0 < raw <= MAX_LOCK_ID and raw not in ids:
            ids.append(raw)
    return ids


async def _resolve_lock(db: AsyncSession, identifier: str) -> Lock:
    for lock_id in candidate_ids(identifier):
        lock: Optional[Lock] = await db.get(Lock, lock_id)
        if lock is not None:
            return lock
    logger.info("Album lookup for unknown identifier %r", identifier)
    raise NotFoundError("album", message="Album not found")


@router.get(
    "/album/{identifier}",
    response_model=ApiResponse[AlbumDto],
    responses={404: {"description": "Album not found", "model": ErrorResponse}},
    summary="Public album by obfuscated or numeric lock id",
)
@router.get(
    "/albums/{identifier}",
    response_model=ApiResponse[AlbumDto],
    responses={404: {"description": "Album not found", "model": ErrorResponse}},
    include_in_schema=False,
)
async def get_album(
    identifier: str,
    db: AsyncSession = Depends(get_db_session),
):
    lock = await _resolve_lock(db, identifier)
    media = await media_service.list_for_lock(db, lock.id)

    album = AlbumDto(
        album_title=lock.album_title,
        date_time=lock.created_at.date().isoformat(),
        seal_date=lock.seal_date,
        upgraded_storage=bool(lock.upgraded_storage),
        media=[AlbumMediaDto.from_media(m) for m in media],
        hashed_lock_id=encode_id(lock.id),
    )
    return ApiResponse(message="Album retrieved successfully", data=album)
