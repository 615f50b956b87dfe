"""
Memory Locks API — Lock Route Handlers
=======================================

What:  /locks endpoints used by the mobile app (through the core API) and by
       the provisioning tool that prints new locks.
How:   Thin handlers: validate ids, delegate to LockService, wrap the result
       in the {Success, Message, Data} envelope.
"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.database import get_db_session
from memorylocks.exceptions import ValidationError
from memorylocks.middleware.rate_limit import rate_limit
from memorylocks.schemas.common import ApiResponse, ErrorResponse
from memorylocks.schemas.lock import (
    AlbumTitleRequest,
    LockConnectRequest,
    LockDto,
    LockIdRequest,
    LockNameRequest,
    LockUpdate,
    ScanResultDto,
)
from memorylocks.services.lock_service import lock_service
from memorylocks.services.notification_service import MilestoneEvent, milestone_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locks", tags=["Locks"])

_errors = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    404: {"description": "Lock or user not found", "model": ErrorResponse},
}


@router.get(
    "/user/{user_id}",
    response_model=ApiResponse[List[LockDto]],
    responses=_errors,
    summary="List the locks owned by a user",
)
async def get_user_locks(
    user_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    locks = await lock_service.list_for_user(db, user_id)
    return ApiResponse(
        message=f"Retrieved {len(locks)} locks for user {user_id}",
        data=[LockDto.from_lock(lock) for lock in locks],
    )


@router.post(
    "/connect",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Attach a lock to a user",
    description="Takes the obfuscated lock id from the QR code and the user's numeric id.",
)
async def connect_lock(
    body: LockConnectRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.user_id or not body.hashed_lock_id:
        raise ValidationError("Both userId and hashedLockId are required")
    lock = await lock_service.connect_to_user(db, body.hashed_lock_id, body.user_id)
    return ApiResponse(message="Lock successfully connected to user", data=LockDto.from_lock(lock))


@router.patch(
    "/name",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Rename a lock",
)
async def update_lock_name(
    body: LockNameRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.lock_id or body.new_name is None:
        raise ValidationError("Both lockId and newName are required")
    lock = await lock_service.rename(db, body.lock_id, body.new_name)
    return ApiResponse(message="Lock name updated successfully", data=LockDto.from_lock(lock))


@router.patch(
    "/seal",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Seal or unseal a lock",
    description="Sets the seal date to today when unsealed; clears it when sealed.",
)
async def toggle_seal(
    body: LockIdRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.lock_id:
        raise ValidationError("lockId is required")
    lock = await lock_service.toggle_seal(db, body.lock_id)
    message = "Lock sealed successfully" if lock.is_sealed else "Lock unsealed successfully"
    return ApiResponse(message=message, data=LockDto.from_lock(lock))


@router.patch(
    "/upgrade-storage",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Move a lock to the upgraded storage tier",
)
async def upgrade_storage(
    body: LockIdRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.lock_id:
        raise ValidationError("lockId is required")
    lock = await lock_service.upgrade_storage(db, body.lock_id)
    return ApiResponse(message="Storage upgraded successfully", data=LockDto.from_lock(lock))


@router.post(
    "/create/{total_locks}",
    response_model=ApiResponse[List[int]],
    responses={400: _errors[400]},
    dependencies=[Depends(rate_limit("batch"))],
    summary="Provision a batch of placeholder locks",
    description=(
        "Creates totalLocks (1-10000) locks with consecutive ids after the current "
        "maximum. Data lists the ids that were created."
    ),
)
async def bulk_create_locks(
    total_locks: int,
    db: AsyncSession = Depends(get_db_session),
):
    if total_locks < 1 or total_locks > 10000:
        raise ValidationError("Invalid totalLocks parameter. Must be between 1 and 10000.")
    outcome = await lock_service.bulk_create(db, total_locks)
    return ApiResponse(message=outcome.message, data=outcome.created_ids)


@router.get(
    "/{lock_id}",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Fetch one lock",
)
async def get_lock(
    lock_id: int,
    db: AsyncSession = Depends(get_db_session),
):
    lock = await lock_service.get(db, lock_id)
    return ApiResponse(message="Lock retrieved successfully", data=LockDto.from_lock(lock))


@router.patch(
    "/{lock_id}",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Partially update a lock",
    description="Only the fields present in the body are written; null clears nullable fields.",
)
async def update_lock(
    lock_id: int,
    body: LockUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    lock = await lock_service.update(db, lock_id, body)
    return ApiResponse(message="Lock updated successfully", data=LockDto.from_lock(lock))


@router.patch(
    "/{lock_id}/album-title",
    response_model=ApiResponse[LockDto],
    responses=_errors,
    summary="Change the album title shown on the public page",
)
async def update_album_title(
    lock_id: int,
    body: AlbumTitleRequest,
    db: AsyncSession = Depends(get_db_session),
):
    lock = await lock_service.set_album_title(db, lock_id, body.album_title)
    return ApiResponse(message="Album title updated successfully", data=LockDto.from_lock(lock))


@router.post(
    "/{lock_id}/scan",
    response_model=ApiResponse[ScanResultDto],
    responses={404: _errors[404]},
    summary="Record a QR scan",
    description=(
        "Increments the scan counter. When the new count is a milestone the owner "
        "is notified through the core API after the response is sent."
    ),
)
async def record_scan(
    lock_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
):
    result = await lock_service.increment_scan_count(db, lock_id)
    await lock_service.commit(db)
    lock = result.lock

    if result.milestone is not None and lock.user_id is not None:
        background_tasks.add_task(
            milestone_notifier.send,
            MilestoneEvent(
                lock_id=lock.id,
                user_id=lock.user_id,
                lock_name=lock.lock_name,
                scan_count=lock.scan_count,
                milestone=result.milestone,
            ),
        )

    message = (
        f"Scan recorded, milestone {result.milestone} reached"
        if result.milestone is not None
        else "Scan recorded"
    )
    return ApiResponse(
        message=message,
        data=ScanResultDto(lock=LockDto.from_lock(lock), milestone=result.milestone),
    )
