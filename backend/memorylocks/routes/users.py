"""
Memory Locks API — User Route Handlers
=======================================

What:  Account endpoints called by the auth worker during sign-up, login and
       OAuth linking, plus profile updates and account deletion.

Lookups that find nothing answer 404 with Success=true and Data=0; the
auth worker treats that as "no such account" rather than as a failure.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.database import get_db_session
from memorylocks.exceptions import ValidationError
from memorylocks.schemas.common import ApiResponse, ErrorResponse
from memorylocks.schemas.user import (
    AuthMetadataRequest,
    CreateUserRequest,
    IdentifierRequest,
    LinkProviderRequest,
    ProviderRequest,
    UserDto,
    UserUpdate,
)
from memorylocks.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _user_not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=ApiResponse[int](message="User not found", data=0).model_dump(by_alias=True),
    )


@router.post(
    "/create",
    status_code=201,
    response_model=ApiResponse[int],
    responses={409: {"description": "Email or phone already registered", "model": ErrorResponse}},
    summary="Register a new account",
)
async def create_user(
    body: CreateUserRequest,
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.create(db, body)
    return ApiResponse(message="User created successfully", data=user.id)


@router.post(
    "/exist-check",
    response_model=ApiResponse[bool],
    summary="Check whether an email or phone number has an account",
)
async def exist_check(
    body: IdentifierRequest,
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.find_by_identifier(db, body.is_email, body.identifier)
    return ApiResponse(message="User existence check completed", data=user is not None)


@router.post(
    "/find-by-identifier",
    response_model=ApiResponse[int],
    responses={404: {"description": "No account; Data is 0"}},
    summary="Resolve an email or phone number to a user id",
)
async def find_by_identifier(
    body: IdentifierRequest,
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.find_by_identifier(db, body.is_email, body.identifier)
    if user is None:
        return _user_not_found()
    return ApiResponse(message="User found successfully", data=user.id)


@router.post(
    "/find-by-provider",
    response_model=ApiResponse[int],
    responses={404: {"description": "No account; Data is 0"}},
    summary="Resolve an OAuth provider account to a user id",
)
async def find_by_provider(
    body: ProviderRequest,
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.find_by_provider(db, body.auth_provider, body.provider_id)
    if user is None:
        return _user_not_found()
    return ApiResponse(message="User found successfully", data=user.id)


@router.post(
    "/link-provider",
    response_model=ApiResponse[bool],
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Link an OAuth provider to an existing account",
)
async def link_provider(
    body: LinkProviderRequest,
    db: AsyncSession = Depends(get_db_session),
):
    await user_service.link_provider(db, body.user_id, body.auth_provider, body.provider_id)
    return ApiResponse(message="OAuth provider linked successfully", data=True)


@router.post(
    "/update-auth-metadata",
    response_model=ApiResponse[bool],
    responses={400: {"description": "Invalid user id", "model": ErrorResponse}},
    summary="Record verification flags and last login",
)
async def update_auth_metadata(
    body: AuthMetadataRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not body.user_id or body.user_id < 1:
        raise ValidationError("A valid userId is required")
    await user_service.get(db, body.user_id)
    await user_service.update_auth_metadata(db, body.user_id, body)
    return ApiResponse(message="Authentication metadata updated", data=True)


@router.patch(
    "/{user_id}",
    response_model=ApiResponse[UserDto],
    responses={
        400: {"description": "No fields to update", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Partially update an account",
)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.update(db, user_id, body)
    return ApiResponse(message="User updated successfully", data=UserDto.from_user(user))


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[bool],
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Delete an account",
    description=(
        "Detaches the user's locks (they keep existing, unowned). With "
        "deleteMedia=true the media on those locks is deleted first."
    ),
)
async def delete_user(
    user_id: int,
    delete_media: bool = Query(default=False, alias="deleteMedia"),
    db: AsyncSession = Depends(get_db_session),
):
    await user_service.delete_with_locks(db, user_id, delete_media=delete_media)
    return ApiResponse(message="User deleted successfully", data=True)
