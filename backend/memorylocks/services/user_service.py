"""
Memory Locks API — User Service
================================

What:  Account lookups for the auth worker (email, phone, OAuth provider),
       registration, provider linking, auth metadata and account deletion.

Account deletion:
    1. Optionally delete every media object on locks the user owns
    2. Detach the user's locks (user_id = NULL); the locks survive so the
       physical lock can be re-registered by someone else
    3. Delete the user row
    All three steps share the request transaction.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.exceptions import ConflictError, DatabaseError
from memorylocks.models.lock import Lock
from memorylocks.models.user import User
from memorylocks.schemas.user import AuthMetadataRequest, CreateUserRequest
from memorylocks.services.base import EntityService
from memorylocks.services.media_service import media_service

logger = logging.getLogger(__name__)

DEFAULT_AUTH_PROVIDER = "Registration"


class UserService(EntityService[User]):
    model = User
    resource = "user"
    updatable_fields = frozenset(
        {
            "name",
            "email",
            "phone_number",
            "email_verified",
            "phone_verified",
            "last_login_at",
            "last_notification_prompt",
        }
    )

    async def _first(self, db: AsyncSession, *criteria) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(*criteria).limit(1))
        except SQLAlchemyError as e:
            logger.error("User lookup failed: %s", e)
            raise DatabaseError()
        return result.scalar_one_or_none()

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        return await self._first(db, User.email == email)

    async def find_by_phone_number(self, db: AsyncSession, phone_number: str) -> Optional[User]:
        return await self._first(db, User.phone_number == phone_number)

    async def find_by_identifier(
        self, db: AsyncSession, is_email: bool, identifier: str
    ) -> Optional[User]:
        if is_email:
            return await self.find_by_email(db, identifier)
        return await self.find_by_phone_number(db, identifier)

    async def find_by_provider(
        self, db: AsyncSession, auth_provider: str, provider_id: str
    ) -> Optional[User]:
        return await self._first(
            db, User.auth_provider == auth_provider, User.provider_id == provider_id
        )

    async def create(self, db: AsyncSession, data: CreateUserRequest) -> User:
        """
        Register an account. Email is checked for an existing account first,
        otherwise the phone number.

        Raises:
            ConflictError: An account with this email / phone already exists
        """
        if data.email:
            existing = await self.find_by_email(db, data.email)
        elif data.phone_number:
            existing = await self.find_by_phone_number(db, data.phone_number)
        else:
            existing = None
        if existing is not None:
            raise ConflictError("User already exists")

        user = User(
            name=data.name,
            email=data.email or None,
            phone_number=data.phone_number or None,
            auth_provider=data.auth_provider or DEFAULT_AUTH_PROVIDER,
            provider_id=data.provider_id or None,
            email_verified=False,
            phone_verified=False,
        )
        try:
            async with db.begin_nested():
                db.add(user)
        except IntegrityError:
            # Lost a race with a concurrent registration
            raise ConflictError("User already exists")
        except SQLAlchemyError as e:
            logger.error("Failed to create user: %s", e)
            raise DatabaseError()
        logger.info("Created user %s (provider=%s)", user.id, user.auth_provider)
        return user

    async def link_provider(
        self, db: AsyncSession, user_id: int, auth_provider: str, provider_id: str
    ) -> User:
        await self.get(db, user_id)
        user = await self._write(
            db, user_id, {"auth_provider": auth_provider, "provider_id": provider_id}
        )
        logger.info("Linked %s provider to user %s", auth_provider, user_id)
        return user

    async def update_auth_metadata(
        self, db: AsyncSession, user_id: int, metadata: AuthMetadataRequest
    ) -> None:
        """Write whichever of the verification flags / last login were supplied."""
        values = {
            k: v
            for k, v in metadata.model_dump(
                include={"email_verified", "phone_verified", "last_login_at"}
            ).items()
            if v is not None
        }
        if not values:
            return
        await self._write(db, user_id, values)

    async def delete_with_locks(
        self, db: AsyncSession, user_id: int, delete_media: bool = False
    ) -> None:
        """
        Delete an account, detaching (not deleting) its locks.

        Args:
            delete_media: Also delete every media object on the user's locks
        """
        user = await self.get(db, user_id)
        try:
            if delete_media:
                owned = await db.execute(select(Lock.id).where(Lock.user_id == user_id))
                removed = 0
                for lock_id in owned.scalars().all():
                    removed += await media_service.delete_for_lock(db, lock_id)
                logger.info("Deleted %s media objects of user %s", removed, user_id)

            await db.execute(
                update(Lock)
                .where(Lock.user_id == user_id)
                .values(user_id=None)
                .execution_options(synchronize_session="fetch")
            )
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete user %s: %s", user_id, e)
            raise DatabaseError(context={"user_id": user_id})
        logger.info("Deleted user %s (delete_media=%s)", user_id, delete_media)


user_service = UserService()
