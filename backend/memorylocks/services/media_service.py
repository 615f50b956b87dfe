"""
Memory Locks API — Media Object Service
========================================

What:  CRUD for the photos and videos attached to a lock, plus batch
       reordering for the album editor.

Main picture rule:
    At most one media object per lock has is_main_picture = true. Whenever
    an item becomes the main picture (on create or update) every other item
    of the same lock is cleared first. The parent lock row is locked
    FOR UPDATE before clearing so two concurrent "make this the cover"
    requests cannot both win.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.exceptions import DatabaseError, NotFoundError
from memorylocks.models.lock import Lock
from memorylocks.models.media_object import MediaObject
from memorylocks.schemas.media_object import MediaObjectCreate
from memorylocks.services.base import Changes, EntityService

logger = logging.getLogger(__name__)


@dataclass
class ReorderResult:
    updated: int = 0
    failed_ids: List[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


class MediaObjectService(EntityService[MediaObject]):
    model = MediaObject
    resource = "media object"
    updatable_fields = frozenset(
        {
            "cloudflare_id",
            "url",
            "thumbnail_url",
            "file_name",
            "is_image",
            "is_main_picture",
            "display_order",
            "duration_seconds",
        }
    )

    async def list_for_lock(self, db: AsyncSession, lock_id: int) -> List[MediaObject]:
        try:
            result = await db.execute(
                select(MediaObject)
                .where(MediaObject.lock_id == lock_id)
                .order_by(
                    MediaObject.display_order.asc(),
                    MediaObject.created_at.desc(),
                    MediaObject.id.desc(),
                )
            )
        except SQLAlchemyError as e:
            logger.error("Failed to list media for lock %s: %s", lock_id, e)
            raise DatabaseError(context={"lock_id": lock_id})
        return list(result.scalars().all())

    async def _lock_parent(self, db: AsyncSession, lock_id: int) -> None:
        result = await db.execute(
            select(Lock.id).where(Lock.id == lock_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("lock", str(lock_id))

    async def _clear_main_picture(
        self, db: AsyncSession, lock_id: int, keep_id: Optional[int] = None
    ) -> None:
        stmt = (
            update(MediaObject)
            .where(MediaObject.lock_id == lock_id, MediaObject.is_main_picture.is_(True))
            .values(is_main_picture=False)
            .execution_options(synchronize_session="fetch")
        )
        if keep_id is not None:
            stmt = stmt.where(MediaObject.id != keep_id)
        await db.execute(stmt)

    async def create(self, db: AsyncSession, data: MediaObjectCreate) -> MediaObject:
        try:
            await self._lock_parent(db, data.lock_id)
            if data.is_main_picture:
                await self._clear_main_picture(db, data.lock_id)
            media = MediaObject(**data.model_dump())
            db.add(media)
            await db.flush()
            await db.refresh(media)
        except SQLAlchemyError as e:
            logger.error("Failed to create media for lock %s: %s", data.lock_id, e)
            raise DatabaseError(context={"lock_id": data.lock_id})
        logger.info("Created media object %s on lock %s", media.id, media.lock_id)
        return media

    async def update(self, db: AsyncSession, entity_id: int, changes: Changes) -> MediaObject:
        values = self.collect_changes(changes)
        if values.get("is_main_picture") is True:
            current = await self.get(db, entity_id)
            try:
                await self._lock_parent(db, current.lock_id)
                await self._clear_main_picture(db, current.lock_id, keep_id=entity_id)
            except SQLAlchemyError as e:
                logger.error("Failed to clear main picture on lock %s: %s", current.lock_id, e)
                raise DatabaseError(context={"lock_id": current.lock_id})
        return await super().update(db, entity_id, values)

    async def delete(self, db: AsyncSession, media_id: int) -> None:
        media = await self.get(db, media_id)
        try:
            await db.delete(media)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete media object %s: %s", media_id, e)
            raise DatabaseError(context={"media_id": media_id})
        logger.info("Deleted media object %s", media_id)

    async def delete_for_lock(self, db: AsyncSession, lock_id: int) -> int:
        try:
            result = await db.execute(
                delete(MediaObject)
                .where(MediaObject.lock_id == lock_id)
                .execution_options(synchronize_session="evaluate")
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete media for lock %s: %s", lock_id, e)
            raise DatabaseError(context={"lock_id": lock_id})
        return result.rowcount or 0

    async def batch_reorder(
        self, db: AsyncSession, items: Iterable[Tuple[int, int]]
    ) -> ReorderResult:
        """
        Set display_order for many items. Each (id, display_order) pair is
        written in its own SAVEPOINT; unknown ids and failed writes are
        reported rather than aborting the batch.
        """
        outcome = ReorderResult()
        for media_id, display_order in items:
            try:
                async with db.begin_nested():
                    result = await db.execute(
                        update(MediaObject)
                        .where(MediaObject.id == media_id)
                        .values(display_order=display_order)
                        .execution_options(synchronize_session="evaluate")
                    )
                if result.rowcount:
                    outcome.updated += 1
                else:
                    outcome.failed_ids.append(media_id)
            except SQLAlchemyError as e:
                logger.warning("Reorder of media object %s failed: %s", media_id, e)
                outcome.failed_ids.append(media_id)

        logger.info("Batch reorder: %d updated, %d failed", outcome.updated, outcome.failed)
        return outcome


media_service = MediaObjectService()
