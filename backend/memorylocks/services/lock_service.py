"""
Memory Locks API — Lock Service
================================

What:  Business rules for physical locks: ownership, naming, sealing, the
       storage tier, scan counting with milestones and bulk provisioning.
Who:   Called by the /locks and /album route handlers.

Scan counting:
    The lock row is read with SELECT ... FOR UPDATE inside the request
    transaction, so two phones scanning the same lock at once serialize on
    PostgreSQL instead of both writing count+1. See services/milestones.py
    for the milestone rule itself.

Bulk provisioning (POST /locks/create/{n}):
    Lock ids are assigned explicitly starting at max(id) + 1 so that the
    range can be printed on a batch of physical locks. Inserts run in
    batches of 100, each insert inside its own SAVEPOINT: a failing row is
    logged and skipped without losing the rest of the batch.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.config import settings
from memorylocks.exceptions import DatabaseError, NotFoundError, ValidationError
from memorylocks.models.lock import Lock
from memorylocks.models.user import User
from memorylocks.services.base import Changes, EntityService
from memorylocks.services.id_codec import decode_id
from memorylocks.services.milestones import evaluate_scan

logger = logging.getLogger(__name__)

BULK_CREATE_MAX = 10000
BULK_BATCH_SIZE = 100
BULK_LOCK_NAME = "Memory Lock"
BULK_ALBUM_TITLE = "Romeo & Juliet"
USER_LOCKS_LIMIT = 100


@dataclass
class ScanResult:
    lock: Lock
    milestone: Optional[int] = None


@dataclass
class BulkCreateResult:
    created_ids: List[int]
    requested: int

    @property
    def created(self) -> int:
        return len(self.created_ids)

    @property
    def message(self) -> str:
        if not self.created_ids:
            return "Successfully created 0 locks"
        return (
            f"Successfully created {self.created} locks "
            f"({self.created_ids[0]} to {self.created_ids[-1]})"
        )


class LockService(EntityService[Lock]):
    model = Lock
    resource = "lock"
    updatable_fields = frozenset({"lock_name", "album_title", "seal_date", "user_id"})

    async def list_for_user(self, db: AsyncSession, user_id: int) -> List[Lock]:
        """Locks owned by a user, newest first."""
        try:
            result = await db.execute(
                select(Lock)
                .where(Lock.user_id == user_id)
                .order_by(Lock.created_at.desc(), Lock.id.desc())
                .limit(USER_LOCKS_LIMIT)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to list locks for user %s: %s", user_id, e)
            raise DatabaseError(context={"user_id": user_id})
        return list(result.scalars().all())

    async def update(self, db: AsyncSession, entity_id: int, changes: Changes) -> Lock:
        """Partial update; a new owner must exist (404 otherwise)."""
        values = self.collect_changes(changes)
        user_id = values.get("user_id")
        if user_id is not None:
            try:
                owner = await db.get(User, user_id)
            except SQLAlchemyError as e:
                logger.error("Failed to load user %s: %s", user_id, e)
                raise DatabaseError(context={"user_id": user_id})
            if owner is None:
                raise NotFoundError("user", str(user_id))
        return await super().update(db, entity_id, values)

    async def connect_to_user(self, db: AsyncSession, hashed_lock_id: str, user_id: int) -> Lock:
        """
        Attach a lock to an account. The app only knows the obfuscated id
        (scanned from the QR code), so it is decoded here.
        """
        lock_id = decode_id(hashed_lock_id)
        if lock_id is None:
            raise ValidationError("Invalid lock ID", field="hashedLockId")
        await self.get(db, lock_id)
        return await self.update(db, lock_id, {"user_id": user_id})

    async def rename(self, db: AsyncSession, lock_id: int, new_name: str) -> Lock:
        name = (new_name or "").strip()
        if not name:
            raise ValidationError("Lock name cannot be empty", field="newName")
        return await self.update(db, lock_id, {"lock_name": name})

    async def set_album_title(self, db: AsyncSession, lock_id: int, album_title: str) -> Lock:
        title = (album_title or "").strip()
        if not title:
            raise ValidationError("Album title cannot be empty", field="albumTitle")
        return await self.update(db, lock_id, {"album_title": title})

    async def toggle_seal(self, db: AsyncSession, lock_id: int, today: Optional[date] = None) -> Lock:
        """Seal with today's date, or unseal if already sealed."""
        lock = await self.get(db, lock_id)
        seal_date = None if lock.seal_date is not None else (today or date.today())
        return await self.update(db, lock_id, {"seal_date": seal_date})

    async def upgrade_storage(self, db: AsyncSession, lock_id: int) -> Lock:
        # One-way, and not in updatable_fields
        await self.get(db, lock_id)
        return await self._write(db, lock_id, {"upgraded_storage": True})

    async def increment_scan_count(self, db: AsyncSession, lock_id: int) -> ScanResult:
        """
        Record one scan and report the milestone it reached, if any.

        Returns:
            ScanResult with the refreshed lock and the milestone value
            (None unless this scan crossed a new milestone).
        """
        try:
            result = await db.execute(
                select(Lock).where(Lock.id == lock_id).with_for_update()
            )
            lock = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to read lock %s for scan: %s", lock_id, e)
            raise DatabaseError(context={"lock_id": lock_id})
        if lock is None:
            raise NotFoundError("lock", str(lock_id))

        outcome = evaluate_scan(
            lock.scan_count, lock.last_scan_milestone, settings.scan_milestones_list
        )
        values = {"scan_count": outcome.scan_count}
        if outcome.reached is not None:
            values["last_scan_milestone"] = outcome.reached
            logger.info("Lock %s reached scan milestone %s", lock_id, outcome.reached)

        lock = await self._write(db, lock_id, values)
        return ScanResult(lock=lock, milestone=outcome.reached)

    async def get_max_id(self, db: AsyncSession) -> int:
        try:
            result = await db.execute(select(func.max(Lock.id)))
        except SQLAlchemyError as e:
            logger.error("Failed to read max lock id: %s", e)
            raise DatabaseError()
        return result.scalar() or 0

    async def bulk_create(self, db: AsyncSession, total: int) -> BulkCreateResult:
        if total < 1 or total > BULK_CREATE_MAX:
            raise ValidationError(
                f"totalLocks must be between 1 and {BULK_CREATE_MAX}", field="totalLocks"
            )

        start_id = await self.get_max_id(db) + 1
        created_ids: List[int] = []

        for batch_start in range(start_id, start_id + total, BULK_BATCH_SIZE):
            batch_end = min(batch_start + BULK_BATCH_SIZE, start_id + total)
            for lock_id in range(batch_start, batch_end):
                try:
                    async with db.begin_nested():
                        db.add(
                            Lock(
                                id=lock_id,
                                lock_name=BULK_LOCK_NAME,
                                album_title=BULK_ALBUM_TITLE,
                            )
                        )
                    created_ids.append(lock_id)
                except SQLAlchemyError as e:
                    logger.warning("Skipping lock %s in bulk create: %s", lock_id, e)
            logger.info("Bulk create: inserted ids %s-%s", batch_start, batch_end - 1)

        outcome = BulkCreateResult(created_ids=created_ids, requested=total)
        logger.info(outcome.message)
        return outcome


lock_service = LockService()
