"""
Memory Locks API — Entity Service Base (Partial Updates)
=========================================================

What:  Shared get/update behaviour for the lock, media object and user
       services.
How:   `update()` applies only the fields the caller actually sent:

           PATCH {"lockName": "Ours"}          → SET lock_name = 'Ours'
           PATCH {"sealDate": null}            → SET seal_date = NULL
           PATCH {}                            → 400, no statement issued

       One UPDATE statement touching exactly those columns, then a fresh
       SELECT so the caller gets the row as stored (server defaults,
       triggers and concurrent writers included).

Subclasses declare `model`, `resource` (used in 404 messages) and
`updatable_fields`, the whitelist of columns a partial update may touch.
"""

import logging
from typing import Any, ClassVar, Dict, FrozenSet, Generic, Mapping, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memorylocks.database import Base
from memorylocks.exceptions import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

Changes = Union[BaseModel, Mapping[str, Any]]


class EntityService(Generic[ModelT]):
    model: ClassVar[Type[Base]]
    resource: ClassVar[str] = "resource"
    updatable_fields: ClassVar[FrozenSet[str]] = frozenset()

    async def get(self, db: AsyncSession, entity_id: int) -> ModelT:
        """Fetch by primary key or raise NotFoundError."""
        try:
            entity = await db.get(self.model, entity_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load %s %s: %s", self.resource, entity_id, e)
            raise DatabaseError(context={"resource": self.resource, "id": entity_id})
        if entity is None:
            raise NotFoundError(self.resource, str(entity_id))
        return entity

    def collect_changes(self, changes: Changes) -> Dict[str, Any]:
        """
        Reduce a payload to the whitelisted columns that were explicitly set.

        Pydantic models contribute only fields present in the request
        (exclude_unset), so an omitted field and an explicit null differ.
        """
        if isinstance(changes, BaseModel):
            raw = changes.model_dump(exclude_unset=True)
        else:
            raw = dict(changes)
        return {k: v for k, v in raw.items() if k in self.updatable_fields}

    async def update(self, db: AsyncSession, entity_id: int, changes: Changes) -> ModelT:
        """
        Apply a partial update and return the re-read entity.

        Raises:
            ValidationError: No recognized fields in the payload
            NotFoundError:   No row with this id after the write
            DatabaseError:   The UPDATE or the read-back failed
        """
        values = self.collect_changes(changes)
        if not values:
            raise ValidationError("No fields provided for update")
        return await self._write(db, entity_id, values)

    async def commit(self, db: AsyncSession) -> None:
        """
        Commit the request transaction now rather than in get_db_session.
        Used before scheduling side effects that must only follow stored data.
        """
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Commit of %s changes failed: %s", self.resource, e)
            await db.rollback()
            raise DatabaseError(context={"resource": self.resource})

    async def _write(self, db: AsyncSession, entity_id: int, values: Dict[str, Any]) -> ModelT:
        try:
            await db.execute(
                update(self.model)
                .where(self.model.id == entity_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await db.flush()
            entity = await db.get(self.model, entity_id, populate_existing=True)
        except SQLAlchemyError as e:
            logger.error(
                "Update of %s %s failed (%s): %s",
                self.resource, entity_id, ", ".join(sorted(values)), e,
            )
            raise DatabaseError(context={"resource": self.resource, "id": entity_id})

        if entity is None:
            raise NotFoundError(self.resource, str(entity_id))
        logger.info("Updated %s %s: %s", self.resource, entity_id, ", ".join(sorted(values)))
        return entity
