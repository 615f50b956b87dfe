"""
Memory Locks API — Lock Schemas
================================

Request bodies for the /locks routes, the LockUpdate partial-update payload
and the LockDto returned to clients.
"""

from datetime import date
from typing import Optional

from pydantic import model_validator

from memorylocks.models.lock import Lock
from memorylocks.schemas.common import DtoModel, RequestModel
from memorylocks.services.id_codec import encode_id


# ══════════════════════════════════════════════════════════════════════════
# Partial Update Payload
# ══════════════════════════════════════════════════════════════════════════


class LockUpdate(RequestModel):
    """
    Fields a lock update may touch. Omitted fields are left unchanged;
    an explicit null clears a nullable column (seal_date, user_id).

    scan_count and last_scan_milestone are written only by the scan
    increment, upgraded_storage only by PATCH /locks/upgrade-storage.
    """

    lock_name: Optional[str] = None
    album_title: Optional[str] = None
    seal_date: Optional[date] = None
    user_id: Optional[int] = None

    @model_validator(mode="after")
    def reject_null_for_required_columns(self) -> "LockUpdate":
        for name in ("lock_name", "album_title"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Request Bodies
# ══════════════════════════════════════════════════════════════════════════
# Ids are Optional so the routes can answer with the worker's own messages
# ("Both userId and hashedLockId are required") instead of pydantic's.


class LockConnectRequest(RequestModel):
    user_id: Optional[int] = None
    hashed_lock_id: Optional[str] = None


class LockNameRequest(RequestModel):
    lock_id: Optional[int] = None
    new_name: Optional[str] = None


class LockIdRequest(RequestModel):
    """Body of PATCH /locks/seal and PATCH /locks/upgrade-storage."""

    lock_id: Optional[int] = None


class AlbumTitleRequest(RequestModel):
    album_title: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response DTOs
# ══════════════════════════════════════════════════════════════════════════


class LockDto(DtoModel):
    lock_id: int
    lock_name: str
    album_title: str
    seal_date: Optional[date] = None
    scan_count: int
    last_scan_milestone: int = 0
    upgraded_storage: bool
    user_id: Optional[int] = None
    hashed_lock_id: str

    @classmethod
    def from_lock(cls, lock: Lock) -> "LockDto":
        return cls(
            lock_id=lock.id,
            lock_name=lock.lock_name,
            album_title=lock.album_title,
            seal_date=lock.seal_date,
            scan_count=lock.scan_count,
            last_scan_milestone=lock.last_scan_milestone or 0,
            upgraded_storage=bool(lock.upgraded_storage),
            user_id=lock.user_id,
            hashed_lock_id=encode_id(lock.id),
        )


class ScanResultDto(DtoModel):
    """Result of POST /locks/{lockId}/scan. Milestone is null unless one was just reached."""

    lock: LockDto
    milestone: Optional[int] = None
