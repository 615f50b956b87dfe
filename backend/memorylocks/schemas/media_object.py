"""
Memory Locks API — Media Object Schemas
========================================

The app calls the main-picture flag `isMainImage`; the column is
`is_main_picture`. The explicit alias below bridges the two.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from memorylocks.models.media_object import MediaObject
from memorylocks.schemas.common import DtoModel, RequestModel


class MediaObjectCreate(RequestModel):
    lock_id: Optional[int] = None
    cloudflare_id: str = ""
    url: str = ""
    thumbnail_url: Optional[str] = None
    file_name: Optional[str] = None
    is_image: bool = True
    is_main_picture: bool = Field(default=False, alias="isMainImage")
    display_order: int = 0
    duration_seconds: Optional[int] = Field(default=None, ge=0)


class MediaObjectUpdate(RequestModel):
    """
    Partial update for one media object. lock_id is not updatable: media
    objects are never moved to another lock.
    """

    cloudflare_id: Optional[str] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    file_name: Optional[str] = None
    is_image: Optional[bool] = None
    is_main_picture: Optional[bool] = Field(default=None, alias="isMainImage")
    display_order: Optional[int] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def reject_null_for_required_columns(self) -> "MediaObjectUpdate":
        for name in ("cloudflare_id", "url", "is_image", "is_main_picture", "display_order"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ReorderItem(RequestModel):
    id: Optional[int] = None
    display_order: Optional[int] = None


class BatchReorderRequest(RequestModel):
    items: List[ReorderItem] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Response DTOs
# ══════════════════════════════════════════════════════════════════════════


class MediaObjectDto(DtoModel):
    id: int
    lock_id: int
    cloudflare_id: str
    url: str
    thumbnail_url: Optional[str] = None
    file_name: Optional[str] = None
    is_image: bool
    is_main_image: bool
    display_order: int
    duration_seconds: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_media(cls, media: MediaObject) -> "MediaObjectDto":
        return cls(
            id=media.id,
            lock_id=media.lock_id,
            cloudflare_id=media.cloudflare_id,
            url=media.url,
            thumbnail_url=media.thumbnail_url,
            file_name=media.file_name,
            is_image=bool(media.is_image),
            is_main_image=bool(media.is_main_picture),
            display_order=media.display_order or 0,
            duration_seconds=media.duration_seconds,
            created_at=media.created_at,
        )


class BatchReorderResult(DtoModel):
    updated: int
    failed: int
    failed_ids: List[int] = Field(default_factory=list)
