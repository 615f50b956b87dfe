"""
Memory Locks API — Public Album Schemas
========================================

Shape consumed by the album website and the mobile viewer. `Type` follows
the legacy MediaType enum: 0 = image, 1 = video.
"""

from datetime import date
from typing import List, Optional

from pydantic import Field

from memorylocks.models.media_object import MediaObject
from memorylocks.schemas.common import DtoModel

MEDIA_TYPE_IMAGE = 0
MEDIA_TYPE_VIDEO = 1


class AlbumMediaDto(DtoModel):
    id: int
    type: int
    url: str
    thumbnail_url: Optional[str] = None
    is_main_image: bool
    display_order: int
    cloudflare_id: str
    duration_seconds: Optional[int] = None

    @classmethod
    def from_media(cls, media: MediaObject) -> "AlbumMediaDto":
        return cls(
            id=media.id,
            type=MEDIA_TYPE_IMAGE if media.is_image else MEDIA_TYPE_VIDEO,
            url=media.url,
            thumbnail_url=media.thumbnail_url,
            is_main_image=bool(media.is_main_picture),
            display_order=media.display_order or 0,
            cloudflare_id=media.cloudflare_id,
            duration_seconds=media.duration_seconds,
        )


class AlbumDto(DtoModel):
    album_title: str
    date_time: str = Field(description="Lock creation date (YYYY-MM-DD)")
    seal_date: Optional[date] = None
    upgraded_storage: bool
    media: List[AlbumMediaDto]
    hashed_lock_id: str
