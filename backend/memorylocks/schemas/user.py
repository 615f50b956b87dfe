"""
Memory Locks API — User Schemas
================================
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from memorylocks.models.user import User
from memorylocks.schemas.common import DtoModel, RequestModel


class CreateUserRequest(RequestModel):
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    auth_provider: Optional[str] = None
    provider_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class IdentifierRequest(RequestModel):
    """Body of /users/exist-check and /users/find-by-identifier."""

    is_email: bool
    identifier: str = Field(min_length=1)


class ProviderRequest(RequestModel):
    auth_provider: str
    provider_id: str


class LinkProviderRequest(RequestModel):
    user_id: int
    auth_provider: str
    provider_id: str


class AuthMetadataRequest(RequestModel):
    user_id: Optional[int] = None
    email_verified: Optional[bool] = None
    phone_verified: Optional[bool] = None
    last_login_at: Optional[datetime] = None


class UserUpdate(RequestModel):
    """Partial update for an account; omitted fields stay as they are."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    email_verified: Optional[bool] = None
    phone_verified: Optional[bool] = None
    last_login_at: Optional[datetime] = None
    last_notification_prompt: Optional[datetime] = None

    @model_validator(mode="after")
    def reject_null_for_required_columns(self) -> "UserUpdate":
        for name in ("email_verified", "phone_verified"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class UserDto(DtoModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    auth_provider: str
    email_verified: bool
    phone_verified: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None
    last_notification_prompt: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserDto":
        return cls.model_validate(user)
