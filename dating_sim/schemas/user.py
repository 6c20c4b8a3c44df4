from pydantic import EmailStr, Field, field_validator
from typing import Any, Dict, Optional

from .base import CamelModel, UtcDatetime

USERNAME_PATTERN = r"^[A-Za-z0-9_-]+$"


class UserCreate(CamelModel):
    username: str = Field(
        ...,
        min_length=2,
        max_length=20,
        pattern=USERNAME_PATTERN,
        examples=["MortySmith99"],
        description="2-20 characters: letters, numbers, hyphens and underscores.",
    )
    password: str = ""
    email: Optional[EmailStr] = None


class SignInRequest(CamelModel):
    username: str = Field(..., min_length=2, max_length=20, pattern=USERNAME_PATTERN)


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    profile_picture: Optional[str] = None
    password: Optional[str] = None

    @field_validator('profile_picture')
    @classmethod
    def empty_picture_to_none(cls, v):
        """Convert empty string to None so clearing the picture is explicit."""
        if v == "":
            return None
        return v

    def changes(self) -> Dict[str, Any]:
        """Fields the client sent; a null password leaves the current one in place."""
        data = self.model_dump(exclude_unset=True)
        if data.get("password") is None:
            data.pop("password", None)
        return data


class User(CamelModel):
    id: int
    username: str
    password: str = Field(default="", exclude=True)
    email: Optional[str] = None
    profile_picture: Optional[str] = None
    global_settings: Optional[Dict[str, Any]] = None
    created_at: Optional[UtcDatetime] = None
