"""
quickfix/models/user.py

Signed-in user as returned by /auth/profile and the login/register endpoints.
"""

from enum import Enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """
    The account held in memory for the current session.

    Passwords never reach the client; the server session cookie is the only
    credential.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id", "userId"))
    username: str
    email: str
    email_verified: bool = Field(default=False, alias="emailVerified")
    role: UserRole = UserRole.USER
    is_premium: bool = Field(default=False, alias="isPremium")
    newsletter_subscriber: bool = Field(default=False, alias="newsletterSubscriber")
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
