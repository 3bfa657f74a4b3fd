"""
quickfix/models/notification.py

Per-user notifications, public announcements, and the merged feed row.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    SYSTEM = "system"
    GUIDE_UPDATE = "guide_update"
    ANNOUNCEMENT = "announcement"
    SUBSCRIPTION = "subscription"
    ACCOUNT_VERIFICATION = "account_verification"


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    message: str
    # announcement types (urgent, new_feature, ...) are passed through as strings
    type: str = NotificationType.INFO.value
    read: bool = False
    link: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")

    def mark_read(self) -> "Notification":
        return self.model_copy(update={"read": True})


class Announcement(BaseModel):
    """Read-only site-wide announcement; shown only inside its date range."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    content: str
    type: str = "info"
    is_active: bool = Field(default=True, alias="isActive")
    start_date: datetime = Field(alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    link: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")

    def is_current(self, now: Optional[datetime] = None) -> bool:
        moment = _aware(now or datetime.now(timezone.utc))
        if not self.is_active:
            return False
        if _aware(self.start_date) > moment:
            return False
        return self.end_date is None or _aware(self.end_date) >= moment


class FeedItem(BaseModel):
    """One row of the notifications page: a notification or an announcement."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    message: str
    type: str
    read: bool
    link: Optional[str] = None
    created_at: datetime
    is_announcement: bool = False

    @property
    def action_label(self) -> Optional[str]:
        if not self.link:
            return None
        if self.type == NotificationType.ACCOUNT_VERIFICATION.value:
            return "Verify Now"
        return "View Details"

    @classmethod
    def from_notification(cls, n: Notification) -> "FeedItem":
        return cls(
            id=n.id,
            title=n.title,
            message=n.message,
            type=n.type,
            read=n.read,
            link=n.link,
            created_at=_aware(n.created_at),
        )

    @classmethod
    def from_announcement(cls, a: Announcement) -> "FeedItem":
        return cls(
            id=f"announcement-{a.id}",
            title=a.title,
            message=a.content,
            type=a.type,
            read=False,
            link=a.link,
            created_at=_aware(a.created_at),
            is_announcement=True,
        )
