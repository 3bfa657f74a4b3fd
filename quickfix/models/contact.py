"""
quickfix/models/contact.py

Contact form submissions and their support tickets.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TicketStatus(str, Enum):
    PENDING = "Pending"
    UNDER_REVIEW = "Under Review"
    COMPLETED = "Completed"


class ContactMessage(BaseModel):
    """A ticket. The public lookup returns a subset (no id, name or email)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    ticket_number: Optional[str] = Field(default=None, alias="ticketNumber")
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    status: TicketStatus = TicketStatus.PENDING
    admin_response: Optional[str] = Field(default=None, alias="adminResponse")
    is_read: bool = Field(default=False, alias="isRead")
    replied_at: Optional[datetime] = Field(default=None, alias="repliedAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @property
    def answered(self) -> bool:
        return bool(self.admin_response)


class ContactPage(BaseModel):
    """One page of the admin inbox."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    messages: List[ContactMessage] = Field(default_factory=list, validation_alias=AliasChoices("data", "messages"))
    page: int = 1
    pages: int = 1
    total: int = Field(default=0, validation_alias=AliasChoices("count", "total"))
