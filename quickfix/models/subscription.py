"""
quickfix/models/subscription.py

Premium plans and the user's latest subscription record.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PlanName(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"
    PRO = "pro"


class SubscriptionStatus(str, Enum):
    NONE = "none"
    INITIATED = "initiated"
    PENDING_MANUAL_VERIFICATION = "pending_manual_verification"
    ACTIVE = "active"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({
    SubscriptionStatus.NONE,
    SubscriptionStatus.FAILED,
    SubscriptionStatus.CANCELLED,
    SubscriptionStatus.EXPIRED,
})


class Plan(BaseModel):
    """A purchasable premium tier from /premium/features."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    display_name: str = Field(alias="displayName")
    price: Optional[float] = None
    currency: str = "INR"
    duration: Optional[str] = None
    benefits: List[str] = Field(default_factory=list)


class PaymentInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    method: str = "UPI"
    upi_id: Optional[str] = Field(default=None, alias="upiId")
    instructions: Optional[str] = None


class PlanCatalog(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    plans: List[Plan] = Field(default_factory=list)
    payment_info: Optional[PaymentInfo] = Field(default=None, alias="paymentInfo")

    def find(self, name: Optional[str]) -> Optional[Plan]:
        if not name:
            return None
        for plan in self.plans:
            if plan.name == name:
                return plan
        return None


class Subscription(BaseModel):
    """
    Latest subscription record for the user.

    The none-state from /premium/status carries only ``status`` (and no id).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    plan: Optional[str] = None
    status: SubscriptionStatus = SubscriptionStatus.NONE
    reference_code: Optional[str] = Field(default=None, alias="referenceCode")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    amount: Optional[float] = None
    currency: Optional[str] = None
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    screenshot_url: Optional[str] = Field(default=None, alias="screenshotUrl")
    admin_notes: Optional[str] = Field(default=None, alias="adminNotes")

    @property
    def is_pending(self) -> bool:
        return self.status == SubscriptionStatus.PENDING_MANUAL_VERIFICATION

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def pending_for(self, plan_name: Optional[str]) -> bool:
        return self.is_pending and self.plan == plan_name

    def with_screenshot(self, url: str) -> "Subscription":
        return self.model_copy(update={"screenshot_url": url})


# transitions an admin may apply to a subscription under review
ALLOWED_STATUS_TRANSITIONS = {
    SubscriptionStatus.INITIATED: frozenset({
        SubscriptionStatus.PENDING_MANUAL_VERIFICATION,
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.FAILED,
    }),
    SubscriptionStatus.PENDING_MANUAL_VERIFICATION: frozenset({
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.FAILED,
        SubscriptionStatus.CANCELLED,
    }),
    SubscriptionStatus.ACTIVE: frozenset({SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED}),
    SubscriptionStatus.FAILED: frozenset({
        SubscriptionStatus.PENDING_MANUAL_VERIFICATION,
        SubscriptionStatus.ACTIVE,
    }),
    SubscriptionStatus.CANCELLED: frozenset(),
    SubscriptionStatus.EXPIRED: frozenset(),
}


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    return target in ALLOWED_STATUS_TRANSITIONS.get(current, frozenset())


class SubscriptionOwner(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    username: Optional[str] = None
    email: Optional[str] = None


class AdminSubscription(Subscription):
    """Subscription row in the admin review list, with the owner populated."""
    user: Union[SubscriptionOwner, str, None] = None


class SubscriptionPage(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    subscriptions: List[AdminSubscription] = Field(
        default_factory=list, validation_alias=AliasChoices("data", "subscriptions")
    )
    page: int = 1
    pages: int = 1
    total: int = Field(default=0, validation_alias=AliasChoices("count", "total"))
