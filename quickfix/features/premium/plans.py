"""
quickfix/features/premium/plans.py

Plan card state: button labels, disabled flags and which payment form shows.

Plan order (basic < advanced < pro) only picks between "Upgrade" and
"Downgrade" wording; it never blocks a selection.
"""

from dataclasses import dataclass
from typing import List, Optional

from quickfix.models.subscription import Plan, Subscription, SubscriptionStatus
from quickfix.models.user import User

PLAN_ORDER = {
    "basic": 1,
    "advanced": 2,
    "pro": 3,
}

PAYMENT_SECTION_STATUSES = frozenset({
    SubscriptionStatus.NONE,
    SubscriptionStatus.FAILED,
    SubscriptionStatus.EXPIRED,
    SubscriptionStatus.CANCELLED,
})


@dataclass(frozen=True)
class PlanCardState:
    plan: Plan
    label: str
    disabled: bool
    is_current: bool


def button_label(plan: Plan, is_user_premium: bool, subscription: Optional[Subscription]) -> str:
    choose = f"Choose {plan.display_name}"
    if not is_user_premium:
        return choose
    if subscription is None or not subscription.is_active:
        return choose

    current_rank = PLAN_ORDER.get(subscription.plan or "")
    target_rank = PLAN_ORDER.get(plan.name)
    if current_rank is None or target_rank is None:
        return choose
    if plan.name == subscription.plan:
        return "Current Plan"
    if target_rank > current_rank:
        return f"Upgrade to {plan.display_name}"
    if target_rank < current_rank:
        return f"Downgrade to {plan.display_name}"
    return choose


def button_disabled(
    plan: Plan,
    is_user_premium: bool,
    subscription: Optional[Subscription],
    user: Optional[User] = None,
) -> bool:
    # premium purchases are gated on a verified email
    if user is not None and not user.email_verified:
        return True

    if subscription is None:
        return False

    # duplicate submission for the plan already awaiting verification
    if not is_user_premium and subscription.pending_for(plan.name):
        return True

    if subscription.is_active and subscription.plan == plan.name:
        return True

    # an outstanding verification for another plan must be resolved first
    if subscription.is_pending and subscription.plan != plan.name:
        return True

    return False


def plan_cards(
    plans: List[Plan],
    user: Optional[User],
    subscription: Optional[Subscription],
) -> List[PlanCardState]:
    is_premium = bool(user and user.is_premium)
    return [
        PlanCardState(
            plan=plan,
            label=button_label(plan, is_premium, subscription),
            disabled=button_disabled(plan, is_premium, subscription, user),
            is_current=bool(subscription and subscription.is_active and subscription.plan == plan.name),
        )
        for plan in plans
    ]


def show_payment_section(selected_plan: Optional[Plan], subscription: Optional[Subscription]) -> bool:
    """Whether the "Pay via UPI" form is offered for the selected plan."""
    if selected_plan is None:
        return False
    if subscription is None or subscription.status in PAYMENT_SECTION_STATUSES:
        return True
    if subscription.is_active or subscription.is_pending:
        return subscription.plan != selected_plan.name
    return False


def show_resubmit_form(selected_plan: Optional[Plan], subscription: Optional[Subscription]) -> bool:
    """Pending for the selected plan: offer to update the submitted details instead."""
    return selected_plan is not None and subscription is not None and subscription.pending_for(selected_plan.name)
