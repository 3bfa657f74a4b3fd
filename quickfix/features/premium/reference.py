"""
quickfix/features/premium/reference.py

Reference-code lifecycle for manual UPI payments.

A reference code is a 6-digit number the user puts in the UPI payment memo so
an admin can match the bank transfer to the account. There is no gateway
callback; the code is the only correlator.

Rules:
- A fresh code (and an empty transaction id) is issued when there is no
  subscription, when it is not pending, or when it is pending for another plan.
- A pending subscription for the selected plan keeps its server-side code and
  transaction id verbatim, so an interrupted confirmation can be resumed.
"""

import random
from dataclasses import dataclass
from typing import Optional

from quickfix.models.subscription import Plan, Subscription

REFERENCE_CODE_MIN = 100000
REFERENCE_CODE_MAX = 999999

_system_random = random.SystemRandom()


@dataclass(frozen=True)
class ReferenceState:
    code: str = ""
    transaction_id: str = ""
    regenerated: bool = False


def generate_reference_code(rng: Optional[random.Random] = None) -> str:
    source = rng or _system_random
    return str(source.randint(REFERENCE_CODE_MIN, REFERENCE_CODE_MAX))


def is_valid_reference_code(code: Optional[str]) -> bool:
    return bool(code) and code.isdigit() and len(code) == 6 and REFERENCE_CODE_MIN <= int(code) <= REFERENCE_CODE_MAX


def derive_reference_state(
    selected_plan: Optional[Plan],
    subscription: Optional[Subscription],
    current: Optional[ReferenceState] = None,
    rng: Optional[random.Random] = None,
) -> ReferenceState:
    """Recompute reference code and transaction id after a plan or status change.

    Call this only on those two transitions; it draws a new random code every
    time the retain rule does not apply.
    """
    current = current or ReferenceState()
    if selected_plan is None:
        return ReferenceState(code=current.code, transaction_id=current.transaction_id)

    if subscription is not None and subscription.pending_for(selected_plan.name):
        return ReferenceState(
            code=subscription.reference_code or "",
            transaction_id=subscription.transaction_id or "",
        )

    return ReferenceState(code=generate_reference_code(rng), transaction_id="", regenerated=True)
