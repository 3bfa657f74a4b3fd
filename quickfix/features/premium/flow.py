"""
quickfix/features/premium/flow.py

State for the premium subscription page.

One SubscriptionFlow per open page. It owns:
- the plan catalog and the user's latest subscription
- the selected plan, its reference code and the transaction id being typed
- the payment screenshot selection and upload state

Reference state is recomputed only on transitions (plan selected, subscription
replaced), never when a property is read. Network calls run inside the flow's
Lifetime, so a page that was closed mid-request ignores the late answer.
Form actions hold an InFlight key; a second click while one is running is
rejected as busy without a request.
"""

import logging
import random
from typing import List, Optional, Union

from quickfix.core.config import Settings, settings as default_settings
from quickfix.core.errors import ApiError, BusyError, ErrorKind, LifetimeClosed, Result
from quickfix.core.lifetime import InFlight, Lifetime
from quickfix.core.notices import NoticeCenter
from quickfix.features.auth.service import AuthService
from quickfix.features.premium.plans import (
    PlanCardState,
    plan_cards,
    show_payment_section,
    show_resubmit_form,
)
from quickfix.features.premium.reference import ReferenceState, derive_reference_state, is_valid_reference_code
from quickfix.features.premium.screenshot import ScreenshotFile, validate_screenshot
from quickfix.features.premium.service import PremiumService
from quickfix.features.premium.upi import build_upi_link, qr_payload
from quickfix.features.settings.service import SettingsService
from quickfix.models.subscription import Plan, PlanCatalog, Subscription

logger = logging.getLogger(__name__)

TRANSACTION_ID_REQUIRED = "Transaction ID is required."
PLAN_REQUIRED = "Please select a premium plan first."
NO_SUBSCRIPTION_FOR_SCREENSHOT = "No active or pending subscription found to attach screenshot to."


class SubscriptionFlow:
    def __init__(
        self,
        premium: PremiumService,
        auth: AuthService,
        site: SettingsService,
        notices: NoticeCenter,
        *,
        cfg: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.premium = premium
        self.auth = auth
        self.site = site
        self.notices = notices
        self.cfg = cfg or default_settings
        self.rng = rng
        self.lifetime = Lifetime("subscription-flow")
        self.in_flight = InFlight()

        self.catalog = PlanCatalog()
        self.plans_error: Optional[str] = None
        self.subscription: Optional[Subscription] = None
        self.status_error: Optional[str] = None
        self.loading = False

        self.selected_plan: Optional[Plan] = None
        self.reference = ReferenceState()
        self.transaction_id = ""
        self.transaction_id_error: Optional[str] = None

        self.screenshot: Optional[ScreenshotFile] = None
        self.screenshot_error: Optional[str] = None

    # -- derived, read-only --

    @property
    def requires_login(self) -> bool:
        return self.auth.user is None

    @property
    def plans(self) -> List[Plan]:
        return self.catalog.plans

    @property
    def reference_code(self) -> str:
        return self.reference.code

    @property
    def submitting(self) -> bool:
        return self.in_flight.is_busy("confirm")

    @property
    def uploading(self) -> bool:
        return self.in_flight.is_busy("upload")

    @property
    def upi_id(self) -> Optional[str]:
        if self.site.settings.upi_id:
            return self.site.settings.upi_id
        return self.catalog.payment_info.upi_id if self.catalog.payment_info else None

    @property
    def amount(self) -> Optional[float]:
        if self.selected_plan is None:
            return None
        if self.selected_plan.price is not None:
            return self.selected_plan.price
        return self.site.settings.plan_price(self.selected_plan.name)

    @property
    def upi_link(self) -> str:
        return build_upi_link(
            self.upi_id,
            self.amount,
            self.reference.code,
            payee_name=self.cfg.UPI_PAYEE_NAME,
            currency=self.cfg.UPI_CURRENCY,
        )

    @property
    def qr_payload(self) -> Optional[str]:
        return qr_payload(self.upi_link)

    @property
    def cards(self) -> List[PlanCardState]:
        return plan_cards(self.plans, self.auth.user, self.subscription)

    @property
    def payment_section_visible(self) -> bool:
        return show_payment_section(self.selected_plan, self.subscription)

    @property
    def resubmit_form_visible(self) -> bool:
        return show_resubmit_form(self.selected_plan, self.subscription)

    # -- transitions --

    def _transition(self, plan: Optional[Plan], subscription: Optional[Subscription]) -> None:
        if plan == self.selected_plan and subscription == self.subscription:
            return
        self.selected_plan = plan
        self.subscription = subscription
        current = ReferenceState(code=self.reference.code, transaction_id=self.transaction_id)
        self.reference = derive_reference_state(plan, subscription, current, self.rng)
        self.transaction_id = self.reference.transaction_id
        if self.reference.regenerated:
            self.transaction_id_error = None
            logger.debug("premium.reference_regenerated plan=%s", plan.name if plan else None)

    def _apply_subscription(self, subscription: Optional[Subscription]) -> None:
        plan = self.selected_plan
        if subscription is not None and subscription.is_pending:
            plan = self.catalog.find(subscription.plan) or plan
        self._transition(plan, subscription)
        if plan is None and subscription is not None and subscription.is_pending:
            # plan missing from the catalog (or the catalog failed); resume the payment anyway
            self.reference = ReferenceState(
                code=subscription.reference_code or "",
                transaction_id=subscription.transaction_id or "",
            )
            self.transaction_id = self.reference.transaction_id

    # -- loading --

    async def load(self) -> Result[Optional[Subscription]]:
        """Load settings (if needed), the plan catalog and the subscription status.

        A failing status call leaves the page usable: the error is kept in
        ``status_error`` and the plan list still loads.
        """
        self.loading = True
        try:
            if not self.site.loaded:
                await self.lifetime.run(self.site.fetch())
            await self._load_plans()
            if self.requires_login:
                self._apply_subscription(None)
                return Result.success(None)
            return await self._load_status()
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        finally:
            self.loading = False

    async def _load_plans(self) -> None:
        self.plans_error = None
        try:
            self.catalog = await self.lifetime.run(self.premium.get_features())
        except ApiError as exc:
            self.plans_error = exc.backend_message or exc.message or "Failed to load premium plans."
            logger.error("premium.plans_failed status=%s message=%s", exc.status_code, self.plans_error)
            return
        if self.selected_plan is not None:
            self.selected_plan = self.catalog.find(self.selected_plan.name) or self.selected_plan

    async def _load_status(self) -> Result[Optional[Subscription]]:
        self.status_error = None
        try:
            subscription = await self.lifetime.run(self.premium.get_status())
        except ApiError as exc:
            self.status_error = exc.backend_message or "Failed to fetch subscription status."
            logger.error("premium.status_failed status=%s message=%s", exc.status_code, self.status_error)
            return Result.failure(exc.kind, self.status_error)
        self._apply_subscription(subscription)
        logger.info("premium.status status=%s plan=%s", subscription.status.value, subscription.plan)
        return Result.success(subscription)

    async def _refresh_user(self) -> None:
        await self.lifetime.run(self.auth.check_user_status())

    # -- actions --

    def select_plan(self, plan: Union[Plan, str]) -> Result[Plan]:
        chosen = self.catalog.find(plan) if isinstance(plan, str) else plan
        if chosen is None:
            return Result.failure(ErrorKind.VALIDATION, f"Unknown plan: {plan}")
        self._transition(chosen, self.subscription)
        return Result.success(chosen)

    def use_reference_code(self, code: str) -> Result[str]:
        """Adopt a code the user already paid with (e.g. from an earlier session)."""
        code = (code or "").strip()
        if not is_valid_reference_code(code):
            return Result.failure(ErrorKind.VALIDATION, "Reference code must be a 6-digit number.")
        self.reference = ReferenceState(code=code, transaction_id=self.transaction_id)
        return Result.success(code)

    def set_transaction_id(self, value: str) -> None:
        self.transaction_id = value
        self.transaction_id_error = None

    async def submit_confirmation(self) -> Result[Subscription]:
        txn = self.transaction_id.strip()
        if not txn:
            self.transaction_id_error = TRANSACTION_ID_REQUIRED
            self.notices.error(TRANSACTION_ID_REQUIRED, key="transaction-id-required")
            return Result.failure(
                ErrorKind.VALIDATION,
                TRANSACTION_ID_REQUIRED,
                field_errors={"transactionId": TRANSACTION_ID_REQUIRED},
            )
        if self.selected_plan is None:
            self.notices.error(PLAN_REQUIRED, key="plan-required")
            return Result.failure(ErrorKind.VALIDATION, PLAN_REQUIRED)

        plan = self.selected_plan
        try:
            async with self.in_flight.hold("confirm", "Payment confirmation is already being submitted."):
                receipt = await self.lifetime.run(
                    self.premium.submit_payment_confirmation(txn, self.reference.code, plan.name)
                )
                subscription = receipt.subscription
                if subscription is None:
                    subscription = await self.lifetime.run(self.premium.get_status())
        except (BusyError, LifetimeClosed) as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            message = exc.backend_message or exc.message
            if exc.notified:
                return Result.failure(exc.kind, message)
            self.transaction_id_error = message
            return Result.failure(exc.kind, message, field_errors={"transactionId": message})

        self._transition(plan, subscription)
        self.transaction_id = ""
        self.notices.success(
            receipt.message or "Payment confirmation submitted. An admin will verify it shortly.",
            key="payment-confirmation-success",
        )
        try:
            await self._refresh_user()
        except LifetimeClosed:
            logger.debug("premium.user_refresh_skipped reason=closed")
        return Result.success(subscription, receipt.message)

    def choose_screenshot(self, file: Optional[ScreenshotFile]) -> None:
        self.screenshot = file
        self.screenshot_error = None

    async def upload_screenshot(self) -> Result[str]:
        error = validate_screenshot(self.screenshot, self.cfg.SCREENSHOT_MAX_BYTES)
        if error:
            self.screenshot_error = error
            return Result.failure(ErrorKind.VALIDATION, error, field_errors={"screenshot": error})
        subscription_id = self.subscription.id if self.subscription else None
        if not subscription_id:
            self.screenshot_error = NO_SUBSCRIPTION_FOR_SCREENSHOT
            return Result.failure(ErrorKind.VALIDATION, NO_SUBSCRIPTION_FOR_SCREENSHOT)

        try:
            async with self.in_flight.hold("upload", "A screenshot upload is already in progress."):
                receipt = await self.lifetime.run(self.premium.upload_screenshot(subscription_id, self.screenshot))
        except (BusyError, LifetimeClosed) as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            self.screenshot_error = exc.backend_message or "Failed to upload screenshot."
            return Result.failure(exc.kind, self.screenshot_error)

        # screenshot only; plan and status are unchanged so reference state stays put
        self.subscription = self.subscription.with_screenshot(receipt.screenshot_url)
        self.screenshot = None
        self.notices.success(receipt.message or "Screenshot uploaded successfully.", key="screenshot-upload-success")
        return Result.success(receipt.screenshot_url, receipt.message)

    async def cancel(self) -> Result[Optional[Subscription]]:
        try:
            async with self.in_flight.hold("cancel", "Cancellation is already in progress."):
                message = await self.lifetime.run(self.premium.cancel())
                self.notices.success(message or "Subscription cancelled.", key="subscription-cancelled")
                result = await self._load_status()
                await self._refresh_user()
        except (BusyError, LifetimeClosed) as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            message = exc.backend_message or "Failed to cancel subscription."
            if not exc.notified:
                self.notices.error(message, key="subscription-cancel-error")
            return Result.failure(exc.kind, message)
        return Result.success(result.value, message) if result.ok else result

    def close(self) -> None:
        self.lifetime.close()
