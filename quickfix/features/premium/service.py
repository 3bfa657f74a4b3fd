"""
quickfix/features/premium/service.py

REST calls for the premium subscription endpoints.

Handles:
- Plan catalog (/premium/features)
- Latest subscription status (/premium/status)
- Manual payment confirmation, screenshot upload, cancellation

Failures propagate as ApiError; the API client has already reported the ones
it is responsible for.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError
from quickfix.features.premium.screenshot import ScreenshotFile
from quickfix.models.subscription import PlanCatalog, Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmationReceipt:
    message: Optional[str]
    subscription: Optional[Subscription]


@dataclass(frozen=True)
class UploadReceipt:
    message: Optional[str]
    screenshot_url: str


class PremiumService:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_features(self) -> PlanCatalog:
        body = await self.api.get("/premium/features")
        if not isinstance(body, dict) or not isinstance(body.get("plans"), list):
            raise ApiError("Failed to load premium plans: Invalid data format.", status_code=None, path="/premium/features")
        return PlanCatalog.model_validate(body)

    async def get_status(self) -> Subscription:
        body = await self.api.get("/premium/status")
        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            return Subscription()
        return Subscription.model_validate(data)

    async def submit_payment_confirmation(
        self,
        transaction_id: str,
        reference_code: str,
        selected_plan: str,
    ) -> ConfirmationReceipt:
        body = await self.api.post(
            "/premium/confirm-manual-payment",
            json={
                "transactionId": transaction_id,
                "referenceCode": reference_code,
                "selectedPlan": selected_plan,
            },
        )
        raw = body.get("subscription") if isinstance(body, dict) else None
        subscription = Subscription.model_validate(raw) if raw else None
        logger.info("premium.confirmation_submitted plan=%s reference=%s", selected_plan, reference_code)
        return ConfirmationReceipt(message=body.get("message"), subscription=subscription)

    async def upload_screenshot(self, subscription_id: str, file: ScreenshotFile) -> UploadReceipt:
        body = await self.api.post(
            "/premium/upload-screenshot",
            data={"subscriptionId": subscription_id},
            files={"screenshot": (file.filename, file.content, file.content_type)},
        )
        logger.info("premium.screenshot_uploaded subscription=%s size=%d", subscription_id, file.size)
        return UploadReceipt(message=body.get("message"), screenshot_url=body.get("screenshotUrl") or "")

    async def cancel(self) -> Optional[str]:
        body = await self.api.post("/premium/cancel")
        logger.info("premium.cancelled")
        return body.get("message") if isinstance(body, dict) else None
