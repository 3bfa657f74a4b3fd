"""
quickfix/features/admin/service.py

Admin review of manual payments and announcement management.

Manual UPI payments are activated by hand: an admin matches the reference code
and UTR on the bank statement against the submitted subscription, then moves it
to active or failed. Transitions the backend would reject are refused here
before any request is made.
"""

import logging
from typing import Any, Dict, List, Optional

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError, BusyError, ErrorKind, Result
from quickfix.core.lifetime import InFlight
from quickfix.core.notices import NoticeCenter
from quickfix.models.notification import Announcement
from quickfix.models.settings import SiteSettings
from quickfix.models.subscription import (
    SubscriptionPage,
    SubscriptionStatus,
    can_transition,
)

logger = logging.getLogger(__name__)


def _message(body: Any) -> Optional[str]:
    return body.get("message") if isinstance(body, dict) else None


class AdminService:
    def __init__(self, api: ApiClient, notices: NoticeCenter):
        self.api = api
        self.notices = notices
        self.in_flight = InFlight()

    def _failed(self, exc: ApiError, default: str, key: str) -> Result:
        message = exc.backend_message or default
        if not exc.notified:
            self.notices.error(message, key=key)
        logger.error("admin.failure key=%s status=%s message=%s", key, exc.status_code, message)
        return Result.failure(exc.kind, message)

    async def get_settings(self) -> Result[SiteSettings]:
        """Full settings map; a non-admin session gets a quiet UNAUTHORIZED result."""
        try:
            body = await self.api.get("/admin/settings", auth_optional=True)
        except ApiError as exc:
            if exc.status_code == 401:
                logger.debug("admin.settings_unauthenticated")
                return Result.failure(exc.kind, exc.message)
            return self._failed(exc, "Failed to load website settings.", "admin-settings-error")
        data = body.get("data") if isinstance(body, dict) else None
        return Result.success(SiteSettings(data if isinstance(data, dict) else {}))

    async def list_subscriptions(
        self,
        status: Optional[str] = None,
        plan: Optional[str] = None,
        reference_code: Optional[str] = None,
        transaction_id: Optional[str] = None,
        user_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Result[SubscriptionPage]:
        params = {
            "status": status,
            "plan": plan,
            "referenceCode": reference_code,
            "transactionId": transaction_id,
            "userId": user_id,
            "pageNumber": page,
            "pageSize": page_size,
        }
        try:
            body = await self.api.get("/admin/subscriptions/all", params=params)
        except ApiError as exc:
            return self._failed(exc, "Failed to load subscriptions.", "admin-subscriptions-error")
        return Result.success(SubscriptionPage.model_validate(body))

    async def update_subscription_status(
        self,
        subscription_id: str,
        status: str,
        admin_notes: str = "",
        current_status: Optional[str] = None,
    ) -> Result[None]:
        try:
            target = SubscriptionStatus(status)
            current = SubscriptionStatus(current_status) if current_status is not None else None
        except ValueError:
            return Result.failure(ErrorKind.VALIDATION, "Invalid subscription status provided.")
        if current is not None and not can_transition(current, target):
            message = f"Invalid status transition from '{current_status}' to '{status}'."
            return Result.failure(ErrorKind.VALIDATION, message)

        try:
            async with self.in_flight.hold(f"subscription:{subscription_id}"):
                body = await self.api.put(
                    f"/admin/subscriptions/{subscription_id}/status",
                    json={"status": target.value, "adminNotes": admin_notes},
                )
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to update subscription status.", "admin-subscription-status-error")

        message = _message(body) or "Subscription status updated successfully!"
        self.notices.success(message, key=f"admin-subscription-{subscription_id}")
        logger.info("admin.subscription_status id=%s status=%s", subscription_id, target.value)
        return Result.success(message=message)

    # -- announcements --

    async def list_announcements(self) -> Result[List[Announcement]]:
        try:
            body = await self.api.get("/admin/announcements")
        except ApiError as exc:
            return self._failed(exc, "Failed to load announcements.", "admin-announcements-error")
        data = body.get("data") if isinstance(body, dict) else None
        return Result.success([Announcement.model_validate(raw) for raw in data or []])

    async def create_announcement(self, fields: Dict[str, Any]) -> Result[Announcement]:
        try:
            async with self.in_flight.hold("announcement:create"):
                body = await self.api.post("/admin/announcements", json=fields)
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to create announcement.", "admin-announcement-create-error")
        self.notices.success(_message(body) or "Announcement created successfully!", key="admin-announcement-created")
        return Result.success(Announcement.model_validate(body["data"]))

    async def update_announcement(self, announcement_id: str, fields: Dict[str, Any]) -> Result[Announcement]:
        try:
            async with self.in_flight.hold(f"announcement:{announcement_id}"):
                body = await self.api.put(f"/admin/announcements/{announcement_id}", json=fields)
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to update announcement.", "admin-announcement-update-error")
        self.notices.success(_message(body) or "Announcement updated successfully!", key=f"admin-announcement-{announcement_id}")
        return Result.success(Announcement.model_validate(body["data"]))

    async def delete_announcement(self, announcement_id: str) -> Result[None]:
        try:
            async with self.in_flight.hold(f"announcement:{announcement_id}"):
                body = await self.api.delete(f"/admin/announcements/{announcement_id}")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to delete announcement.", "admin-announcement-delete-error")
        self.notices.success(_message(body) or "Announcement deleted successfully!", key=f"admin-announcement-deleted-{announcement_id}")
        return Result.success(message=_message(body))
