"""
quickfix/features/notifications/service.py

Per-user notifications plus public announcements, merged into one feed.

- fetch_notifications(): signed-in users only; anonymous sessions get an empty list
- fetch_announcements(): public, no session needed
- feed(now): notifications + current announcements, newest first
- mark_as_read / mark_all_as_read / delete keep unread_count in step locally

Announcement rows carry ids prefixed with ``announcement-``; marking one read
is local to this session (the server keeps no per-user state for them).
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError, BusyError, ErrorKind, LifetimeClosed, Result
from quickfix.core.lifetime import InFlight, Lifetime
from quickfix.core.notices import NoticeCenter
from quickfix.features.auth.service import AuthService
from quickfix.models.notification import Announcement, FeedItem, Notification

logger = logging.getLogger(__name__)

ANNOUNCEMENT_PREFIX = "announcement-"


def _items(body) -> list:
    data = body.get("data") if isinstance(body, dict) else body
    return data if isinstance(data, list) else []


def merge_feed(
    notifications: List[Notification],
    announcements: List[Announcement],
    now: Optional[datetime] = None,
    read_announcements: Optional[Set[str]] = None,
) -> List[FeedItem]:
    """Current announcements that do not repeat a notification, merged newest first."""
    moment = now or datetime.now(timezone.utc)
    read_announcements = read_announcements or set()
    seen = {(n.title, n.message) for n in notifications}

    items = [FeedItem.from_notification(n) for n in notifications]
    for a in announcements:
        if not a.is_current(moment) or (a.title, a.content) in seen:
            continue
        item = FeedItem.from_announcement(a)
        if item.id in read_announcements:
            item = item.model_copy(update={"read": True})
        items.append(item)
    items.sort(key=lambda item: item.created_at, reverse=True)
    return items


class NotificationService:
    def __init__(self, api: ApiClient, notices: NoticeCenter, auth: AuthService):
        self.api = api
        self.notices = notices
        self.auth = auth
        self.notifications: List[Notification] = []
        self.announcements: List[Announcement] = []
        self.unread_count = 0
        self.loading = False
        self.error: Optional[str] = None
        self.in_flight = InFlight()
        self.lifetime = Lifetime("notifications")
        self._read_announcements: Set[str] = set()

    def _recount(self) -> None:
        self.unread_count = sum(1 for n in self.notifications if not n.read)

    async def fetch_notifications(self) -> Result[List[Notification]]:
        if self.auth.user is None:
            self.notifications = []
            self.unread_count = 0
            return Result.success([])

        self.loading = True
        self.error = None
        try:
            body = await self.lifetime.run(self.api.get("/notifications"))
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            self.error = exc.backend_message or "Failed to load notifications."
            if not exc.notified:
                self.notices.error(self.error, key="notifications-load-error", once=True)
            logger.error("notifications.load_failed status=%s", exc.status_code)
            return Result.failure(exc.kind, self.error)
        finally:
            self.loading = False

        self.notifications = [Notification.model_validate(raw) for raw in _items(body)]
        self._recount()
        logger.debug("notifications.loaded count=%d unread=%d", len(self.notifications), self.unread_count)
        return Result.success(self.notifications)

    async def fetch_announcements(self) -> Result[List[Announcement]]:
        try:
            body = await self.lifetime.run(self.api.get("/announcements"))
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            # announcements are decoration; a failure here stays in the log
            logger.warning("announcements.load_failed status=%s", exc.status_code)
            return Result.failure(exc.kind, exc.backend_message or "Failed to load announcements.")

        self.announcements = [Announcement.model_validate(raw) for raw in _items(body)]
        return Result.success(self.announcements)

    def feed(self, now: Optional[datetime] = None) -> List[FeedItem]:
        notifications = self.notifications if self.auth.user is not None else []
        return merge_feed(notifications, self.announcements, now, self._read_announcements)

    async def mark_as_read(self, notification_id: str) -> Result[None]:
        if notification_id.startswith(ANNOUNCEMENT_PREFIX):
            self._read_announcements.add(notification_id)
            return Result.success()

        try:
            async with self.in_flight.hold(f"read:{notification_id}"):
                await self.api.put(f"/notifications/{notification_id}/read")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to mark notification as read.", "notification-read-error")

        self.notifications = [n.mark_read() if n.id == notification_id else n for n in self.notifications]
        self._recount()
        return Result.success()

    async def mark_all_as_read(self) -> Result[None]:
        if self.unread_count == 0 and not self.announcements:
            return Result.success()
        try:
            async with self.in_flight.hold("read-all"):
                body = await self.api.put("/notifications/mark-all-read")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to mark all notifications as read.", "notification-read-all-error")

        self.notifications = [n.mark_read() for n in self.notifications]
        self._read_announcements.update(f"{ANNOUNCEMENT_PREFIX}{a.id}" for a in self.announcements)
        self.unread_count = 0
        message = body.get("message") if isinstance(body, dict) else None
        self.notices.success(message or "All notifications marked as read.", key="notification-read-all")
        return Result.success(message=message)

    async def delete(self, notification_id: str) -> Result[None]:
        if notification_id.startswith(ANNOUNCEMENT_PREFIX):
            return Result.failure(ErrorKind.CLIENT, "Announcements cannot be deleted.")

        try:
            async with self.in_flight.hold(f"delete:{notification_id}"):
                await self.api.delete(f"/notifications/{notification_id}")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to delete notification.", "notification-delete-error")

        removed = next((n for n in self.notifications if n.id == notification_id), None)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        if removed is not None and not removed.read:
            self.unread_count = max(0, self.unread_count - 1)
        self.notices.success("Notification deleted.", key=f"notification-deleted-{notification_id}")
        return Result.success()

    def _failed(self, exc: ApiError, default: str, key: str) -> Result:
        message = exc.backend_message or default
        if not exc.notified:
            self.notices.error(message, key=key)
        logger.error("notifications.action_failed key=%s status=%s", key, exc.status_code)
        return Result.failure(exc.kind, message)

    def close(self) -> None:
        self.lifetime.close()
