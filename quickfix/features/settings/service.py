"""
quickfix/features/settings/service.py

Public site settings (/public/settings), loaded once per session.

The payload drives maintenance mode, registration/login switches, email
verification, the UPI id shown on the premium page and the contact details.
Admins can change a single key through /admin/settings.
"""

import logging
from typing import Any, Optional

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError, ErrorKind, Result
from quickfix.core.notices import NoticeCenter
from quickfix.core.validation import validate_setting
from quickfix.models.settings import SiteSettings

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load website settings."


class SettingsService:
    def __init__(self, api: ApiClient, notices: NoticeCenter):
        self.api = api
        self.notices = notices
        self.settings = SiteSettings()
        self.loaded = False
        self.loading = False
        self.error: Optional[str] = None

    def get(self, name: str, default: Any = None) -> Any:
        return self.settings.get(name, default)

    async def fetch(self) -> Result[SiteSettings]:
        """Load settings unless this session already has them."""
        if self.loaded:
            return Result.success(self.settings)
        return await self.refresh()

    async def refresh(self) -> Result[SiteSettings]:
        self.loading = True
        self.error = None
        try:
            body = await self.api.get("/public/settings")
        except ApiError as exc:
            self.error = exc.backend_message or LOAD_FAILED_MESSAGE
            # 401 and 503 are answered by the session/maintenance handling
            if not exc.notified and exc.status_code not in (401, 503):
                self.notices.error(LOAD_FAILED_MESSAGE, key="settings-load-error", once=True)
            logger.error("settings.load_failed status=%s message=%s", exc.status_code, exc.message)
            return Result.failure(exc.kind, self.error)
        finally:
            self.loading = False

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            self.error = "Invalid data format for settings."
            self.notices.error(LOAD_FAILED_MESSAGE, key="settings-load-error", once=True)
            logger.error("settings.invalid_payload body=%r", body)
            return Result.failure(ErrorKind.SERVER, self.error)

        self.settings = SiteSettings(data)
        self.loaded = True
        logger.info("settings.loaded keys=%d maintenance=%s", len(data), self.settings.maintenance_mode)
        return Result.success(self.settings)

    async def update_setting(self, name: str, value: Any, description: Optional[str] = None) -> Result[SiteSettings]:
        error = validate_setting(name, value)
        if error:
            return Result.failure(ErrorKind.VALIDATION, error, field_errors={name: error})
        payload = {"settingName": name, "settingValue": value}
        if description is not None:
            payload["description"] = description
        try:
            body = await self.api.put("/admin/settings", json=payload)
        except ApiError as exc:
            message = exc.backend_message or f"Failed to update setting '{name}'."
            if not exc.notified:
                self.notices.error(message, key="settings-update-error")
            return Result.failure(exc.kind, message)

        self.settings = self.settings.with_value(name, value)
        message = body.get("message") if isinstance(body, dict) else None
        self.notices.success(message or f"Setting '{name}' updated successfully.", key=f"settings-update-{name}")
        logger.info("settings.updated name=%s", name)
        return Result.success(self.settings, message)
