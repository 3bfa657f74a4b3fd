"""
quickfix/app.py

Composition root: one QuickFixApp per signed-in (or anonymous) session.

Wires the API client, notice center and navigator into every service so the
services share one cookie jar and one feedback channel. Use as an async
context manager:

    async with QuickFixApp() as app:
        await app.start()
        flow = app.subscription_flow()
        await flow.load()
"""

import logging
import random
from typing import Optional

import httpx

from quickfix.api.client import ApiClient
from quickfix.core.config import Settings, settings as default_settings
from quickfix.core.logging import log_event
from quickfix.core.navigation import Navigator
from quickfix.core.notices import NoticeCenter
from quickfix.features.admin.service import AdminService
from quickfix.features.auth.service import AuthService
from quickfix.features.contact.service import ContactService
from quickfix.features.guides.service import GuideService
from quickfix.features.notifications.service import NotificationService
from quickfix.features.premium.flow import SubscriptionFlow
from quickfix.features.premium.service import PremiumService
from quickfix.features.settings.service import SettingsService
from quickfix.routing.guards import RouteDecision, apply_decision, decide_route

logger = logging.getLogger("quickfix")


class QuickFixApp:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        cfg: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        initial_path: str = "/",
    ):
        self.cfg = cfg or default_settings
        self.notices = NoticeCenter()
        self.navigator = Navigator(initial_path)
        self.api = ApiClient(
            base_url,
            notices=self.notices,
            navigator=self.navigator,
            transport=transport,
            cfg=self.cfg,
        )
        self.settings = SettingsService(self.api, self.notices)
        self.auth = AuthService(self.api, self.notices, self.navigator, self.settings.settings)
        self.notifications = NotificationService(self.api, self.notices, self.auth)
        self.premium = PremiumService(self.api)
        self.contact = ContactService(self.api, self.notices)
        self.guides = GuideService(self.api, self.notices, self.settings)
        self.admin = AdminService(self.api, self.notices)

    async def start(self) -> None:
        """Initial load: settings, then the session, then the notification feed."""
        await self.settings.fetch()
        self.auth.site_settings = self.settings.settings
        await self.auth.check_user_status()
        await self.auth.enforce_maintenance(self.settings.settings)
        await self.notifications.fetch_announcements()
        await self.notifications.fetch_notifications()
        log_event(
            "info",
            "session.started",
            user_id=self.auth.user.id if self.auth.user else None,
            event_type="session_started",
            extra={"maintenance": self.settings.settings.maintenance_mode},
        )

    def subscription_flow(self, rng: Optional[random.Random] = None) -> SubscriptionFlow:
        return SubscriptionFlow(self.premium, self.auth, self.settings, self.notices, cfg=self.cfg, rng=rng)

    def visit(self, path: str) -> RouteDecision:
        """Decide access to ``path``; redirects are followed on the navigator."""
        decision = decide_route(
            path,
            self.auth.user,
            self.auth.loading,
            self.settings.settings,
            self.settings.loading,
        )
        logger.debug("route.decision path=%s outcome=%s", path, decision.outcome.value)
        if decision.allowed:
            self.navigator.navigate(path)
        apply_decision(decision, self.navigator, self.notices)
        return decision

    async def aclose(self) -> None:
        self.notifications.close()
        self.guides.close()
        await self.api.aclose()

    async def __aenter__(self) -> "QuickFixApp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
