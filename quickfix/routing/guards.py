"""
quickfix/routing/guards.py

Route table and access decisions.

decide_route() is pure: given the route, the session user and the site
settings it says what a front end should do (render, wait, show the
maintenance page, redirect, or 404). apply_decision() performs the side
effects of a redirect (notice + navigation).

Rules:
- Nothing is decided while auth or settings are still loading.
- In maintenance mode, routes flagged hide_during_maintenance show the
  maintenance page; admins bypass maintenance entirely.
- Protected routes redirect anonymous users to /login (remembering where they
  came from) and users with the wrong role to /.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from quickfix.core.navigation import Navigator
from quickfix.core.notices import NoticeCenter
from quickfix.models.settings import SiteSettings
from quickfix.models.user import User, UserRole

LOGIN_REQUIRED_MESSAGE = "You need to log in to access this page."
PERMISSION_DENIED_MESSAGE = "You do not have permission to view this page."


class RouteOutcome(str, Enum):
    RENDER = "render"
    LOADING = "loading"
    MAINTENANCE = "maintenance"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Route:
    path: str
    name: str
    # None means public
    allowed_roles: Optional[Tuple[UserRole, ...]] = None
    hide_during_maintenance: bool = False

    @property
    def protected(self) -> bool:
        return self.allowed_roles is not None

    def matches(self, path: str) -> bool:
        return _compile(self.path).match(path.split("?", 1)[0].rstrip("/") or "/") is not None


@dataclass(frozen=True)
class RouteDecision:
    outcome: RouteOutcome
    route: Optional[Route] = None
    redirect_to: Optional[str] = None
    from_path: Optional[str] = None
    notice: Optional[str] = None
    notice_key: Optional[str] = None
    notice_is_error: bool = False

    @property
    def allowed(self) -> bool:
        return self.outcome == RouteOutcome.RENDER


def _compile(pattern: str) -> "re.Pattern[str]":
    if pattern.endswith("/*"):
        base = re.sub(r":[A-Za-z_]+", r"[^/]+", pattern[:-2])
        return re.compile(f"^{base}(/.*)?$")
    return re.compile("^" + re.sub(r":[A-Za-z_]+", r"[^/]+", pattern) + "$")


SIGNED_IN = (UserRole.USER, UserRole.ADMIN)
ADMIN_ONLY = (UserRole.ADMIN,)

ROUTES = (
    Route("/", "home"),
    Route("/about", "about"),
    Route("/contact", "contact"),
    Route("/guides", "guides"),
    Route("/guides/:slug", "guide"),
    Route("/privacy-policy", "privacy-policy"),
    Route("/cookie-policy", "cookie-policy"),
    Route("/search-results", "search-results"),
    Route("/premium", "premium"),
    Route("/login", "login", hide_during_maintenance=True),
    Route("/register", "register", hide_during_maintenance=True),
    Route("/verify-email", "verify-email", hide_during_maintenance=True),
    Route("/verify-email/:token", "verify-email-token", hide_during_maintenance=True),
    Route("/forgotpassword", "forgot-password", hide_during_maintenance=True),
    Route("/resetpassword/:resettoken", "reset-password", hide_during_maintenance=True),
    Route("/profile", "profile", allowed_roles=SIGNED_IN),
    Route("/notifications", "notifications", allowed_roles=SIGNED_IN),
    Route("/admin-dashboard/*", "admin-dashboard", allowed_roles=ADMIN_ONLY),
)


def resolve(path: str) -> Optional[Route]:
    for route in ROUTES:
        if route.matches(path):
            return route
    return None


def decide_route(
    path: str,
    user: Optional[User],
    auth_loading: bool,
    site_settings: Optional[SiteSettings] = None,
    settings_loading: bool = False,
) -> RouteDecision:
    route = resolve(path)
    if route is None:
        return RouteDecision(RouteOutcome.NOT_FOUND)
    if auth_loading or settings_loading:
        return RouteDecision(RouteOutcome.LOADING, route)

    if route.protected:
        if user is None:
            return RouteDecision(
                RouteOutcome.REDIRECT,
                route,
                redirect_to="/login",
                from_path=path,
                notice=LOGIN_REQUIRED_MESSAGE,
                notice_key="login-required",
            )
        if user.role not in route.allowed_roles:
            return RouteDecision(
                RouteOutcome.REDIRECT,
                route,
                redirect_to="/",
                notice=PERMISSION_DENIED_MESSAGE,
                notice_key="permission-denied",
                notice_is_error=True,
            )
        return RouteDecision(RouteOutcome.RENDER, route)

    site = site_settings or SiteSettings()
    if site.maintenance_mode and route.hide_during_maintenance:
        if user is not None and user.is_admin:
            return RouteDecision(RouteOutcome.RENDER, route)
        return RouteDecision(RouteOutcome.MAINTENANCE, route)
    return RouteDecision(RouteOutcome.RENDER, route)


def apply_decision(decision: RouteDecision, navigator: Navigator, notices: NoticeCenter) -> None:
    if decision.outcome != RouteOutcome.REDIRECT:
        return
    if decision.notice:
        publish = notices.error if decision.notice_is_error else notices.info
        publish(decision.notice, key=decision.notice_key, auto_close=2.0)
    navigator.navigate(decision.redirect_to, replace=True, from_path=decision.from_path)


def maintenance_message(site_settings: SiteSettings) -> str:
    message = "Website Under Maintenance. We're performing some essential updates. We'll be back shortly!"
    if site_settings.contact_email:
        message += f" For urgent inquiries, please contact us at {site_settings.contact_email}."
    return message
