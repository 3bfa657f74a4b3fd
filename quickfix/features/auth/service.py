"""
quickfix/features/auth/service.py

Session-scoped authentication state.

- check_user_status(): re-validate the server session cookie
- login / register / logout
- profile update, email verification, password reset, newsletter toggle
- enforce_maintenance(): sign non-admins out while the site is in maintenance

The signed-in user lives in memory only; nothing is persisted on the client.
Every operation returns a Result. Expected business failures (bad credentials,
duplicate email, unverified email) are reported here exactly once; failures the
API client already reported are passed through without another notice.
"""

import logging
from typing import Any, Dict, Optional

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError, BusyError, ErrorKind, Result, ValidationError
from quickfix.core.lifetime import InFlight
from quickfix.core.navigation import Navigator
from quickfix.core.notices import NoticeCenter
from quickfix.core.validation import (
    raise_for_errors,
    validate_confirm_password,
    validate_email,
    validate_password,
    validate_username,
)
from quickfix.models.settings import SiteSettings
from quickfix.models.user import User, UserRole

logger = logging.getLogger(__name__)

HOME_PATH = "/"
PROFILE_PATH = "/profile"
UNVERIFIED_MARKER = "email address is not verified"


def _user_from(body: Any) -> User:
    payload = body.get("data") if isinstance(body, dict) and isinstance(body.get("data"), dict) else body
    return User.model_validate(payload)


def _message(body: Any) -> Optional[str]:
    return body.get("message") if isinstance(body, dict) else None


class AuthService:
    def __init__(
        self,
        api: ApiClient,
        notices: NoticeCenter,
        navigator: Navigator,
        site_settings: Optional[SiteSettings] = None,
    ):
        self.api = api
        self.notices = notices
        self.navigator = navigator
        self.site_settings = site_settings or SiteSettings()
        self.user: Optional[User] = None
        self.loading = True
        self.in_flight = InFlight()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _report(self, exc: ApiError, default: str, key: str) -> Result:
        """Turn an API failure into a Result, notifying only if nobody has yet."""
        message = exc.backend_message or default
        if not exc.notified:
            self.notices.error(message, key=key)
        logger.error("auth.failure key=%s status=%s message=%s", key, exc.status_code, message)
        return Result.failure(exc.kind, message)

    async def check_user_status(self) -> Result[User]:
        try:
            body = await self.api.get("/auth/profile", auth_optional=True)
            self.user = _user_from(body)
            logger.info("auth.session_valid user=%s", self.user.username)
            return Result.success(self.user)
        except ApiError as exc:
            self.user = None
            if exc.status_code == 401:
                logger.debug("auth.no_session")
            else:
                logger.error("auth.session_check_failed status=%s message=%s", exc.status_code, exc.message)
            return Result.from_error(exc)
        finally:
            self.loading = False

    async def login(self, email: str, password: str) -> Result[User]:
        if not self.site_settings.allow_login:
            message = "Login is currently disabled. Please try again later."
            self.notices.warning(message, key="login-disabled")
            return Result.failure(ErrorKind.CLIENT, message)
        try:
            async with self.in_flight.hold("login"):
                body = await self.api.post(
                    "/auth/login",
                    json={"email": email, "password": password},
                    auth_optional=True,
                )
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            message = exc.backend_message or "Login failed. Please check your credentials."
            if UNVERIFIED_MARKER in message:
                if not exc.notified:
                    self.notices.info(message, key="login-email-unverified", auto_close=None)
                return Result.failure(exc.kind, message, needs_verification=True)
            return self._report(exc, "Login failed. Please check your credentials.", "login-error")

        self.user = _user_from(body)
        self.api.reset_session_guard()
        if self.user.email_verified or not self.site_settings.email_verification_enabled:
            self.notices.success(f"Welcome back, {self.user.username}!", key="login-success")
            self.navigator.navigate(PROFILE_PATH, replace=True)
        else:
            self.notices.info(
                f"Welcome back, {self.user.username}! Your email is not verified. "
                "Check your profile for verification status and options.",
                key="login-unverified",
                auto_close=None,
            )
            self.navigator.navigate(PROFILE_PATH, replace=True)
        logger.info("auth.login user=%s", self.user.username)
        return Result.success(self.user, _message(body))

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        newsletter_subscriber: bool = False,
    ) -> Result[User]:
        try:
            raise_for_errors({
                "username": validate_username(username),
                "email": validate_email(email),
                "password": validate_password(password),
                "confirmPassword": validate_confirm_password(password, confirm_password),
            })
        except ValidationError as exc:
            return Result.from_error(exc)

        if not self.site_settings.allow_registration:
            message = "Registration is currently disabled."
            self.notices.warning(message, key="register-disabled")
            return Result.failure(ErrorKind.CLIENT, message)

        try:
            async with self.in_flight.hold("register"):
                body = await self.api.post(
                    "/auth/register",
                    json={
                        "username": username,
                        "email": email,
                        "password": password,
                        "confirmPassword": confirm_password,
                        "newsletterSubscriber": newsletter_subscriber,
                    },
                )
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._report(exc, "Registration failed. Please try again.", "register-error")

        self.user = _user_from(body)
        self.api.reset_session_guard()
        if self.site_settings.email_verification_enabled:
            self.notices.success(
                f"Welcome, {self.user.username}! Your account has been created. Please check your email "
                f"({email}) for a verification link to unlock full features.",
                key="register-success-verify",
                auto_close=None,
            )
        else:
            self.notices.success(f"Registration successful! Welcome, {username}!", key="register-success-direct")
        self.navigator.navigate(PROFILE_PATH, replace=True)
        logger.info("auth.registered user=%s", self.user.username)
        return Result.success(self.user, _message(body))

    async def logout(self, silent: bool = False) -> Result[None]:
        try:
            body = await self.api.get("/auth/logout")
        except ApiError as exc:
            message = exc.backend_message or "Logout failed."
            if not silent and not exc.notified:
                self.notices.error(message, key="logout-error")
            logger.error("auth.logout_failed message=%s", message)
            return Result.failure(exc.kind, message)

        self.user = None
        self.notices.dismiss("login-success")
        if not silent:
            self.notices.success(_message(body) or "Logged out successfully!", key="logout-success")
            self.navigator.navigate(HOME_PATH, replace=True)
        logger.info("auth.logout silent=%s", silent)
        return Result.success(message=_message(body))

    async def update_profile(self, changes: Dict[str, Any]) -> Result[User]:
        try:
            async with self.in_flight.hold("profile"):
                body = await self.api.put("/auth/profile", json=changes)
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._report(exc, "Failed to update profile.", "profile-update-error")

        self.user = _user_from(body)
        self.notices.success(_message(body) or "Profile updated successfully!", key="profile-update-success")
        return Result.success(self.user, _message(body))

    async def verify_email(self, token: str) -> Result[User]:
        self.loading = True
        try:
            body = await self.api.get(f"/auth/verify-email/{token}")
        except ApiError as exc:
            return self._report(
                exc,
                "Email verification failed. The link might be invalid or expired.",
                "email-verify-error",
            )
        finally:
            self.loading = False

        self.user = _user_from(body)
        self.api.reset_session_guard()
        self.notices.success(
            _message(body) or "Email verified successfully! You are now logged in.",
            key="email-verify-success",
        )
        self.navigator.navigate(PROFILE_PATH, replace=True)
        return Result.success(self.user, _message(body))

    async def resend_verification_link(self, email: str) -> Result[None]:
        error = validate_email(email)
        if error:
            return Result.failure(ErrorKind.VALIDATION, error, field_errors={"email": error})
        try:
            async with self.in_flight.hold("resend-verification"):
                body = await self.api.post("/auth/resend-verification-link", json={"email": email})
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._report(
                exc,
                "Failed to resend verification link. Please try again.",
                "resend-link-error",
            )
        message = _message(body) or "New verification link sent to your email. Please check your inbox."
        self.notices.info(message, key="resend-link-success")
        return Result.success(message=message)

    async def forgot_password(self, email: str) -> Result[None]:
        error = validate_email(email)
        if error:
            return Result.failure(ErrorKind.VALIDATION, error, field_errors={"email": error})
        try:
            async with self.in_flight.hold("forgot-password"):
                body = await self.api.post("/auth/forgotpassword", json={"email": email})
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._report(exc, "Password reset request failed.", "forgot-password-error")
        message = _message(body) or "Password reset email sent. Check your inbox."
        self.notices.info(message, key="forgot-password-success")
        return Result.success(message=message)

    async def reset_password(self, token: str, password: str, confirm_password: str) -> Result[None]:
        try:
            raise_for_errors({
                "password": validate_password(password),
                "confirmPassword": validate_confirm_password(password, confirm_password),
            })
        except ValidationError as exc:
            return Result.from_error(exc)
        try:
            async with self.in_flight.hold("reset-password"):
                body = await self.api.put(
                    f"/auth/resetpassword/{token}",
                    json={"password": password, "confirmPassword": confirm_password},
                )
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._report(exc, "Password reset failed.", "reset-password-error")

        await self.check_user_status()
        if self.user is not None:
            self.api.reset_session_guard()
        message = _message(body) or "Password has been reset and you are logged in!"
        self.notices.success(message, key="reset-password-success")
        return Result.success(message=message)

    async def toggle_newsletter(self) -> Result[bool]:
        if self.user is None:
            return Result.failure(ErrorKind.VALIDATION, "You need to log in to manage newsletter preferences.")
        try:
            async with self.in_flight.hold("newsletter"):
                body = await self.api.put("/auth/toggle-newsletter")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._report(exc, "Failed to toggle newsletter subscription.", "newsletter-toggle-error")

        subscribed = not self.user.newsletter_subscriber
        self.user = self.user.model_copy(update={"newsletter_subscriber": subscribed})
        if _message(body):
            self.notices.success(_message(body), key="newsletter-toggle-success")
        return Result.success(subscribed, _message(body))

    async def enforce_maintenance(self, site_settings: Optional[SiteSettings] = None) -> bool:
        """Sign a non-admin out while maintenance mode is on. Returns True if it did."""
        if site_settings is not None:
            self.site_settings = site_settings
        if not self.site_settings.maintenance_mode or self.user is None:
            return False
        if self.user.role == UserRole.ADMIN:
            return False
        self.notices.warning(
            self.site_settings.global_announcement
            or "Website is currently under maintenance. You have been logged out.",
            key="maintenance-logout",
            auto_close=None,
        )
        result = await self.logout(silent=True)
        if not result.ok:
            # the server may refuse everything during maintenance; drop the local session anyway
            self.user = None
        return True
