"""
HTTP client for the QuickFix backend.

Every service goes through ApiClient so that credentials (the session cookie),
the request timeout and failure reporting live in one place. Failures are
raised as ApiError; for the statuses a user can do nothing about (403, 404,
429, 503, 5xx, network) the client publishes the notice itself and marks the
error ``notified``. 400 and other business 4xx responses are left to the
caller, which renders field-level feedback.

A 401 is an expected outcome for requests flagged ``auth_optional`` (the
initial profile check, login, the admin settings read). Any other 401 means
the session expired: one "Session Expired" notice per session, then a
redirect to the login page after a short delay.

A caller that renders its own feedback for some statuses passes them as
``expected_statuses``; those failures come back un-notified.
"""

import asyncio
import logging
import time
from typing import Any, Collection, Dict, Mapping, Optional

import httpx

from quickfix.core.config import Settings, settings as default_settings
from quickfix.core.errors import ApiError, ConfigurationError
from quickfix.core.logging import latency_bucket_ms, new_request_id, request_id_ctx_var
from quickfix.core.navigation import Navigator
from quickfix.core.notices import NoticeCenter

logger = logging.getLogger("quickfix.api")

NETWORK_ERROR_MESSAGE = "Network Error: Please check your internet connection or try again later."


def _clean_params(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None and v != ""}


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"message": response.text}


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        notices: Optional[NoticeCenter] = None,
        navigator: Optional[Navigator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cfg: Optional[Settings] = None,
    ):
        self.cfg = cfg or default_settings
        self.notices = notices or NoticeCenter()
        self.navigator = navigator or Navigator()
        base = base_url or self.cfg.API_BASE_URL
        if not base:
            raise ConfigurationError("API base URL is not configured (set QUICKFIX_API_BASE_URL)")
        self._http = httpx.AsyncClient(
            base_url=base.rstrip("/"),
            timeout=httpx.Timeout(self.cfg.REQUEST_TIMEOUT_SECONDS),
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._session_expired = False
        self._redirect_handle: Optional[asyncio.TimerHandle] = None

    @property
    def session_expired(self) -> bool:
        return self._session_expired

    @property
    def cookies(self) -> httpx.Cookies:
        return self._http.cookies

    def reset_session_guard(self) -> None:
        """Re-arm session-expiry handling after a successful sign-in."""
        self._session_expired = False
        self.notices.dismiss("unauthorized-error")

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Any = None,
        auth_optional: bool = False,
        expected_statuses: Collection[int] = (),
    ) -> Any:
        method = method.upper()
        rid = new_request_id()
        token = request_id_ctx_var.set(rid)
        started = time.perf_counter()
        try:
            logger.debug("api.request %s %s", method, path, extra={"method": method, "path": path})
            try:
                response = await self._http.request(
                    method,
                    path,
                    json=json,
                    params=_clean_params(params),
                    data=data,
                    files=files,
                    headers={"X-Request-Id": rid},
                )
            except httpx.TransportError as exc:
                raise self._network_failure(method, path, exc, rid) from exc

            latency_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                "api.response %s %s status=%s latency=%s",
                method, path, response.status_code, latency_bucket_ms(latency_ms),
                extra={"method": method, "path": path, "status": response.status_code},
            )
            body = _decode(response)
            if response.is_success:
                return body
            raise self._http_failure(method, path, response.status_code, body, auth_optional, expected_statuses, rid)
        finally:
            request_id_ctx_var.reset(token)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    def _network_failure(self, method: str, path: str, exc: Exception, rid: str) -> ApiError:
        self.notices.dismiss()
        self.notices.error(NETWORK_ERROR_MESSAGE, key="network-error")
        logger.error("api.network_error %s %s: %s", method, path, exc, extra={"method": method, "path": path})
        return ApiError(NETWORK_ERROR_MESSAGE, method=method, path=path, notified=True, request_id=rid)

    def _http_failure(
        self,
        method: str,
        path: str,
        status: int,
        body: Any,
        auth_optional: bool,
        expected_statuses: Collection[int],
        rid: str,
    ) -> ApiError:
        payload = body if isinstance(body, dict) else {"message": str(body)}
        backend_message = payload.get("message")
        extra = {"method": method, "path": path, "status": status}

        def error(message: str, notified: bool) -> ApiError:
            return ApiError(
                message,
                status_code=status,
                method=method,
                path=path,
                payload=payload,
                notified=notified,
                request_id=rid,
            )

        if status == 401:
            if auth_optional:
                logger.debug("api.unauthorized_expected %s %s", method, path, extra=extra)
                return error(backend_message or "Not authenticated.", notified=False)
            return self._session_expired_failure(method, path, payload, rid)

        if status in expected_statuses:
            logger.info("api.expected_status %s %s status=%s", method, path, status, extra=extra)
            return error(backend_message or f"Request failed with status {status}.", notified=False)

        if status == 400 or (400 <= status < 500 and status not in (403, 404, 429)):
            logger.warning("api.business_error %s %s status=%s message=%s", method, path, status, backend_message, extra=extra)
            return error(backend_message or f"Request failed with status {status}.", notified=False)

        self.notices.dismiss()
        if status == 403:
            message = f"Forbidden: {backend_message or 'You do not have permission to perform this action.'}"
            self.notices.error(message, key="forbidden-error", auto_close=3.0)
            logger.error("api.forbidden %s %s", method, path, extra=extra)
        elif status == 404:
            message = f"Not Found: {backend_message or 'The requested resource could not be found.'}"
            self.notices.error(message, key="notfound-error", auto_close=3.0)
            logger.error("api.not_found %s %s", method, path, extra=extra)
        elif status == 429:
            message = f"Too Many Requests: {backend_message or 'Please try again later.'}"
            self.notices.warning(message, key="rate-limit-error", auto_close=5.0)
            logger.warning("api.rate_limited %s %s", method, path, extra=extra)
        elif status == 503:
            message = f"Maintenance: {backend_message or 'Website is under maintenance. Please try again later.'}"
            self.notices.warning(message, key="maintenance-error", auto_close=None)
            logger.warning("api.maintenance %s %s", method, path, extra=extra)
        else:
            message = f"Server Error ({status}): {backend_message or 'An internal server error occurred. Please try again later.'}"
            self.notices.error(message, key="server-error", auto_close=5.0)
            logger.error("api.server_error %s %s", method, path, extra=extra)
        return error(message, notified=True)

    def _session_expired_failure(self, method: str, path: str, payload: Dict[str, Any], rid: str) -> ApiError:
        extra = {"method": method, "path": path, "status": 401}
        message = f"Session Expired: {payload.get('message') or 'Please log in again.'}"
        if self._session_expired:
            logger.error("api.unauthorized_repeat %s %s", method, path, extra=extra)
        else:
            self._session_expired = True
            self.notices.error(message, key="unauthorized-error", auto_close=3.0)
            logger.error("api.session_expired %s %s", method, path, extra=extra)
            self._schedule_login_redirect()
        return ApiError(
            message,
            status_code=401,
            method=method,
            path=path,
            payload=payload,
            notified=True,
            request_id=rid,
        )

    def _schedule_login_redirect(self) -> None:
        login_path = self.cfg.LOGIN_PATH
        if self.navigator.current_path == login_path:
            return
        loop = asyncio.get_running_loop()
        self._redirect_handle = loop.call_later(
            self.cfg.SESSION_REDIRECT_DELAY_SECONDS,
            self._redirect_to_login,
        )

    def _redirect_to_login(self) -> None:
        self._redirect_handle = None
        if self.navigator.current_path != self.cfg.LOGIN_PATH:
            self.navigator.navigate(self.cfg.LOGIN_PATH, replace=True)

    async def aclose(self) -> None:
        if self._redirect_handle is not None:
            self._redirect_handle.cancel()
            self._redirect_handle = None
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
