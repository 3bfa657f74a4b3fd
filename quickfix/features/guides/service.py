"""
quickfix/features/guides/service.py

Repair guides: the browsing side of the site.

- list_guides(): one page of /guides, filtered by keyword, category slug and premium flag
- get_guide(): a full guide by slug; premium guides answer 403 to non-premium users
- fetch_categories() / fetch_comments()
- add_comment() / add_rating(): gated by the enableComments / enableRatings settings
- create_guide / update_guide / delete_guide for admins

A 403 or 404 on a guide lookup gets a guide-specific warning from this service
instead of the client's generic notice.
"""

import logging
from typing import Any, Dict, List, Optional

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError, BusyError, ErrorKind, LifetimeClosed, Result, ValidationError
from quickfix.core.lifetime import InFlight, Lifetime
from quickfix.core.notices import NoticeCenter
from quickfix.core.validation import raise_for_errors, validate_comment, validate_length, validate_rating
from quickfix.features.settings.service import SettingsService
from quickfix.models.guide import Category, Comment, Guide, GuidePage

logger = logging.getLogger(__name__)

PREMIUM_CONTENT_MESSAGE = "This is premium content. Please log in or upgrade to access."
GUIDE_MISSING_MESSAGE = "The guide you are looking for does not exist or has been removed."
COMMENTS_DISABLED_MESSAGE = "Commenting is currently disabled by the administrator."
RATINGS_DISABLED_MESSAGE = "Rating feature is currently disabled by the administrator."


def _message(body: Any) -> Optional[str]:
    return body.get("message") if isinstance(body, dict) else None


def _data(body: Any) -> Any:
    return body.get("data") if isinstance(body, dict) else None


def _guide_payload(fields: Dict[str, Any]) -> Dict[str, Any]:
    names = {
        "title": "title",
        "description": "description",
        "content": "content",
        "category": "category",
        "is_premium": "isPremium",
        "image_url": "imageUrl",
    }
    return {names[k]: v for k, v in fields.items() if k in names}


class GuideService:
    def __init__(self, api: ApiClient, notices: NoticeCenter, site: SettingsService):
        self.api = api
        self.notices = notices
        self.site = site
        self.in_flight = InFlight()
        self.lifetime = Lifetime("guides")

        self.page = GuidePage()
        self.guide: Optional[Guide] = None
        self.categories: List[Category] = []
        self.premium_required = False
        self.loading = False
        self.error: Optional[str] = None

    @property
    def guides(self) -> List[Guide]:
        return self.page.guides

    def _failed(self, exc: ApiError, default: str, key: str) -> Result:
        message = exc.backend_message or default
        self.error = message
        if not exc.notified:
            self.notices.error(message, key=key)
        logger.error("guides.failure key=%s status=%s message=%s", key, exc.status_code, message)
        return Result.failure(exc.kind, message)

    # -- browsing --

    async def list_guides(
        self,
        keyword: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
        is_premium: Optional[bool] = None,
    ) -> Result[GuidePage]:
        params = {
            "keyword": keyword,
            "category": category,
            "pageNumber": page,
            "pageSize": page_size,
            "isPremium": None if is_premium is None else ("true" if is_premium else "false"),
        }
        self.loading = True
        self.error = None
        try:
            body = await self.lifetime.run(self.api.get("/guides", params=params))
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to fetch guides.", "guides-load-error")
        finally:
            self.loading = False
        self.page = GuidePage.model_validate(body if isinstance(body, dict) else {})
        logger.info("guides.listed page=%s total=%s", self.page.page, self.page.total)
        return Result.success(self.page)

    async def get_guide(self, slug: str) -> Result[Guide]:
        slug = (slug or "").strip()
        if not slug:
            return Result.failure(ErrorKind.VALIDATION, "A guide slug is required.")
        self.loading = True
        self.error = None
        self.guide = None
        self.premium_required = False
        try:
            body = await self.lifetime.run(self.api.get(f"/guides/{slug}", expected_statuses=(403, 404)))
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            if exc.status_code == 403:
                self.premium_required = True
                self.error = exc.backend_message or PREMIUM_CONTENT_MESSAGE
                self.notices.warning(PREMIUM_CONTENT_MESSAGE, key="guide-premium-required")
                logger.info("guides.premium_required slug=%s", slug)
                return Result.failure(exc.kind, self.error)
            if exc.status_code == 404:
                self.error = GUIDE_MISSING_MESSAGE
                self.notices.warning(GUIDE_MISSING_MESSAGE, key="guide-not-found")
                logger.info("guides.not_found slug=%s", slug)
                return Result.failure(exc.kind, self.error)
            return self._failed(exc, "Failed to fetch guide.", "guide-load-error")
        finally:
            self.loading = False
        self.guide = Guide.model_validate(_data(body) or {})
        return Result.success(self.guide)

    async def fetch_categories(self) -> Result[List[Category]]:
        try:
            body = await self.lifetime.run(self.api.get("/categories"))
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to load categories.", "categories-load-error")
        self.categories = [Category.model_validate(c) for c in _data(body) or []]
        return Result.success(self.categories)

    async def fetch_comments(self, guide_id: str) -> Result[List[Comment]]:
        try:
            body = await self.lifetime.run(self.api.get(f"/comments/guide/{guide_id}"))
        except LifetimeClosed as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to load comments.", "comments-load-error")
        comments = [Comment.model_validate(c) for c in _data(body) or []]
        if self.guide is not None and self.guide.id == guide_id:
            self.guide = self.guide.model_copy(update={"comments": comments})
        return Result.success(comments)

    # -- feedback --

    async def add_comment(self, guide_id: str, content: str) -> Result[Comment]:
        if not self.site.settings.enable_comments:
            self.notices.error(COMMENTS_DISABLED_MESSAGE, key="comments-disabled")
            return Result.failure(ErrorKind.CLIENT, COMMENTS_DISABLED_MESSAGE)
        error = validate_comment(content)
        if error:
            return Result.failure(ErrorKind.VALIDATION, error, field_errors={"content": error})
        try:
            async with self.in_flight.hold(f"comment:{guide_id}", "Your comment is already being posted."):
                body = await self.api.post("/comments", json={"guide": guide_id, "content": content.strip()})
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to add comment.", "comment-add-error")
        comment = Comment.model_validate(_data(body) or {})
        if self.guide is not None and self.guide.id == guide_id:
            self.guide = self.guide.with_comment(comment)
        self.notices.success("Comment added successfully!", key="comment-added")
        return Result.success(comment)

    async def add_rating(self, guide_id: str, rating: int) -> Result[Guide]:
        if not self.site.settings.enable_ratings:
            self.notices.error(RATINGS_DISABLED_MESSAGE, key="ratings-disabled")
            return Result.failure(ErrorKind.CLIENT, RATINGS_DISABLED_MESSAGE)
        error = validate_rating(rating)
        if error:
            return Result.failure(ErrorKind.VALIDATION, error, field_errors={"rating": error})
        try:
            async with self.in_flight.hold(f"rating:{guide_id}", "Your rating is already being saved."):
                body = await self.api.post("/ratings", json={"guide": guide_id, "rating": rating})
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to add rating.", "rating-add-error")
        if self.guide is not None and self.guide.id == guide_id:
            summary = _data(body) or {}
            if "averageRating" in summary and "numOfReviews" in summary:
                self.guide = self.guide.model_copy(update={
                    "average_rating": summary["averageRating"],
                    "num_of_reviews": summary["numOfReviews"],
                    "user_rating": rating,
                })
            else:
                self.guide = self.guide.with_rating(rating)
        self.notices.success(_message(body) or "Rating added successfully!", key="rating-added")
        return Result.success(self.guide)

    # -- admin --

    async def create_guide(self, fields: Dict[str, Any]) -> Result[Guide]:
        try:
            raise_for_errors({
                "title": validate_length(fields.get("title"), "Title", 5, 100),
                "description": validate_length(fields.get("description"), "Description", 10, 500),
                "content": validate_length(fields.get("content"), "Content", 50),
                "category": None if fields.get("category") else "Category is required.",
            })
        except ValidationError as exc:
            return Result.from_error(exc)
        try:
            async with self.in_flight.hold("create", "The guide is already being created."):
                body = await self.api.post("/guides", json=_guide_payload(fields))
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to create guide.", "guide-create-error")
        guide = Guide.model_validate(_data(body) or {})
        self.notices.success("Guide created successfully!", key="guide-created")
        logger.info("guides.created id=%s slug=%s", guide.id, guide.slug)
        return Result.success(guide)

    async def update_guide(self, guide_id: str, changes: Dict[str, Any]) -> Result[Guide]:
        try:
            async with self.in_flight.hold(f"update:{guide_id}"):
                body = await self.api.put(f"/guides/{guide_id}", json=_guide_payload(changes))
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to update guide.", "guide-update-error")
        guide = Guide.model_validate(_data(body) or {})
        if self.guide is not None and self.guide.id == guide_id:
            self.guide = guide
        self.notices.success("Guide updated successfully!", key=f"guide-updated-{guide_id}")
        return Result.success(guide)

    async def delete_guide(self, guide_id: str) -> Result[None]:
        try:
            async with self.in_flight.hold(f"delete:{guide_id}"):
                body = await self.api.delete(f"/guides/{guide_id}")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to delete guide.", "guide-delete-error")
        remaining = [g for g in self.page.guides if g.id != guide_id]
        self.page = self.page.model_copy(update={"guides": remaining})
        self.notices.success("Guide deleted successfully!", key=f"guide-deleted-{guide_id}")
        return Result.success(message=_message(body))

    def close(self) -> None:
        self.lifetime.close()
