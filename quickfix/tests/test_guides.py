"""
quickfix/tests/test_guides.py
Guide browsing, premium gating, comments, ratings and admin guide management.
"""

import pytest

from quickfix.core.errors import ErrorKind
from quickfix.core.notices import NoticeLevel
from quickfix.features.guides.service import (
    COMMENTS_DISABLED_MESSAGE,
    GUIDE_MISSING_MESSAGE,
    PREMIUM_CONTENT_MESSAGE,
    RATINGS_DISABLED_MESSAGE,
)

PREMIUM_EMAIL = "meera@example.com"


@pytest.fixture
def catalog(backend):
    phones = backend.add_category("Smartphones")
    laptops = backend.add_category("Laptops")
    backend.add_guide("Fix a flickering phone screen", category=phones)
    backend.add_guide("Replace a phone battery", category=phones)
    backend.add_guide("Clean a laptop fan", category=laptops)
    backend.add_guide("Reball a laptop GPU", category=laptops, is_premium=True)
    return backend


@pytest.mark.asyncio
async def test_list_filters_by_keyword_and_category(app, catalog):
    by_keyword = await app.guides.list_guides(keyword="phone")
    assert [g.title for g in by_keyword.value.guides] == [
        "Fix a flickering phone screen",
        "Replace a phone battery",
    ]

    by_category = await app.guides.list_guides(category="laptops", is_premium=False)
    assert [g.title for g in by_category.value.guides] == ["Clean a laptop fan"]
    assert by_category.value.guides[0].category.slug == "laptops"
    assert app.guides.guides == by_category.value.guides


@pytest.mark.asyncio
async def test_list_paginates(app, catalog):
    first = await app.guides.list_guides(page=1, page_size=3)
    last = await app.guides.list_guides(page=2, page_size=3)

    assert first.value.total == 4
    assert first.value.has_next
    assert len(last.value.guides) == 1
    assert not last.value.has_next
    assert ("GET", "/guides") in catalog.calls


@pytest.mark.asyncio
async def test_list_failure_is_reported(app, backend):
    backend.failures["/guides"] = (400, "Invalid page size")

    result = await app.guides.list_guides(page_size=0)

    assert not result.ok
    assert app.guides.error == "Invalid page size"
    assert app.notices.messages(NoticeLevel.ERROR) == ["Invalid page size"]
    assert not app.guides.loading


@pytest.mark.asyncio
async def test_get_guide_by_slug_includes_content(app, catalog):
    result = await app.guides.get_guide("clean-a-laptop-fan")

    assert result.ok
    assert result.value.content
    assert result.value.category.name == "Laptops"
    assert app.guides.guide is result.value


@pytest.mark.asyncio
async def test_premium_guide_warns_once_for_regular_users(signed_in_app, catalog):
    result = await signed_in_app.guides.get_guide("reball-a-laptop-gpu")

    assert result.error == ErrorKind.FORBIDDEN
    assert signed_in_app.guides.premium_required
    assert signed_in_app.guides.guide is None
    warnings = [n for n in signed_in_app.notices.history if n.level == NoticeLevel.WARNING]
    assert [n.message for n in warnings] == [PREMIUM_CONTENT_MESSAGE]
    assert signed_in_app.notices.messages(NoticeLevel.ERROR) == []


@pytest.mark.asyncio
async def test_premium_guide_opens_for_premium_users(app, catalog):
    catalog.add_user(email=PREMIUM_EMAIL, username="meera", is_premium=True)
    catalog.sign_in(PREMIUM_EMAIL)
    await app.start()

    result = await app.guides.get_guide("reball-a-laptop-gpu")

    assert result.ok
    assert result.value.is_premium
    assert not app.guides.premium_required


@pytest.mark.asyncio
async def test_missing_guide_warns_without_a_generic_error(app, catalog):
    result = await app.guides.get_guide("no-such-guide")

    assert result.error == ErrorKind.NOT_FOUND
    assert app.guides.error == GUIDE_MISSING_MESSAGE
    assert [n.message for n in app.notices.history] == [GUIDE_MISSING_MESSAGE]


@pytest.mark.asyncio
async def test_blank_slug_is_not_requested(app, backend):
    result = await app.guides.get_guide("  ")

    assert result.error == ErrorKind.VALIDATION
    assert not backend.calls


@pytest.mark.asyncio
async def test_categories(app, catalog):
    result = await app.guides.fetch_categories()

    assert [c.slug for c in result.value] == ["smartphones", "laptops"]


@pytest.mark.asyncio
async def test_comment_is_added_to_the_open_guide(signed_in_app, catalog):
    opened = await signed_in_app.guides.get_guide("clean-a-laptop-fan")
    guide_id = opened.value.id

    result = await signed_in_app.guides.add_comment(guide_id, "  Worked on my ThinkPad too.  ")

    assert result.ok
    assert result.value.user.username == "asha"
    assert [c.content for c in signed_in_app.guides.guide.comments] == ["Worked on my ThinkPad too."]
    assert "Comment added successfully!" in signed_in_app.notices.messages(NoticeLevel.SUCCESS)

    comments = await signed_in_app.guides.fetch_comments(guide_id)
    assert [c.content for c in comments.value] == ["Worked on my ThinkPad too."]


@pytest.mark.asyncio
async def test_short_comment_is_rejected_locally(signed_in_app, catalog):
    guide_id = catalog.guides[0]["_id"]

    result = await signed_in_app.guides.add_comment(guide_id, "ok")

    assert result.error == ErrorKind.VALIDATION
    assert result.field_errors == {"content": "Comment must be at least 5 characters."}
    assert catalog.calls_to("/comments") == 0


@pytest.mark.asyncio
async def test_comments_disabled_by_site_settings(app, catalog):
    catalog.settings["enableComments"] = "false"
    catalog.add_user()
    catalog.sign_in("asha@example.com")
    await app.start()

    result = await app.guides.add_comment(catalog.guides[0]["_id"], "Great walkthrough, thanks!")

    assert result.error == ErrorKind.CLIENT
    assert result.message == COMMENTS_DISABLED_MESSAGE
    assert catalog.calls_to("/comments") == 0


@pytest.mark.asyncio
async def test_rating_updates_the_average(signed_in_app, catalog):
    opened = await signed_in_app.guides.get_guide("replace-a-phone-battery")

    result = await signed_in_app.guides.add_rating(opened.value.id, 4)

    assert result.ok
    guide = signed_in_app.guides.guide
    assert guide.average_rating == 4
    assert guide.num_of_reviews == 1
    assert guide.rated_by_user
    assert "Rating added successfully!" in signed_in_app.notices.messages(NoticeLevel.SUCCESS)


@pytest.mark.asyncio
async def test_second_rating_is_refused_by_the_server(signed_in_app, catalog):
    guide_id = catalog.guides[1]["_id"]
    await signed_in_app.guides.add_rating(guide_id, 5)

    result = await signed_in_app.guides.add_rating(guide_id, 2)

    assert result.error == ErrorKind.BAD_REQUEST
    assert signed_in_app.notices.messages(NoticeLevel.ERROR) == [
        "You have already rated this guide. Please update your existing rating instead."
    ]
    assert catalog.guides[1]["averageRating"] == 5


@pytest.mark.asyncio
async def test_rating_out_of_range_or_disabled(app, catalog):
    guide_id = catalog.guides[0]["_id"]

    bad = await app.guides.add_rating(guide_id, 6)
    assert bad.field_errors == {"rating": "Rating must be a whole number from 1 to 5."}

    catalog.settings["enableRatings"] = False
    await app.start()
    disabled = await app.guides.add_rating(guide_id, 3)

    assert disabled.message == RATINGS_DISABLED_MESSAGE
    assert catalog.calls_to("/ratings") == 0


@pytest.mark.asyncio
async def test_admin_creates_and_deletes_a_guide(app, catalog):
    catalog.add_user(role="admin")
    catalog.sign_in("asha@example.com")
    await app.start()
    laptops = catalog.categories[1]["_id"]

    invalid = await app.guides.create_guide({"title": "Fan", "category": laptops})
    assert set(invalid.field_errors) == {"title", "description", "content"}
    assert catalog.calls_to("/guides", "POST") == 0

    created = await app.guides.create_guide({
        "title": "Repaste a laptop CPU",
        "description": "Lower temperatures with fresh thermal paste.",
        "content": "Remove the bottom panel and unscrew the heatsink. " * 2,
        "category": laptops,
        "is_premium": True,
    })
    assert created.ok
    assert created.value.is_premium
    assert created.value.category.id == laptops
    assert "Guide created successfully!" in app.notices.messages(NoticeLevel.SUCCESS)

    await app.guides.list_guides(category="laptops")
    deleted = await app.guides.delete_guide(created.value.id)

    assert deleted.ok
    assert created.value.id not in [g.id for g in app.guides.guides]
    assert all(g["_id"] != created.value.id for g in catalog.guides)


@pytest.mark.asyncio
async def test_update_guide_replaces_the_open_guide(app, catalog):
    opened = await app.guides.get_guide("clean-a-laptop-fan")

    result = await app.guides.update_guide(opened.value.id, {"title": "Clean and oil a laptop fan"})

    assert result.ok
    assert app.guides.guide.title == "Clean and oil a laptop fan"
