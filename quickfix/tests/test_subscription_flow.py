"""
quickfix/tests/test_subscription_flow.py
Premium page flow end to end against the in-process fake backend.
"""

import asyncio
import random
from unittest.mock import AsyncMock, Mock

import pytest

from quickfix.core.errors import ErrorKind
from quickfix.core.notices import NoticeCenter, NoticeLevel
from quickfix.features.premium.flow import (
    NO_SUBSCRIPTION_FOR_SCREENSHOT,
    PLAN_REQUIRED,
    TRANSACTION_ID_REQUIRED,
    SubscriptionFlow,
)
from quickfix.features.premium.reference import is_valid_reference_code
from quickfix.features.premium.screenshot import ScreenshotFile
from quickfix.models.settings import SiteSettings
from quickfix.models.subscription import Plan, PlanCatalog, Subscription, SubscriptionStatus
from quickfix.models.user import User

CONFIRM = "/premium/confirm-manual-payment"
STATUS = "/premium/status"
UPLOAD = "/premium/upload-screenshot"


async def wait_for_call(backend, path: str) -> None:
    for _ in range(200):
        if backend.calls_to(path):
            return
        await asyncio.sleep(0.005)
    raise AssertionError(f"no request reached {path}")


def png(name: str = "payment.png") -> ScreenshotFile:
    return ScreenshotFile(name, b"\x89PNG\r\n\x1a\n" + b"\0" * 64, "image/png")


@pytest.mark.asyncio
async def test_anonymous_visitor_sees_plans_without_status_call(app, backend, rng):
    await app.start()
    flow = app.subscription_flow(rng)

    result = await flow.load()

    assert result.ok and result.value is None
    assert flow.requires_login
    assert [p.name for p in flow.plans] == ["basic", "advanced", "pro"]
    assert backend.calls_to(STATUS) == 0
    assert flow.reference_code == ""


@pytest.mark.asyncio
async def test_pending_subscription_prepopulates_plan_and_reference(signed_in_app, backend, rng):
    backend.set_subscription("pending_manual_verification", plan="advanced")
    flow = signed_in_app.subscription_flow(rng)

    await flow.load()

    assert flow.selected_plan.name == "advanced"
    assert flow.reference_code == "654321"
    assert flow.transaction_id == "UTR-SERVER-1"
    assert flow.resubmit_form_visible
    assert not flow.payment_section_visible


@pytest.mark.asyncio
async def test_pending_reference_is_kept_when_the_plan_catalog_fails(signed_in_app, backend, rng):
    backend.set_subscription("pending_manual_verification", plan="advanced", referenceCode="482913")
    backend.failures["/premium/features"] = (500, "catalog offline")
    flow = signed_in_app.subscription_flow(rng)

    await flow.load()

    assert flow.plans_error == "catalog offline"
    assert flow.selected_plan is None
    assert flow.reference_code == "482913"
    assert flow.transaction_id == "UTR-SERVER-1"


@pytest.mark.asyncio
async def test_pending_reference_is_kept_for_a_plan_outside_the_catalog(signed_in_app, backend, rng):
    backend.set_subscription("pending_manual_verification", plan="UPI_Premium_Annual", referenceCode="731204")
    flow = signed_in_app.subscription_flow(rng)

    await flow.load()

    assert flow.selected_plan is None
    assert flow.reference_code == "731204"


@pytest.mark.asyncio
async def test_switching_plans_issues_new_code_and_switching_back_restores_server_values(
    signed_in_app, backend, rng
):
    backend.set_subscription("pending_manual_verification", plan="advanced")
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    assert flow.select_plan("basic").ok
    assert flow.reference_code != "654321"
    assert is_valid_reference_code(flow.reference_code)
    assert flow.transaction_id == ""
    assert flow.payment_section_visible

    flow.select_plan("advanced")
    assert flow.reference_code == "654321"
    assert flow.transaction_id == "UTR-SERVER-1"


@pytest.mark.asyncio
async def test_reading_properties_never_regenerates_the_code(signed_in_app, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("pro")
    code = flow.reference_code

    for _ in range(3):
        _ = flow.upi_link, flow.cards, flow.qr_payload, flow.payment_section_visible

    assert flow.reference_code == code


@pytest.mark.asyncio
async def test_failed_payment_resubmitted_on_advanced_plan(signed_in_app, backend, rng):
    backend.set_subscription("failed", plan="advanced")
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    flow.select_plan("advanced")
    code = flow.reference_code
    assert code != "654321"
    assert "am=299" in flow.upi_link
    assert f"tr={code}" in flow.upi_link
    assert "pa=quickfix%40upi" in flow.upi_link

    flow.set_transaction_id("UTR123456")
    result = await flow.submit_confirmation()

    assert result.ok
    assert flow.subscription.status == SubscriptionStatus.PENDING_MANUAL_VERIFICATION
    assert flow.subscription.reference_code == code
    assert flow.subscription.transaction_id == "UTR123456"
    assert flow.reference_code == code
    assert flow.transaction_id == ""
    assert "Payment confirmation submitted." in signed_in_app.notices.messages()
    # once at start-up, once after the confirmation
    assert backend.calls_to("/auth/profile") == 2


@pytest.mark.asyncio
async def test_confirmation_without_subscription_in_reply_refetches_status(signed_in_app, backend, rng):
    backend.confirm_returns_subscription = False
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("basic")
    flow.set_transaction_id("UTR777")

    result = await flow.submit_confirmation()

    assert result.ok
    assert flow.subscription.plan == "basic"
    assert flow.subscription.is_pending
    assert backend.calls_to(STATUS) == 2


@pytest.mark.asyncio
async def test_empty_transaction_id_makes_no_request(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("advanced")
    flow.set_transaction_id("   ")

    result = await flow.submit_confirmation()

    assert not result.ok
    assert result.error == ErrorKind.VALIDATION
    assert result.field_errors == {"transactionId": TRANSACTION_ID_REQUIRED}
    assert flow.transaction_id_error == TRANSACTION_ID_REQUIRED
    assert backend.calls_to(CONFIRM) == 0


@pytest.mark.asyncio
async def test_no_plan_selected_makes_no_request(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.set_transaction_id("UTR123456")

    result = await flow.submit_confirmation()

    assert not result.ok
    assert PLAN_REQUIRED in signed_in_app.notices.messages()
    assert backend.calls_to(CONFIRM) == 0


@pytest.mark.asyncio
async def test_second_submit_while_first_in_flight_is_rejected(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("advanced")
    flow.set_transaction_id("UTR123456")
    gate = backend.gates[CONFIRM] = asyncio.Event()

    first = asyncio.create_task(flow.submit_confirmation())
    await wait_for_call(backend, CONFIRM)
    assert flow.submitting

    second = await flow.submit_confirmation()
    assert not second.ok
    assert second.error == ErrorKind.BUSY

    gate.set()
    assert (await first).ok
    assert not flow.submitting
    assert backend.calls_to(CONFIRM) == 1


@pytest.mark.asyncio
async def test_rejected_transaction_id_becomes_field_error(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("advanced")
    code = flow.reference_code
    flow.set_transaction_id("DUPLICATE")

    result = await flow.submit_confirmation()

    message = "This transaction ID has already been submitted."
    assert result.error == ErrorKind.BAD_REQUEST
    assert result.field_errors == {"transactionId": message}
    assert flow.transaction_id_error == message
    assert flow.transaction_id == "DUPLICATE"
    assert flow.reference_code == code
    assert message not in signed_in_app.notices.messages()


@pytest.mark.asyncio
async def test_typing_clears_the_field_error(signed_in_app, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("advanced")
    await flow.submit_confirmation()
    assert flow.transaction_id_error

    flow.set_transaction_id("U")

    assert flow.transaction_id_error is None


@pytest.mark.asyncio
async def test_unknown_plan_is_rejected(signed_in_app, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    result = flow.select_plan("platinum")

    assert result.error == ErrorKind.VALIDATION
    assert flow.selected_plan is None


@pytest.mark.asyncio
async def test_use_reference_code(signed_in_app, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("basic")

    assert not flow.use_reference_code("12a456").ok
    assert flow.use_reference_code(" 482913 ").ok
    assert flow.reference_code == "482913"
    assert "tr=482913" in flow.upi_link


@pytest.mark.asyncio
async def test_amount_falls_back_to_site_setting(signed_in_app, backend, rng):
    backend.plans[0]["price"] = None
    signed_in_app.settings.settings = signed_in_app.settings.settings.with_value("basicPlanPrice", "149")
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    flow.select_plan("basic")

    assert flow.amount == 149.0
    assert "am=149" in flow.upi_link


@pytest.mark.asyncio
async def test_upload_requires_a_valid_file(signed_in_app, backend, rng):
    backend.set_subscription("pending_manual_verification")
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    result = await flow.upload_screenshot()
    assert result.error == ErrorKind.VALIDATION
    assert flow.screenshot_error == "Please select a screenshot file to upload."

    flow.choose_screenshot(ScreenshotFile("receipt.txt", b"paid", "text/plain"))
    assert flow.screenshot_error is None
    result = await flow.upload_screenshot()
    assert not result.ok
    assert backend.calls_to(UPLOAD) == 0


@pytest.mark.asyncio
async def test_upload_attaches_screenshot_to_pending_subscription(signed_in_app, backend, rng):
    sub = backend.set_subscription("pending_manual_verification")
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.choose_screenshot(png())

    result = await flow.upload_screenshot()

    expected_url = f"/uploads/screenshots/{sub['_id']}-payment.png"
    assert result.ok and result.value == expected_url
    assert flow.subscription.screenshot_url == expected_url
    assert flow.screenshot is None
    assert flow.reference_code == "654321"
    assert backend.uploads[0]["subscriptionId"] == sub["_id"]
    assert backend.uploads[0]["content_type"] == "image/png"


@pytest.mark.asyncio
async def test_upload_without_subscription(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.choose_screenshot(png())

    result = await flow.upload_screenshot()

    assert not result.ok
    assert flow.screenshot_error == NO_SUBSCRIPTION_FOR_SCREENSHOT
    assert backend.calls_to(UPLOAD) == 0


@pytest.mark.asyncio
async def test_cancel_reloads_status(signed_in_app, backend, rng):
    backend.set_subscription("pending_manual_verification")
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    result = await flow.cancel()

    assert result.ok
    assert flow.subscription.status == SubscriptionStatus.CANCELLED
    assert "Subscription cancelled successfully." in signed_in_app.notices.messages()


@pytest.mark.asyncio
async def test_cancel_without_subscription_is_reported_once(signed_in_app, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    result = await flow.cancel()

    assert result.error == ErrorKind.NOT_FOUND
    assert signed_in_app.notices.messages() == [
        "Not Found: No active or pending subscription found to cancel."
    ]


@pytest.mark.asyncio
async def test_closing_the_page_discards_a_late_status(signed_in_app, backend, rng):
    backend.set_subscription("pending_manual_verification")
    gate = backend.gates[STATUS] = asyncio.Event()
    flow = signed_in_app.subscription_flow(rng)

    task = asyncio.create_task(flow.load())
    await wait_for_call(backend, STATUS)
    flow.close()
    gate.set()
    result = await task

    assert result.error == ErrorKind.CANCELLED
    assert flow.subscription is None
    assert flow.reference_code == ""
    assert not flow.loading


@pytest.mark.asyncio
async def test_actions_after_close_are_cancelled(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()
    flow.select_plan("advanced")
    flow.set_transaction_id("UTR123456")
    flow.close()

    result = await flow.submit_confirmation()

    assert result.error == ErrorKind.CANCELLED
    assert backend.calls_to(CONFIRM) == 0


@pytest.mark.asyncio
async def test_status_failure_keeps_plans_usable(signed_in_app, backend, rng):
    backend.failures[STATUS] = (500, "database unavailable")
    flow = signed_in_app.subscription_flow(rng)

    result = await flow.load()

    assert result.error == ErrorKind.SERVER
    assert flow.status_error == "database unavailable"
    assert len(flow.plans) == 3
    assert flow.select_plan("pro").ok
    assert "am=999" in flow.upi_link


@pytest.mark.asyncio
async def test_load_with_stubbed_services_skips_loaded_settings():
    advanced = Plan(name="advanced", display_name="Advanced", price=299)
    premium = Mock()
    premium.get_features = AsyncMock(return_value=PlanCatalog(plans=[advanced]))
    premium.get_status = AsyncMock(return_value=Subscription(id="s1", plan="advanced", status=SubscriptionStatus.ACTIVE))
    auth = Mock(user=User(id="u1", username="asha", email="asha@example.com", is_premium=True))
    site = Mock(loaded=True, settings=SiteSettings({"upiIdForPremium": "shop@upi"}))
    site.fetch = AsyncMock()

    flow = SubscriptionFlow(premium, auth, site, NoticeCenter(), rng=random.Random(7))
    result = await flow.load()

    assert result.ok
    site.fetch.assert_not_awaited()
    premium.get_status.assert_awaited_once()
    # an active subscription does not pick the plan for the user
    assert flow.selected_plan is None
    assert [c.label for c in flow.cards] == ["Current Plan"]


@pytest.mark.asyncio
async def test_each_successful_confirmation_is_announced(signed_in_app, backend, rng):
    flow = signed_in_app.subscription_flow(rng)
    await flow.load()

    for txn in ("UTR111111", "UTR222222"):
        flow.select_plan("basic")
        flow.set_transaction_id(txn)
        assert (await flow.submit_confirmation()).ok

    assert signed_in_app.notices.messages(NoticeLevel.SUCCESS).count("Payment confirmation submitted.") == 2
