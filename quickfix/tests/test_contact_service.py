"""
quickfix/tests/test_contact_service.py
Contact form, ticket lookup and the admin inbox.
"""

import pytest

from quickfix.core.errors import ErrorKind
from quickfix.models.contact import TicketStatus

MESSAGE = "My phone screen flickers after the latest update."


@pytest.mark.asyncio
async def test_submit_returns_ticket_number(app, backend):
    result = await app.contact.submit_message("Asha", "asha@example.com", MESSAGE)

    assert result.ok
    assert result.value == "QF-000001"
    notice = app.notices.active[0]
    assert notice.sticky
    assert notice.message == "Your ticket has been submitted! Your ticket number is QF-000001."


@pytest.mark.asyncio
async def test_submit_validates_every_field(app, backend):
    result = await app.contact.submit_message(" ", "asha@", "short")

    assert result.error == ErrorKind.VALIDATION
    assert result.field_errors == {
        "name": "Name is required.",
        "email": "Please enter a valid email address.",
        "message": "Message must be at least 10 characters.",
    }
    assert backend.calls_to("/contact") == 0


@pytest.mark.asyncio
async def test_check_ticket(app, backend):
    backend.add_ticket("QF-ABC123", status="Completed", adminResponse="Reinstall the display driver.")

    result = await app.contact.check_ticket(" qf-abc123 ")

    assert result.ok
    ticket = result.value
    assert ticket.ticket_number == "QF-ABC123"
    assert ticket.status == TicketStatus.COMPLETED
    assert ticket.answered


@pytest.mark.asyncio
async def test_unknown_ticket_is_reported_once(app):
    result = await app.contact.check_ticket("QF-NOPE")

    assert result.error == ErrorKind.NOT_FOUND
    assert result.message == "Ticket not found. Please check the number and try again."
    assert len(app.notices.history) == 1


@pytest.mark.asyncio
async def test_empty_ticket_number(app, backend):
    result = await app.contact.check_ticket("")

    assert result.field_errors == {"ticketNumber": "Please enter a ticket number."}
    assert backend.calls == []


@pytest.mark.asyncio
async def test_admin_inbox_listing_and_filters(app, backend):
    backend.add_ticket("QF-1", status="Pending")
    backend.add_ticket("QF-2", status="Completed")

    everything = await app.contact.list_messages()
    pending = await app.contact.list_messages({"status": "Pending", "is_read": False})

    assert everything.value.total == 2
    assert [m.ticket_number for m in pending.value.messages] == ["QF-1"]


@pytest.mark.asyncio
async def test_admin_update_reply_and_delete(app, backend):
    ticket = backend.add_ticket("QF-9")

    fetched = await app.contact.get_message(ticket["_id"])
    assert fetched.value.name == "Asha"

    updated = await app.contact.update_message(ticket["_id"], {"status": "Under Review"})
    assert updated.value.status == TicketStatus.UNDER_REVIEW
    assert "Ticket #QF-9 has been updated." in app.notices.messages()

    empty = await app.contact.reply(ticket["_id"], "  ")
    assert empty.error == ErrorKind.VALIDATION

    replied = await app.contact.reply(ticket["_id"], "Fixed in 2.3.1")
    assert replied.value.status == TicketStatus.COMPLETED
    assert replied.value.admin_response == "Fixed in 2.3.1"

    deleted = await app.contact.delete_message(ticket["_id"])
    assert deleted.ok
    assert backend.tickets == {}
