"""
quickfix/features/contact/service.py

Contact form and support tickets.

Public:
- submit_message(): validate, then POST /contact; returns the ticket number
- check_ticket(): look a ticket up by its number

Admin inbox (/contact/admin):
- list_messages / get_message / update_message / reply / delete_message
"""

import logging
from typing import Any, Dict, Optional

from quickfix.api.client import ApiClient
from quickfix.core.errors import ApiError, BusyError, ErrorKind, Result, ValidationError
from quickfix.core.lifetime import InFlight
from quickfix.core.notices import NoticeCenter
from quickfix.core.validation import raise_for_errors, validate_email, validate_message
from quickfix.models.contact import ContactMessage, ContactPage

logger = logging.getLogger(__name__)


def _message(body: Any) -> Optional[str]:
    return body.get("message") if isinstance(body, dict) else None


class ContactService:
    def __init__(self, api: ApiClient, notices: NoticeCenter):
        self.api = api
        self.notices = notices
        self.in_flight = InFlight()

    def _failed(self, exc: ApiError, default: str, key: str) -> Result:
        message = exc.backend_message or default
        if not exc.notified:
            self.notices.error(message, key=key)
        logger.error("contact.failure key=%s status=%s message=%s", key, exc.status_code, message)
        return Result.failure(exc.kind, message)

    async def submit_message(self, name: str, email: str, message: str) -> Result[str]:
        try:
            raise_for_errors({
                "name": None if name and name.strip() else "Name is required.",
                "email": validate_email(email),
                "message": validate_message(message),
            })
        except ValidationError as exc:
            return Result.from_error(exc)

        try:
            async with self.in_flight.hold("submit", "Your message is already being sent."):
                body = await self.api.post(
                    "/contact",
                    json={"name": name.strip(), "email": email.strip(), "message": message.strip()},
                )
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to send message. Please try again later.", "contact-submit-error")

        ticket_number = body.get("ticketNumber") if isinstance(body, dict) else None
        text = _message(body) or "Your ticket has been submitted!"
        self.notices.success(f"{text} Your ticket number is {ticket_number}.", key="contact-submit-success", auto_close=None)
        logger.info("contact.ticket_created ticket=%s", ticket_number)
        return Result.success(ticket_number, text)

    async def check_ticket(self, ticket_number: str) -> Result[ContactMessage]:
        ticket_number = (ticket_number or "").strip()
        if not ticket_number:
            message = "Please enter a ticket number."
            return Result.failure(ErrorKind.VALIDATION, message, field_errors={"ticketNumber": message})
        try:
            body = await self.api.get(f"/contact/ticket/{ticket_number}")
        except ApiError as exc:
            # a wrong number is the common case; the client already showed "Not Found"
            return Result.failure(exc.kind, exc.backend_message or "Ticket not found.")
        ticket = ContactMessage.model_validate(body.get("ticket") or body.get("data") or {})
        return Result.success(ticket)

    # -- admin inbox --

    async def list_messages(self, filters: Optional[Dict[str, Any]] = None) -> Result[ContactPage]:
        filters = filters or {}
        params = {
            "isRead": filters.get("is_read"),
            "keyword": filters.get("keyword"),
            "status": filters.get("status"),
            "pageNumber": filters.get("page"),
            "pageSize": filters.get("page_size"),
        }
        if isinstance(params["isRead"], bool):
            params["isRead"] = "true" if params["isRead"] else "false"
        try:
            body = await self.api.get("/contact/admin", params=params)
        except ApiError as exc:
            return self._failed(exc, "Failed to load contact messages.", "contact-list-error")
        return Result.success(ContactPage.model_validate(body))

    async def get_message(self, message_id: str) -> Result[ContactMessage]:
        try:
            body = await self.api.get(f"/contact/admin/{message_id}")
        except ApiError as exc:
            return self._failed(exc, "Failed to load the message.", "contact-get-error")
        return Result.success(ContactMessage.model_validate(body.get("data") or {}))

    async def update_message(self, message_id: str, changes: Dict[str, Any]) -> Result[ContactMessage]:
        try:
            async with self.in_flight.hold(f"update:{message_id}"):
                body = await self.api.put(f"/contact/admin/{message_id}", json=changes)
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to update the ticket.", "contact-update-error")
        ticket = ContactMessage.model_validate(body.get("data") or {})
        self.notices.success(f"Ticket #{ticket.ticket_number} has been updated.", key=f"contact-updated-{message_id}")
        return Result.success(ticket, _message(body))

    async def reply(self, message_id: str, reply_message: str) -> Result[ContactMessage]:
        if not reply_message or not reply_message.strip():
            message = "Reply message is required."
            return Result.failure(ErrorKind.VALIDATION, message, field_errors={"replyMessage": message})
        try:
            async with self.in_flight.hold(f"reply:{message_id}"):
                body = await self.api.post(
                    f"/contact/admin/{message_id}/reply",
                    json={"replyMessage": reply_message.strip()},
                )
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to send the reply.", "contact-reply-error")
        ticket = ContactMessage.model_validate(body.get("data") or {})
        self.notices.success(_message(body) or "Reply sent and ticket updated.", key=f"contact-replied-{message_id}")
        return Result.success(ticket, _message(body))

    async def delete_message(self, message_id: str) -> Result[None]:
        try:
            async with self.in_flight.hold(f"delete:{message_id}"):
                body = await self.api.delete(f"/contact/admin/{message_id}")
        except BusyError as exc:
            return Result.from_error(exc)
        except ApiError as exc:
            return self._failed(exc, "Failed to delete the message.", "contact-delete-error")
        self.notices.success(_message(body) or "Message deleted.", key=f"contact-deleted-{message_id}")
        return Result.success(message=_message(body))
