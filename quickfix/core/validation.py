"""
Client-side field validators.

Each validator returns an error message, or None when the value is acceptable.
Nothing here touches the network: a form that fails validation never issues
its request.
"""

import re
from datetime import date
from typing import Dict, Optional
from urllib.parse import urlparse

from quickfix.core.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_RE = re.compile(
    r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*()_+\[\]{};':\"\\|,.<>/?~`]).{8,}"
)
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return "Email is required."
    if not EMAIL_RE.match(email):
        return "Please enter a valid email address."
    return None


def validate_optional_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    if not EMAIL_RE.match(email):
        return "Please enter a valid email address, or leave empty."
    return None


def validate_password(password: Optional[str]) -> Optional[str]:
    if not password:
        return "Password is required."
    if len(password) < 8:
        return "Password must be at least 8 characters long."
    if not PASSWORD_RE.match(password):
        return (
            "Password must include at least one uppercase letter, one lowercase letter, "
            "one number, and one special character."
        )
    return None


def validate_confirm_password(password: Optional[str], confirm_password: Optional[str]) -> Optional[str]:
    if not confirm_password:
        return "Confirm password is required."
    if password != confirm_password:
        return "Passwords do not match."
    return None


def validate_username(username: Optional[str]) -> Optional[str]:
    if not username:
        return "Username is required."
    if len(username) < 3:
        return "Username must be at least 3 characters long."
    if len(username) > 30:
        return "Username cannot exceed 30 characters."
    return None


def validate_transaction_id(transaction_id: Optional[str]) -> Optional[str]:
    if not transaction_id or not transaction_id.strip():
        return "Transaction ID is required."
    if len(transaction_id.strip()) < 5:
        return "Transaction ID seems too short."
    return None


def validate_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    parsed = urlparse(url)
    if not (parsed.scheme and parsed.netloc):
        return "Please enter a valid URL, or leave empty."
    return None


def validate_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if not DATE_RE.match(value):
        return "Date must be in YYYY-MM-DD format, or leave empty."
    try:
        date.fromisoformat(value)
    except ValueError:
        return "Date must be a real calendar date."
    return None


def validate_message(message: Optional[str], min_length: int = 10) -> Optional[str]:
    if not message or not message.strip():
        return "Message is required."
    if len(message.strip()) < min_length:
        return f"Message must be at least {min_length} characters."
    return None


def validate_length(value: Optional[str], label: str, min_length: int, max_length: Optional[int] = None) -> Optional[str]:
    text = (value or "").strip()
    if not text:
        return f"{label} is required."
    if len(text) < min_length:
        return f"{label} must be at least {min_length} characters."
    if max_length is not None and len(text) > max_length:
        return f"{label} cannot exceed {max_length} characters."
    return None


def validate_comment(content: Optional[str]) -> Optional[str]:
    return validate_length(content, "Comment", 5, 500)


def validate_rating(rating) -> Optional[str]:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        return "Rating must be a whole number from 1 to 5."
    return None


def raise_for_errors(errors: Dict[str, Optional[str]]) -> None:
    """Raise ValidationError carrying every field that failed."""
    failed = {name: msg for name, msg in errors.items() if msg}
    if failed:
        first = next(iter(failed.values()))
        raise ValidationError(first, field_errors=failed)


_URL_SETTINGS = ("officeMapUrl", "socialFacebookUrl", "socialTwitterUrl", "socialInstagramUrl", "adminPanelUrl")
_DATE_SETTINGS = ("privacyPolicyLastUpdated", "termsOfServiceLastUpdated")
_PRICE_SETTINGS = ("basicPlanPrice", "advancedPlanPrice", "proPlanPrice")


def validate_setting(name: str, value) -> Optional[str]:
    """Check one admin setting before it is saved; unknown keys pass."""
    if name == "contactEmail":
        return validate_optional_email(value)
    if name in _URL_SETTINGS:
        return validate_url(value)
    if name in _DATE_SETTINGS:
        return validate_date(value)
    if name in _PRICE_SETTINGS:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            return "Must be a positive number or zero."
        return None
    if name == "upiIdForPremium":
        if not isinstance(value, str) or not value.strip():
            return "UPI ID cannot be empty."
    return None
