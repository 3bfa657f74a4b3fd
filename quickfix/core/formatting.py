"""Display helpers shared by the CLI and any other front end."""

from datetime import date, datetime
from typing import Optional, Union

_CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}


def format_date(value: Optional[Union[str, date, datetime]], fmt: str = "%b %d, %Y") -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.strftime(fmt)


def format_amount(amount: Union[int, float, None]) -> str:
    """299.0 -> '299', 299.5 -> '299.50'."""
    if amount is None:
        return ""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def format_currency(amount: Union[int, float, None], currency: str = "INR") -> str:
    if amount is None:
        return ""
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    text = f"{amount:,.2f}"
    return f"{symbol}{text}" if symbol else f"{text} {currency.upper()}"


def format_bytes(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[idx]}"


def humanize_status(status: Optional[str]) -> str:
    """'pending_manual_verification' -> 'PENDING MANUAL VERIFICATION'."""
    if not status:
        return "N/A"
    return status.upper().replace("_", " ")


def truncate(text: Optional[str], max_length: int) -> Optional[str]:
    if not text or len(text) <= max_length:
        return text
    return text[:max_length] + "..."
