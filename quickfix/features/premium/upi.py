"""UPI deep link construction. The QR code shown to users encodes the same link."""

from typing import Optional, Union
from urllib.parse import quote

from quickfix.core.formatting import format_amount


def _enc(value: str) -> str:
    # encodeURIComponent-compatible
    return quote(value, safe="-_.!~*'()")


def build_upi_link(
    upi_id: Optional[str],
    amount: Union[int, float, None],
    reference: Optional[str],
    *,
    payee_name: str = "QuickFix",
    currency: str = "INR",
) -> str:
    """``upi://pay`` link carrying payee, amount and the reference code.

    Returns an empty string when any of upi id, amount or reference is missing.
    """
    if not upi_id or not amount or not reference:
        return ""
    ref = _enc(reference)
    return (
        f"upi://pay?pa={_enc(upi_id)}"
        f"&pn={_enc(payee_name)}"
        f"&tr={ref}"
        f"&am={_enc(format_amount(amount))}"
        f"&cu={_enc(currency)}"
        f"&tn={_enc(payee_name)}%20Premium%20Ref%20{ref}"
    )


def qr_payload(upi_link: str) -> Optional[str]:
    """Text to encode in the payment QR code, or None when no link is available."""
    return upi_link or None
