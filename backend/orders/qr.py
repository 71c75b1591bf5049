"""
Pickup QR codes.

A paid order gets a payload of ``<reference>:<signature>`` where the
reference is the order's payment reference and the signature is an
HMAC-SHA256 of it under ``QR_CODE_HMAC_SECRET``. Staff scan the code at
the counter and the payload is checked before the order is handed over.
"""

from io import BytesIO
from typing import Optional
import hashlib
import hmac

import qrcode
import qrcode.image.svg
from django.conf import settings


def sign_reference(reference: str, secret: Optional[str] = None) -> str:
    key = (secret or settings.QR_CODE_HMAC_SECRET).encode()
    return hmac.new(key, reference.encode(), hashlib.sha256).hexdigest()


def order_reference(order) -> str:
    return order.unique_payment_id or str(order.id)


def build_payload(order) -> str:
    reference = order_reference(order)
    return f"{reference}:{sign_reference(reference)}"


def parse_payload(payload: str) -> Optional[str]:
    """Return the reference carried by a well-signed payload, else None."""
    if not isinstance(payload, str):
        return None
    reference, sep, signature = payload.strip().rpartition(":")
    if not sep or not reference or not signature:
        return None
    if not hmac.compare_digest(sign_reference(reference), signature):
        return None
    return reference


def render_svg(payload: str) -> bytes:
    image = qrcode.make(payload, image_factory=qrcode.image.svg.SvgPathImage)
    buffer = BytesIO()
    image.save(buffer)
    return buffer.getvalue()
