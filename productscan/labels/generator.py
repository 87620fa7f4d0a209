"""
==============================================================================
Label Generator Module
==============================================================================

Generation path: product record → payload → QR image.

This module implements:
- generate_optical_tag: New printable tag identifiers
- QR capacity checks per error correction level
- QRCodeImageProducer: PNG rendering via the qrcode library
- LabelService: Tag assignment, encoding and capacity check in one step

==============================================================================
"""

from __future__ import annotations

import io
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

import qrcode
import qrcode.constants

from productscan.catalog.models import ProductRecord
from productscan.codec import PayloadCodec, PayloadVariant
from productscan.config import get_settings
from productscan.core.exceptions import PayloadTooLargeError


# Module logger
logger = logging.getLogger(__name__)


# =============================================================================
# OPTICAL TAGS
# =============================================================================

TAG_PREFIX = "BC"
TAG_LENGTH = 9
_TAG_ALPHABET = string.digits + string.ascii_uppercase


def generate_optical_tag() -> str:
    """
    Create a new optical tag identifier.

    Returns:
        "BC" followed by 9 random base-36 upper-case characters
    """
    suffix = "".join(secrets.choice(_TAG_ALPHABET) for _ in range(TAG_LENGTH))
    return f"{TAG_PREFIX}{suffix}"


# =============================================================================
# CAPACITY
# =============================================================================

class QRCapacity:
    """Byte-mode capacity of a version 40 QR symbol."""

    BYTES: Dict[str, int] = {
        "L": 2953,
        "M": 2331,
        "Q": 1663,
        "H": 1273,
    }

    @classmethod
    def for_level(cls, level: str) -> int:
        """Capacity in bytes for an error correction level."""
        return cls.BYTES[level.upper()]


def check_capacity(payload: str, level: str = "L") -> None:
    """
    Ensure a payload fits into a QR symbol.

    Raises:
        PayloadTooLargeError: If the payload exceeds the capacity
    """
    capacity = QRCapacity.for_level(level)
    length = len(payload.encode("ascii"))

    if length > capacity:
        raise PayloadTooLargeError(length, capacity, level.upper())


# =============================================================================
# IMAGE PRODUCERS
# =============================================================================

class CodeImageProducer(Protocol):
    """Renders a payload string into an image."""

    def render(self, payload: str) -> Any:
        ...


_ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


class QRCodeImageProducer:
    """
    QR image producer backed by the qrcode library.

    Example:
        >>> producer = QRCodeImageProducer()
        >>> png_bytes = producer.render_png(payload)
    """

    def __init__(
        self,
        error_correction: Optional[str] = None,
        box_size: Optional[int] = None,
        border: Optional[int] = None
    ) -> None:
        settings = get_settings()
        self._level = (error_correction or settings.qr_error_correction).upper()
        self._box_size = box_size if box_size is not None else settings.qr_box_size
        self._border = border if border is not None else settings.qr_border

    @property
    def level(self) -> str:
        """Error correction level."""
        return self._level

    def render(self, payload: str):
        """
        Render a payload as a QR image.

        Returns:
            PIL image wrapper produced by qrcode
        """
        check_capacity(payload, self._level)

        qr = qrcode.QRCode(
            error_correction=_ERROR_CORRECTION[self._level],
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(payload)
        qr.make(fit=True)

        logger.debug(f"QR rendered: version {qr.version}, {len(payload)} chars")
        return qr.make_image(fill_color="black", back_color="white")

    def render_png(self, payload: str) -> bytes:
        """Render a payload as PNG bytes."""
        image = self.render(payload)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()


# =============================================================================
# LABEL SERVICE
# =============================================================================

@dataclass(frozen=True)
class Label:
    """Encoded label ready for rendering."""

    record: ProductRecord
    payload: str
    variant: PayloadVariant
    tag_assigned: bool = False


class LabelService:
    """
    Builds labels from product records.

    Records without an optical tag get a freshly generated one. The
    returned record is a copy; nothing is written back to the catalog.
    """

    def __init__(
        self,
        codec: Optional[PayloadCodec] = None,
        producer: Optional[QRCodeImageProducer] = None
    ) -> None:
        self._codec = codec or PayloadCodec()
        self._producer = producer or QRCodeImageProducer()

    def build_label(
        self,
        record: ProductRecord,
        variant: PayloadVariant = PayloadVariant.LABEL
    ) -> Label:
        """
        Encode a record into a label payload.

        Raises:
            MalformedPayloadError: If the record lacks id, name or code
            PayloadTooLargeError: If the payload does not fit a QR symbol
        """
        tag_assigned = False

        if not record.has_optical_tag:
            record = record.model_copy(update={"optical_tag": generate_optical_tag()})
            tag_assigned = True
            logger.info(f"🏷️ Assigned tag {record.optical_tag} to {record.id}")

        payload = self._codec.encode(record, variant)
        check_capacity(payload, self._producer.level)

        return Label(record=record, payload=payload, variant=variant, tag_assigned=tag_assigned)

    def render_png(
        self,
        record: ProductRecord,
        variant: PayloadVariant = PayloadVariant.LABEL
    ) -> Tuple[Label, bytes]:
        """Build a label and render it as PNG."""
        label = self.build_label(record, variant)
        return label, self._producer.render_png(label.payload)
