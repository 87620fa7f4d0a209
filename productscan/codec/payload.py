"""
==============================================================================
Payload Codec Module
==============================================================================

Reversible encoding of a product record into a URL-safe text payload.

Encoding Pipeline:
-----------------
    record subset → compact JSON → UTF-8 bytes → base64
                  → '+' to '-', '/' to '_', trailing '=' stripped

Decoding reverses each step and validates the JSON object against an
explicit schema. Every decode failure surfaces as MalformedPayloadError
with a machine-readable reason.

Variants:
--------
- LABEL: _id, name, code, barcode (printed labels)
- FULL:  LABEL fields plus price, price2, KDV_ORANI (archival)

==============================================================================
"""

from __future__ import annotations

import base64
import binascii
import enum
import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from productscan.catalog.models import ProductRecord
from productscan.core.exceptions import MalformedPayloadError


# Module logger
logger = logging.getLogger(__name__)

# URL-safe base64 alphabet without padding
_PAYLOAD_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class PayloadVariant(str, enum.Enum):
    """Field subset embedded in a payload."""

    LABEL = "label"
    FULL = "full"


# Wire keys in the order they are written
LABEL_KEYS: Tuple[str, ...] = ("_id", "name", "code", "barcode")
PRICE_KEYS: Tuple[str, ...] = ("price", "price2", "KDV_ORANI")


class PayloadSchema(BaseModel):
    """
    Explicit schema for a decoded payload object.

    Only wire keys are accepted and unknown keys are rejected, so a
    payload from some other application fails validation instead of
    producing a half-filled record.
    """

    model_config = ConfigDict(extra="forbid")

    id: StrictStr = Field(..., alias="_id", min_length=1)
    name: StrictStr = Field(..., min_length=1)
    code: StrictStr = Field(..., min_length=1)
    optical_tag: Optional[StrictStr] = Field(default=None, alias="barcode")
    price: Optional[float] = Field(default=None, ge=0, strict=True, allow_inf_nan=False)
    alternate_price: Optional[float] = Field(
        default=None, alias="price2", ge=0, strict=True, allow_inf_nan=False
    )
    tax_rate: Optional[float] = Field(
        default=None, alias="KDV_ORANI", ge=0, strict=True, allow_inf_nan=False
    )


class PayloadCodec:
    """
    Stateless encoder/decoder between ProductRecord and payload text.

    Example:
        >>> codec = PayloadCodec()
        >>> payload = codec.encode(record)
        >>> codec.decode(payload) == record
        True
    """

    # =========================================================================
    # ENCODING
    # =========================================================================

    def encode(
        self,
        record: Union[ProductRecord, Mapping[str, Any]],
        variant: PayloadVariant = PayloadVariant.LABEL
    ) -> str:
        """
        Encode a record into a URL-safe payload.

        Args:
            record: ProductRecord (or mapping accepted by it)
            variant: Field subset to embed

        Returns:
            Payload string using only [A-Za-z0-9_-]

        Raises:
            MalformedPayloadError: If id, name or code is missing
        """
        record = self._coerce_record(record)
        fields = self.select_fields(record, PayloadVariant(variant))

        text = json.dumps(fields, ensure_ascii=False, separators=(",", ":"))
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")

        return encoded.rstrip("=").replace("+", "-").replace("/", "_")

    @staticmethod
    def select_fields(record: ProductRecord, variant: PayloadVariant) -> Dict[str, Any]:
        """
        Build the ordered wire-key mapping for a variant.

        Absent numeric fields are written as 0 in the FULL variant.
        """
        wire = record.to_wire()
        fields = {key: wire[key] for key in LABEL_KEYS}

        if variant is PayloadVariant.FULL:
            for key in PRICE_KEYS:
                fields[key] = wire[key] if wire[key] is not None else 0

        return fields

    @staticmethod
    def _coerce_record(record: Union[ProductRecord, Mapping[str, Any]]) -> ProductRecord:
        if isinstance(record, ProductRecord):
            missing = [
                name for name in ("id", "name", "code")
                if not getattr(record, name, None)
            ]
            if missing:
                raise MalformedPayloadError(
                    "missing_field",
                    f"Record is missing mandatory fields: {', '.join(missing)}"
                )
            return record

        try:
            return ProductRecord.model_validate(dict(record))
        except ValidationError as e:
            raise MalformedPayloadError(
                "missing_field",
                f"Record is not encodable: {e.error_count()} validation errors"
            ) from e

    # =========================================================================
    # DECODING
    # =========================================================================

    def decode(self, payload: str) -> ProductRecord:
        """
        Decode a payload back into a ProductRecord.

        Args:
            payload: Text produced by encode()

        Returns:
            ProductRecord with the fields present in the payload

        Raises:
            MalformedPayloadError: On any alphabet, base64, UTF-8, JSON
                or schema failure
        """
        data = self._decode_object(payload)

        try:
            fields = PayloadSchema.model_validate(data)
        except ValidationError as e:
            problems = ", ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['type']}"
                for err in e.errors()
            )
            raise MalformedPayloadError("schema", f"Payload schema mismatch ({problems})") from e

        return ProductRecord.model_validate(fields.model_dump())

    def _decode_object(self, payload: str) -> Dict[str, Any]:
        if not isinstance(payload, str) or not payload:
            raise MalformedPayloadError("empty", "Payload is empty")

        if not _PAYLOAD_PATTERN.fullmatch(payload):
            raise MalformedPayloadError("alphabet", "Payload contains characters outside the URL-safe alphabet")

        # A single trailing sextet can never form a byte
        if len(payload) % 4 == 1:
            raise MalformedPayloadError("base64", "Payload length is not valid base64")

        standard = payload.replace("-", "+").replace("_", "/")
        standard += "=" * (-len(standard) % 4)

        try:
            raw = base64.b64decode(standard, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedPayloadError("base64", f"Payload is not valid base64: {e}") from e

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayloadError("utf8", "Payload bytes are not valid UTF-8") from e

        try:
            data = json.loads(text)
        except (ValueError, RecursionError) as e:
            raise MalformedPayloadError("json", "Payload text is not valid JSON") from e

        if not isinstance(data, dict):
            raise MalformedPayloadError("schema", "Payload must be a JSON object")

        return data


# =============================================================================
# MODULE-LEVEL CONVENIENCE
# =============================================================================

_default_codec = PayloadCodec()


def encode_payload(
    record: Union[ProductRecord, Mapping[str, Any]],
    variant: PayloadVariant = PayloadVariant.LABEL
) -> str:
    """Encode with the default codec."""
    return _default_codec.encode(record, variant)


def decode_payload(payload: str) -> ProductRecord:
    """Decode with the default codec."""
    return _default_codec.decode(payload)
