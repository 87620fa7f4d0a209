"""
==============================================================================
Codec Package - Product Payloads
==============================================================================

Encode product records into URL-safe payloads and back.

Classes:
--------
- PayloadCodec: Stateless encoder/decoder
- PayloadVariant: LABEL or FULL field subset

==============================================================================
"""

from .payload import (
    PayloadCodec,
    PayloadSchema,
    PayloadVariant,
    decode_payload,
    encode_payload,
)

__all__ = [
    "PayloadCodec",
    "PayloadSchema",
    "PayloadVariant",
    "decode_payload",
    "encode_payload",
]
