"""
==============================================================================
Labels Package - QR Label Generation
==============================================================================

Classes:
--------
- LabelService: Tag assignment and payload encoding
- QRCodeImageProducer: QR rendering via the qrcode library

==============================================================================
"""

from .generator import (
    CodeImageProducer,
    Label,
    LabelService,
    QRCapacity,
    QRCodeImageProducer,
    check_capacity,
    generate_optical_tag,
)

__all__ = [
    "CodeImageProducer",
    "Label",
    "LabelService",
    "QRCapacity",
    "QRCodeImageProducer",
    "check_capacity",
    "generate_optical_tag",
]
