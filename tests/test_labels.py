"""
==============================================================================
Label Generation Tests
==============================================================================

Tests for optical tags, QR capacity and rendered labels.

==============================================================================
"""

import re

import cv2
import numpy as np
import pytest

from productscan.catalog.models import ProductRecord
from productscan.codec import PayloadCodec, PayloadVariant
from productscan.core.exceptions import MalformedPayloadError, PayloadTooLargeError
from productscan.labels import (
    LabelService,
    QRCapacity,
    QRCodeImageProducer,
    check_capacity,
    generate_optical_tag,
)
from productscan.scanner import PyzbarLocator


def _png_to_frame(png: bytes) -> np.ndarray:
    return cv2.imdecode(np.frombuffer(png, np.uint8), cv2.IMREAD_COLOR)


class TestOpticalTags:
    """Tests for optical tag generation."""

    def test_format(self):
        """Test tags are BC followed by nine base-36 characters."""
        for _ in range(50):
            assert re.fullmatch(r"BC[0-9A-Z]{9}", generate_optical_tag())

    def test_unique(self):
        """Test tags do not repeat in practice."""
        tags = {generate_optical_tag() for _ in range(500)}
        assert len(tags) == 500


class TestCapacity:
    """Tests for QR capacity checks."""

    def test_levels(self):
        """Test capacities shrink as error correction grows."""
        assert QRCapacity.for_level("l") == 2953
        assert QRCapacity.for_level("M") > QRCapacity.for_level("Q") > QRCapacity.for_level("H")

    def test_payload_at_capacity_fits(self):
        """Test a payload exactly at capacity is accepted."""
        check_capacity("A" * 1273, "H")

    def test_payload_over_capacity(self):
        """Test an oversize payload is rejected with details."""
        with pytest.raises(PayloadTooLargeError) as exc_info:
            check_capacity("A" * 1274, "H")

        assert exc_info.value.status_code == 413
        assert exc_info.value.details == {"length": 1274, "capacity": 1273, "level": "H"}


class TestLabelService:
    """Tests for LabelService."""

    def test_keeps_existing_tag(self, sample_record: ProductRecord):
        """Test tagged records are encoded unchanged."""
        label = LabelService().build_label(sample_record)

        assert label.tag_assigned is False
        assert label.record == sample_record
        assert PayloadCodec().decode(label.payload).optical_tag == "BC7K2M9QX4T"

    def test_assigns_missing_tag(self):
        """Test untagged records get a new tag in the copy only."""
        record = ProductRecord(id="fib6", name="6'lı Fiber", code="FİB6")

        label = LabelService().build_label(record)

        assert label.tag_assigned is True
        assert re.fullmatch(r"BC[0-9A-Z]{9}", label.record.optical_tag)
        assert record.optical_tag is None
        assert PayloadCodec().decode(label.payload).optical_tag == label.record.optical_tag

    def test_full_variant(self, sample_record: ProductRecord):
        """Test labels can carry prices."""
        label = LabelService().build_label(sample_record, PayloadVariant.FULL)

        assert PayloadCodec().decode(label.payload).price == 15.5

    def test_oversize_record_rejected(self, sample_record: ProductRecord):
        """Test records too large for a QR symbol fail before rendering."""
        record = sample_record.model_copy(update={"name": "x" * 3000})

        with pytest.raises(PayloadTooLargeError):
            LabelService().build_label(record)

    def test_incomplete_record_rejected(self):
        """Test records without a code cannot be labelled."""
        record = ProductRecord.model_construct(id="x", name="No code", code="", optical_tag="BC000000000")

        with pytest.raises(MalformedPayloadError):
            LabelService().build_label(record)

    def test_render_png(self, sample_record: ProductRecord):
        """Test rendered labels are PNG images."""
        label, png = LabelService().render_png(sample_record)

        assert png.startswith(b"\x89PNG")
        assert label.payload


class TestScanRenderedLabel:
    """Tests that rendered labels read back through the locator."""

    def test_locator_reads_rendered_label(self, sample_record: ProductRecord):
        """Test generation and identification paths agree."""
        producer = QRCodeImageProducer(error_correction="M", box_size=6, border=4)
        label, png = LabelService(producer=producer).render_png(sample_record)

        text = PyzbarLocator(["QRCODE"]).locate(_png_to_frame(png))

        assert text == label.payload
        assert PayloadCodec().decode(text) == PayloadCodec().decode(label.payload)

    def test_locator_reads_unicode_label(self):
        """Test non-ASCII names survive the optical round trip."""
        record = ProductRecord(id="fib6", name="6'lı Fiber Çekiç", code="FİB6", optical_tag="BCW3R8D1LZ0")
        producer = QRCodeImageProducer(border=4)
        label, png = LabelService(producer=producer).render_png(record)

        decoded = PayloadCodec().decode(PyzbarLocator().locate(_png_to_frame(png)))

        assert decoded.name == "6'lı Fiber Çekiç"

    def test_locator_reads_image_file(self, tmp_path, sample_record: ProductRecord):
        """Test static image files can be scanned."""
        label, png = LabelService(producer=QRCodeImageProducer(border=4)).render_png(sample_record)
        path = tmp_path / "label.png"
        path.write_bytes(png)

        assert PyzbarLocator(["QRCODE"]).locate_in_image(path) == label.payload

    def test_blank_frame(self):
        """Test frames without a code are misses."""
        frame = np.full((120, 160, 3), 255, dtype=np.uint8)

        assert PyzbarLocator(["QRCODE"]).locate(frame) is None

    def test_missing_image_file(self, tmp_path):
        """Test missing files are misses."""
        assert PyzbarLocator().locate_in_image(tmp_path / "nope.png") is None

    def test_unknown_symbology(self):
        """Test unknown symbology names are rejected."""
        with pytest.raises(ValueError):
            PyzbarLocator(["HOLOGRAM"])
