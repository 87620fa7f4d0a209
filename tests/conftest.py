"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides sample records, scripted camera fakes, and the API test client.

==============================================================================
"""

import base64
import json
import threading
from pathlib import Path
from typing import Any, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from productscan.catalog.catalog import init_catalog
from productscan.catalog.models import ProductRecord
from productscan.codec import PayloadCodec
from productscan.config import Settings
from productscan.core.exceptions import DeviceUnavailableError
from productscan.main import app
from productscan.services import ScanService, get_scan_service


# ============================================================================
# CAMERA FAKES
# ============================================================================

class ScriptedFrameSource:
    """
    Frame source that plays back a fixed script.

    Script items are returned by current_frame() in order: a string is a
    frame carrying that code text, None is a tick without a frame, and an
    exception instance is raised. Once the script runs out, the last item
    repeats.
    """

    def __init__(self, script: List[Any], fail_open: bool = False, events: Optional[list] = None):
        self._script = list(script)
        self._fail_open = fail_open
        self.events = events if events is not None else []
        self.name = "camera"
        self.opened = 0
        self.closed = 0
        self.reads = 0

    def open(self):
        if self._fail_open:
            raise DeviceUnavailableError("Cannot open camera 0", device=0)
        self.opened += 1
        self.events.append(f"open:{self.name}")
        return object()

    def current_frame(self, handle):
        assert handle is not None
        self.reads += 1
        item = self._script[min(self.reads, len(self._script)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self, handle):
        self.closed += 1
        self.events.append(f"close:{self.name}")


class EchoLocator:
    """Locator for scripted frames: the frame is the code text."""

    def __init__(self):
        self.calls = 0

    def locate(self, frame):
        self.calls += 1
        return frame if isinstance(frame, str) and frame else None


class BlockingLocator(EchoLocator):
    """Locator that holds each call until released by the test."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def locate(self, frame):
        self.entered.set()
        assert self.release.wait(timeout=5)
        return super().locate(frame)


# ============================================================================
# RECORD FIXTURES
# ============================================================================

@pytest.fixture
def sample_record() -> ProductRecord:
    """Catalog record with every field set."""
    return ProductRecord.model_validate({
        "_id": "m16x50",
        "name": "M16X50 Akb Civata",
        "code": "M16X50AKB",
        "barcode": "BC7K2M9QX4T",
        "price": 15.5,
        "price2": 14.25,
        "KDV_ORANI": 20,
    })


@pytest.fixture
def codec() -> PayloadCodec:
    return PayloadCodec()


@pytest.fixture
def valid_payload(codec: PayloadCodec, sample_record: ProductRecord) -> str:
    """LABEL payload for the sample record."""
    return codec.encode(sample_record)


@pytest.fixture
def malformed_payload() -> str:
    """Well-formed base64 JSON that lacks the mandatory _id key."""
    text = json.dumps({"name": "Stray", "code": "X1"})
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


@pytest.fixture
def make_source():
    """Factory for scripted frame sources."""
    return ScriptedFrameSource


@pytest.fixture
def echo_locator() -> EchoLocator:
    return EchoLocator()


@pytest.fixture
def blocking_locator() -> BlockingLocator:
    return BlockingLocator()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================

@pytest.fixture
def fast_settings() -> Settings:
    """Settings with a short scan interval."""
    return Settings(scan_interval_seconds=0.01, scan_request_timeout_seconds=2)


@pytest.fixture
def scan_service(fast_settings: Settings) -> ScanService:
    return ScanService(fast_settings)


# ============================================================================
# CATALOG / CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """Small catalog on disk."""
    path = tmp_path / "products.json"
    path.write_text(json.dumps([
        {
            "_id": "m16x50",
            "name": "M16X50 Akb Civata",
            "code": "M16X50AKB",
            "barcode": "BC7K2M9QX4T",
            "price": 15.5,
            "price2": 14.25,
            "KDV_ORANI": 20
        },
        {
            "_id": "fib6",
            "name": "6'lı Fiber",
            "code": "FİB6",
            "barcode": None
        },
        {
            "_id": "broken",
            "name": "No code"
        }
    ], ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture(scope="function")
def client(catalog_file: Path, scan_service: ScanService) -> Generator[TestClient, None, None]:
    """Create test client with a temporary catalog and fast scan service."""
    app.dependency_overrides[get_scan_service] = lambda: scan_service

    with TestClient(app) as test_client:
        init_catalog(catalog_file)
        yield test_client

    app.dependency_overrides.clear()
