"""
==============================================================================
Scanner Package - Camera Scan Sessions
==============================================================================

Frame acquisition, optical code location and the scan state machine.

Classes:
--------
- ScanSession: Tick-driven session resolving to one outcome
- ScanRunner: Fixed-cadence scheduler for sessions
- PyzbarLocator: Optical code locator (OpenCV + pyzbar)
- OpenCVFrameSource / PushFrameSource: Frame sources

==============================================================================
"""

from .frame_source import FrameSource, OpenCVFrameSource, PushFrameSource
from .locator import Locator, PyzbarLocator
from .runner import ScanRunner
from .session import ScanOutcome, ScanPolicy, ScanSession, ScanState

__all__ = [
    "FrameSource",
    "OpenCVFrameSource",
    "PushFrameSource",
    "Locator",
    "PyzbarLocator",
    "ScanRunner",
    "ScanOutcome",
    "ScanPolicy",
    "ScanSession",
    "ScanState",
]
