"""
stream/__init__.py

Public API for the packet stream sub-package.
"""

from .buffer import DuplicatePacketError, StreamBuffer
from .orchestrator import ScanOrchestrator, ScanResult, ScanState, run_periodic
from .stats import recompute
from .synthesizer import PacketSynthesizer

__all__ = [
    "DuplicatePacketError",
    "PacketSynthesizer",
    "ScanOrchestrator",
    "ScanResult",
    "ScanState",
    "StreamBuffer",
    "recompute",
    "run_periodic",
]
