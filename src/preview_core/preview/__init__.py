"""Build-and-preview orchestration."""

from preview_core.preview.aggregator import OutputAggregator
from preview_core.preview.controller import PreviewController
from preview_core.preview.readiness import ReadinessDetector, ServerReady
from preview_core.preview.session import (
    InvalidTransitionError,
    SandboxSession,
    SessionState,
)
from preview_core.preview.sync import LiveEditSynchronizer

__all__ = [
    "InvalidTransitionError",
    "LiveEditSynchronizer",
    "OutputAggregator",
    "PreviewController",
    "ReadinessDetector",
    "SandboxSession",
    "ServerReady",
    "SessionState",
]
