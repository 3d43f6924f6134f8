"""Protocol interfaces for pluggable backends."""

from preview_core.protocols.engine import (
    SERVER_READY,
    SandboxEngine,
    SandboxHandle,
    SandboxProcess,
    ServerReadyListener,
)

__all__ = [
    "SERVER_READY",
    "SandboxEngine",
    "SandboxHandle",
    "SandboxProcess",
    "ServerReadyListener",
]
