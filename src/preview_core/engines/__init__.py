"""Built-in sandbox engines."""

from preview_core.engines.local import LocalSandboxEngine
from preview_core.engines.mock import MockSandboxEngine, ScriptedCommand

__all__ = [
    "LocalSandboxEngine",
    "MockSandboxEngine",
    "ScriptedCommand",
]
