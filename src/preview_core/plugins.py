"""Engine discovery via Python entry points."""

from importlib.metadata import entry_points
from typing import Any

from preview_core.exceptions import EngineNotFoundError
from preview_core.protocols import SandboxEngine

ENGINE_GROUP = "preview_core.engines"

# Engines shipped with the package, available without installation metadata
BUILTIN_ENGINES = {
    "local": "preview_core.engines.local:LocalSandboxEngine",
    "mock": "preview_core.engines.mock:MockSandboxEngine",
}


def discover_engines() -> dict[str, Any]:
    """Discover all registered engine classes.

    Returns:
        Dictionary mapping engine names to their classes
    """
    eps = entry_points(group=ENGINE_GROUP)
    return {ep.name: ep.load() for ep in eps}


def _load_builtin(target: str) -> Any:
    import importlib

    module_name, _, attr = target.partition(":")
    return getattr(importlib.import_module(module_name), attr)


def get_engine_class(name: str) -> Any:
    """Get an engine class by name.

    Args:
        name: The engine name (e.g., "local", "mock")

    Returns:
        The engine class

    Raises:
        EngineNotFoundError: If the engine is not registered
    """
    engines = discover_engines()
    if name in engines:
        return engines[name]
    if name in BUILTIN_ENGINES:
        return _load_builtin(BUILTIN_ENGINES[name])
    available = ", ".join(sorted(set(engines) | set(BUILTIN_ENGINES))) or "(none)"
    raise EngineNotFoundError(f"Engine '{name}' not found. Available: {available}")


def create_engine(backend: str, **kwargs: Any) -> SandboxEngine:
    """Create a SandboxEngine instance.

    Args:
        backend: The engine name
        **kwargs: Engine-specific configuration

    Returns:
        A SandboxEngine implementation
    """
    cls = get_engine_class(backend)
    return cls(**kwargs)
