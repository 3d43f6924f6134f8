"""Preview Core exceptions."""


class PreviewError(Exception):
    """Base exception for preview-core."""

    pass


class ConfigError(PreviewError):
    """Configuration error."""

    pass


class EngineNotFoundError(ConfigError):
    """No sandbox engine is registered under the requested name."""

    pass


class SandboxError(PreviewError):
    """Sandbox stage failure."""

    pass


class BootError(SandboxError):
    """Sandbox environment allocation failed."""

    pass


class MountError(SandboxError):
    """Virtual filesystem was rejected at mount time."""

    pass


class InstallError(SandboxError):
    """Dependency install exited with a non-zero code."""

    def __init__(self, exit_code: int, tail: list[str] | None = None) -> None:
        self.exit_code = exit_code
        self.tail = list(tail or [])
        message = f"install failed (exit code {exit_code})"
        if self.tail:
            message += ": " + "".join(self.tail).strip()
        super().__init__(message)


class StageTimeoutError(SandboxError):
    """A lifecycle stage exceeded its configured timeout."""

    def __init__(self, stage: str, seconds: float) -> None:
        self.stage = stage
        self.seconds = seconds
        super().__init__(f"{stage} timed out after {seconds:g} seconds")


class WriteError(SandboxError):
    """A live-edit write into the sandbox failed."""

    pass


class SessionBusyError(PreviewError):
    """A start sequence is already in flight for this view."""

    pass


class DeploymentError(PreviewError):
    """Deploy endpoint rejected the request or could not be reached."""

    pass


class ProjectLoadError(PreviewError):
    """Project could not be loaded."""

    pass


class ViewNotFoundError(PreviewError):
    """Builder view not found."""

    pass
