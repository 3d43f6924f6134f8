"""Preview Core - Build-and-preview orchestration for generated web projects."""

from preview_core.builder import BuilderView
from preview_core.config import Config
from preview_core.deploy import DeploymentBridge, DeploymentResult
from preview_core.files import (
    ProjectWorkspace,
    build_file_tree,
    build_vfs,
    export_text,
    to_mount_tree,
)
from preview_core.models import FileTreeNode, NodeType, Project, ProjectFile
from preview_core.observability import (
    LogLevel,
    RequestContext,
    StructuredLogger,
    Timer,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from preview_core.preview import (
    LiveEditSynchronizer,
    OutputAggregator,
    PreviewController,
    ReadinessDetector,
    SandboxSession,
    SessionState,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "BuilderView",
    "Config",
    # Files
    "FileTreeNode",
    "NodeType",
    "Project",
    "ProjectFile",
    "ProjectWorkspace",
    "build_file_tree",
    "build_vfs",
    "export_text",
    "to_mount_tree",
    # Preview
    "LiveEditSynchronizer",
    "OutputAggregator",
    "PreviewController",
    "ReadinessDetector",
    "SandboxSession",
    "SessionState",
    # Deploy
    "DeploymentBridge",
    "DeploymentResult",
    # Observability
    "LogLevel",
    "RequestContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
