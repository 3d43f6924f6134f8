"""ASGI application for standalone deployment."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from preview_core.builder import BuilderView
from preview_core.config import Config
from preview_core.deploy import DeploymentBridge
from preview_core.plugins import create_engine
from preview_core.projects import ProjectClient
from preview_core.protocols import SandboxEngine
from preview_core.server.middleware import RequestContextMiddleware
from preview_core.server.registry import ViewRegistry
from preview_core.server.routes import create_routes


def create_app(
    config: Config | None = None,
    engine: SandboxEngine | None = None,
    deployer: DeploymentBridge | None = None,
    projects: ProjectClient | None = None,
) -> Starlette:
    """Create the ASGI application.

    Args:
        config: Configuration (defaults apply when omitted)
        engine: Sandbox engine shared by all views (created from config when omitted)
        deployer: Deployment bridge override
        projects: Project-load client override

    Returns:
        Starlette application
    """
    config = config or Config()
    if engine is None:
        engine = create_engine(
            config.engine.backend,
            workdir=config.engine.workdir,
            **config.engine.options,
        )

    def view_factory() -> BuilderView:
        return BuilderView(config, engine=engine, deployer=deployer, projects=projects)

    registry = ViewRegistry(view_factory)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        # Tear down every sandbox on shutdown
        await registry.close_all()

    # Middleware stack (order matters - executed in reverse order)
    # So: CORS -> RequestContext -> Route handler
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins or ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
        Middleware(RequestContextMiddleware, header_name="X-Request-ID"),
    ]

    app = Starlette(
        routes=create_routes(),
        middleware=middleware,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.config = config
    return app


def serve(
    config: Config | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the HTTP server.

    Args:
        config: Configuration (defaults apply when omitted)
        host: Host to bind to (defaults to config value)
        port: Port to bind to (defaults to config value)
    """
    import uvicorn

    config = config or Config()
    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
    )
