"""HTTP route handlers for builder views."""

import functools
import json
import time
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from preview_core.builder import BuilderView
from preview_core.exceptions import (
    DeploymentError,
    ProjectLoadError,
    SessionBusyError,
    ViewNotFoundError,
)
from preview_core.models import ProjectFile
from preview_core.server.registry import ViewRegistry


def with_view(
    handler: Callable[[Request, BuilderView], Awaitable[Response]],
) -> Callable[[Request], Awaitable[Response]]:
    """Decorator resolving the {view_id} path param to a BuilderView (404 if unknown)."""

    @functools.wraps(handler)
    async def wrapper(request: Request) -> Response:
        registry: ViewRegistry = request.app.state.registry
        try:
            view = registry.get(request.path_params["view_id"])
        except ViewNotFoundError as e:
            return JSONResponse({"error": str(e)}, status_code=404)
        return await handler(request, view)

    return wrapper


async def read_json(request: Request) -> dict[str, Any] | None:
    """Parse a JSON object body, or None if the body is not one."""
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return None
    return body if isinstance(body, dict) else None


def create_routes() -> list[Route]:
    """Create HTTP routes.

    Views live in the ViewRegistry stored on ``app.state.registry``.
    """

    async def health(request: Request) -> Response:
        """Health check endpoint."""
        return JSONResponse({"status": "ok", "timestamp": time.time()})

    async def create_view(request: Request) -> Response:
        """Open a builder view from a project id or an inline file list."""
        body = await read_json(request) if await request.body() else {}
        if body is None:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        files = None
        if "files" in body:
            raw_files = body["files"]
            if not isinstance(raw_files, list):
                return JSONResponse({"error": "files must be a list"}, status_code=400)
            try:
                files = [ProjectFile.from_dict(f) for f in raw_files]
            except (KeyError, TypeError):
                return JSONResponse({"error": "Each file needs a path"}, status_code=400)

        registry: ViewRegistry = request.app.state.registry
        view = registry.create()
        try:
            await view.open(
                project_id=body.get("project_id"),
                name=body.get("name"),
                files=files,
            )
        except ProjectLoadError as e:
            await registry.close(view.id)
            return JSONResponse({"error": str(e)}, status_code=502)

        return JSONResponse(
            {"view_id": view.id, "tree": [node.to_dict() for node in view.tree]},
            status_code=201,
        )

    @with_view
    async def get_view(request: Request, view: BuilderView) -> Response:
        """Session state, preview URL and log buffer."""
        data = view.status()
        data["files"] = [f.path for f in view.files]
        return JSONResponse(data)

    @with_view
    async def start(request: Request, view: BuilderView) -> Response:
        """Start a preview in the background; poll GET /views/{id} for progress."""
        registry: ViewRegistry = request.app.state.registry
        try:
            registry.start_in_background(view)
        except SessionBusyError as e:
            return JSONResponse({"error": str(e)}, status_code=409)
        return JSONResponse({"view_id": view.id, "status": "starting"}, status_code=202)

    @with_view
    async def rebuild(request: Request, view: BuilderView) -> Response:
        """Tear down any session and start again."""
        registry: ViewRegistry = request.app.state.registry
        registry.start_in_background(view, rebuild=True)
        return JSONResponse({"view_id": view.id, "status": "rebuilding"}, status_code=202)

    @with_view
    async def get_tree(request: Request, view: BuilderView) -> Response:
        return JSONResponse({"tree": [node.to_dict() for node in view.tree]})

    @with_view
    async def edit_file(request: Request, view: BuilderView) -> Response:
        """Apply an editor change: {path, content}."""
        body = await read_json(request)
        if body is None:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        path = body.get("path")
        content = body.get("content")
        if not path or not isinstance(content, str):
            return JSONResponse(
                {"error": "Missing required fields: path, content"},
                status_code=400,
            )

        synced = await view.edit(path, content)
        return JSONResponse({"path": path, "synced": synced})

    @with_view
    async def download(request: Request, view: BuilderView) -> Response:
        filename, text = view.download()
        return PlainTextResponse(
            text,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @with_view
    async def deploy(request: Request, view: BuilderView) -> Response:
        try:
            result = await view.deploy()
        except DeploymentError as e:
            return JSONResponse({"success": False, "error": str(e)}, status_code=502)
        return JSONResponse({"success": True, "url": result.url, "repoUrl": result.repo_url})

    async def delete_view(request: Request) -> Response:
        """View unmount: tear down and forget."""
        registry: ViewRegistry = request.app.state.registry
        try:
            await registry.close(request.path_params["view_id"])
        except ViewNotFoundError as e:
            return JSONResponse({"error": str(e)}, status_code=404)
        return Response(status_code=204)

    return [
        Route("/health", health, methods=["GET"]),
        Route("/ping", health, methods=["GET"]),
        Route("/views", create_view, methods=["POST"]),
        Route("/views/{view_id}", get_view, methods=["GET"]),
        Route("/views/{view_id}", delete_view, methods=["DELETE"]),
        Route("/views/{view_id}/start", start, methods=["POST"]),
        Route("/views/{view_id}/rebuild", rebuild, methods=["POST"]),
        Route("/views/{view_id}/tree", get_tree, methods=["GET"]),
        Route("/views/{view_id}/files", edit_file, methods=["PUT"]),
        Route("/views/{view_id}/download", download, methods=["GET"]),
        Route("/views/{view_id}/deploy", deploy, methods=["POST"]),
    ]
