"""HTTP middleware."""

from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from preview_core.observability import RequestContext, get_logger
from preview_core.utils.validation import is_safe_identifier

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the logging context for each request.

    A well-formed incoming id header is reused; otherwise one is generated.
    The id is echoed back on the response.
    """

    def __init__(self, app: Any, header_name: str = "X-Request-ID") -> None:
        """Initialize request context middleware.

        Args:
            app: The ASGI application
            header_name: Header carrying the request id
        """
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        incoming = request.headers.get(self.header_name)
        if not is_safe_identifier(incoming):
            incoming = None

        async with RequestContext(request_id=incoming) as ctx:
            request.state.request_id = ctx.request_id
            response = await call_next(request)

        response.headers[self.header_name] = ctx.request_id
        logger.debug(
            "Request handled",
            context={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
            },
        )
        return response
