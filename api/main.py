"""
FastAPI application for staticserve.

A single catch-all route maps request paths onto the document root, renders
registered template extensions and streams everything else as raw bytes.
"""

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse, Response
from urllib.parse import quote
import logging
import os
import stat

from core.config import ServerConfig
from core.errors import NotFound, RenderError, RequestError
from core.handlers import HandlerRegistry, TemplateHandler
from core.mime import content_type_for
from core.resolver import PathResolver
from observability.metrics import metrics
from observability.tracing import template_span

logger = logging.getLogger(__name__)

REASONS = {
    404: "Not Found",
    500: "Internal Server Error",
}


def error_response(status_code: int, head_only: bool = False) -> HTMLResponse:
    """Minimal HTML error page; never includes paths or tracebacks."""
    reason = REASONS.get(status_code, "Error")
    body = f"<html><head><title>{reason}</title></head><body><h1>{status_code} {reason}</h1></body></html>\n"
    response = HTMLResponse(content=body, status_code=status_code)
    if head_only:
        response.body = b""
    return response


def create_app(config: ServerConfig, handlers: HandlerRegistry) -> FastAPI:
    """
    Build the application serving one document root.

    Args:
        config: Validated server configuration
        handlers: Template handler registry, consulted on every request

    Returns:
        FastAPI: Application ready to be served by uvicorn
    """
    resolver = PathResolver(config.root_dir, config.index_files, config.nondisclosure_names)

    # No docs routes: every path belongs to the document root
    app = FastAPI(
        title="staticserve",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(RequestError)
    async def request_error_handler(request: Request, exc: RequestError):
        if isinstance(exc, NotFound):
            logger.debug("Not found: %s", request.scope["path"])
        metrics.record_request_finished("error", exc.status_code)
        return error_response(exc.status_code, head_only=request.method == "HEAD")

    def render_template(request: Request, path, handler: TemplateHandler) -> Response:
        try:
            source = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            raise RenderError(f"{path.name} is not valid UTF-8") from e
        except OSError as e:
            raise NotFound(request.scope["path"]) from e

        context = {
            "path": request.scope["path"],
            "query": dict(request.query_params),
        }
        with template_span(handler.extension, request.scope["path"]):
            try:
                with metrics.render_timer(handler.extension):
                    body = handler.renderer.render(source, context)
            except RenderError:
                logger.exception("Failed to render %s", request.scope["path"])
                raise
            except Exception as e:
                logger.exception("Renderer failed on %s", request.scope["path"])
                raise RenderError(f"{type(e).__name__} while rendering") from e

        encoded = body.encode("utf-8")
        headers = {"content-length": str(len(encoded))}
        content = b"" if request.method == "HEAD" else encoded
        return Response(content=content, media_type=handler.content_type, headers=headers)

    # Sync route: FastAPI runs it in the threadpool
    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    def serve_path(request: Request, path: str):
        with metrics.in_flight():
            return respond(request)

    def respond(request: Request) -> Response:
        url_path = request.scope["path"]
        target = resolver.locate(url_path)

        try:
            if target.is_dir():
                if not url_path.endswith("/"):
                    return redirect_to_directory(request, url_path)
                target = resolver.index_for(target)
            stat_result = os.stat(target)
        except OSError as e:
            raise NotFound(url_path) from e
        if not stat.S_ISREG(stat_result.st_mode):
            raise NotFound(url_path)

        handler = handlers.lookup(target.name)
        if handler is not None:
            response = render_template(request, target, handler)
            metrics.record_request_finished("template", response.status_code)
            return response

        # Open now so permission errors become a 404 before headers go out
        try:
            with open(target, "rb"):
                pass
        except OSError as e:
            raise NotFound(url_path) from e

        media_type = content_type_for(target, config.mime_overrides)
        metrics.record_request_finished("static", 200)
        return FileResponse(target, media_type=media_type, stat_result=stat_result)

    def redirect_to_directory(request: Request, url_path: str) -> RedirectResponse:
        # A single leading slash keeps the Location on this host
        location = "/" + quote(url_path.lstrip("/")) + "/"
        query_string = request.scope.get("query_string", b"").decode("latin-1")
        if query_string:
            location += "?" + query_string
        metrics.record_request_finished("redirect", 301)
        return RedirectResponse(location, status_code=301)

    return app
