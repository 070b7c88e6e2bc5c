"""Process entry point: serve the HISE docs tools over stdio or HTTP.

HTTP layout:
    Starlette App
      ├── /health  → corpus status and index statistics
      ├── /metrics → Prometheus exposition
      └── /mcp     → FastMCP streamable HTTP endpoint

Usage:
    hise-mcp-server                      # stdio (default)
    hise-mcp-server --transport http     # HTTP on HISE_MCP_HOST:HISE_MCP_PORT
    python -m hise_mcp_server.app --data-dir ./data
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from contextlib import asynccontextmanager
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from hise_mcp_server import __version__
from hise_mcp_server.config import Settings
from hise_mcp_server.domain.errors import CorpusNotLoadedError
from hise_mcp_server.observability import (
    TraceContextMiddleware,
    configure_logging,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    init_tracing,
)
from hise_mcp_server.server import create_server
from hise_mcp_server.service_layer.docs_service import DocumentationService


if TYPE_CHECKING:
    from starlette.requests import Request


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, service: DocumentationService | None = None) -> Starlette:
    """Create the ASGI application.

    The corpus is loaded inside the lifespan, before the MCP session manager
    starts, so no tool call can observe an unloaded service.

    Args:
        settings: Configuration (read from the environment when omitted)
        service: Pre-built service, mainly for tests

    Returns:
        Starlette application with /mcp, /health and /metrics routes
    """
    settings = settings or Settings()
    service = service or DocumentationService(settings)
    mcp = create_server(service, settings)
    # path="/" keeps the MCP endpoint at /mcp/ rather than /mcp/mcp/
    mcp_http_app = mcp.http_app(path="/")

    @asynccontextmanager
    async def lifespan(app: Starlette):
        await service.load()
        app.state.service = service
        async with mcp_http_app.lifespan(app):
            logger.info("HISE docs server ready")
            yield
        logger.info("HISE docs server stopped")

    async def health_check(request: Request) -> JSONResponse:
        try:
            stats = service.stats()
        except CorpusNotLoadedError:
            return JSONResponse({"status": "starting", "version": __version__}, status_code=503)
        return JSONResponse({"status": "healthy", "version": __version__, "index": stats})

    async def metrics_endpoint(_: Request) -> Response:
        return Response(content=get_metrics(), media_type=get_metrics_content_type())

    routes: list[Route | Mount] = [
        Route("/health", endpoint=health_check, methods=["GET"]),
        Route("/metrics", endpoint=metrics_endpoint, methods=["GET"]),
        Mount("/mcp", app=mcp_http_app),
    ]

    app = Starlette(
        debug=settings.log_level.lower() == "debug",
        routes=routes,
        lifespan=lifespan,
    )
    app.add_middleware(TraceContextMiddleware)
    return app


async def serve_stdio(settings: Settings) -> None:
    """Load the corpus, then speak MCP over stdin/stdout until the client disconnects."""
    service = DocumentationService(settings)
    await service.load()
    mcp = create_server(service, settings)
    await mcp.run_async(transport="stdio")


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hise-mcp-server",
        description="Serve HISE documentation search over the Model Context Protocol",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        help="MCP transport (default: HISE_MCP_TRANSPORT or stdio)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory holding the HISE JSON sources (default: HISE_DATA_DIR or ./data)",
    )
    parser.add_argument("--host", help="Bind address for the http transport")
    parser.add_argument("--port", type=int, help="Port for the http transport")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_settings(args: argparse.Namespace, settings: Settings | None = None) -> Settings:
    """Apply command-line overrides on top of environment configuration."""
    settings = settings or Settings()
    overrides = {
        field: value
        for field, value in (
            ("mcp_transport", args.transport),
            ("data_dir", args.data_dir),
            ("mcp_host", args.host),
            ("mcp_port", args.port),
        )
        if value is not None
    }
    if not overrides:
        return settings
    return Settings(**{**settings.model_dump(), **overrides})


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point."""
    args = build_argument_parser().parse_args(argv)
    settings = resolve_settings(args)

    configure_logging(level=settings.log_level, json_output=settings.log_json)
    init_metrics(service_name="hise-mcp-server")
    init_tracing(service_name="hise-mcp-server")

    logger.info(
        "Starting HISE docs MCP server %s (transport=%s, data_dir=%s)",
        __version__,
        settings.mcp_transport,
        settings.data_dir,
    )

    if settings.mcp_transport == "stdio":
        asyncio.run(serve_stdio(settings))
        return

    import uvicorn

    logger.info("Health check: http://%s:%d/health", settings.mcp_host, settings.mcp_port)
    uvicorn.run(
        create_app(settings),
        host=settings.mcp_host,
        port=settings.mcp_port,
        log_level=settings.log_level.lower(),
        log_config=None,  # keep our logging configuration
    )


if __name__ == "__main__":
    main()
