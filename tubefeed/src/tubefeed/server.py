"""
FastAPI server exposing the upstream gateway.

Provides:
- ``GET /?channelId=<id>`` channel feed document
- ``GET /?search=<q>`` JSON list of channel summaries
- ``OPTIONS *`` CORS preflight
- ``GET /health`` health check
"""

from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from pydantic import BaseModel

from . import __version__
from .config import get_settings
from .gateway import GatewayRequest, GatewayResponse, UpstreamGateway
from .logging_conf import get_logger, setup_logging

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str = __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json,
    )

    logger.info(
        "server_starting",
        allowed_origins=settings.allowed_origins_list,
        rate_limit_cap=settings.rate_limit_cap,
    )

    yield

    logger.info("server_stopped")


def create_app(gateway: Optional[UpstreamGateway] = None) -> FastAPI:
    """
    Build the FastAPI app around a gateway.

    Args:
        gateway: Gateway to serve; built from settings when omitted
    """
    app = FastAPI(
        title="TubeFeed Gateway",
        description="Protective gateway for channel feeds and channel search",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway or UpstreamGateway.from_settings(get_settings())

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @app.get("/")
    async def proxy(request: Request):
        """Feed and search routes, dispatched on query parameters."""
        return await _dispatch(app.state.gateway, request)

    @app.options("/{path:path}")
    async def preflight(request: Request, path: str = ""):
        """CORS preflight for any path."""
        return await _dispatch(app.state.gateway, request)

    return app


async def _dispatch(gateway: UpstreamGateway, request: Request) -> Response:
    result = await gateway.handle(GatewayRequest(
        method=request.method,
        headers=dict(request.headers),
        query=dict(request.query_params),
    ))
    return _to_response(result)


def _to_response(result: GatewayResponse) -> Response:
    if result.status_code == 204:
        return Response(status_code=204, headers=result.headers)
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
        media_type=result.content_type,
    )


def run_server(
    host: str = "0.0.0.0",
    port: Optional[int] = None,
):
    """
    Run the gateway server.

    Args:
        host: Host to bind to
        port: Port to bind to (defaults to settings.port)
    """
    import uvicorn

    settings = get_settings()
    port = port or settings.port

    logger.info("starting_server", host=host, port=port)

    uvicorn.run(
        create_app(),
        host=host,
        port=port,
        log_level="info",
    )
