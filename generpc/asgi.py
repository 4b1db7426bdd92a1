"""FastAPI adapter: exposes a Server on one HTTP route."""

from __future__ import annotations

import io

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response
from loguru import logger
from starlette.concurrency import run_in_threadpool

from generpc.config import Settings, get_settings
from generpc.server import Server
from generpc.transport import HttpRequest, ResponseWriter

# Every verb is routed to the server so it can answer 405 itself.
_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def mount(app: FastAPI, server: Server, path: str | None = None) -> None:
    """Add the RPC route for server to app. Defaults to the server's rpc_path setting."""
    route_path = path or server.settings.rpc_path

    async def rpc_endpoint(request: Request) -> Response:
        body = await request.body()
        exchange = HttpRequest(
            method=request.method,
            headers=request.headers,
            body=io.BytesIO(body),
            content_length=len(body),
        )
        writer = ResponseWriter()
        await run_in_threadpool(server.serve, writer, exchange)
        return Response(
            content=writer.getvalue(),
            status_code=writer.status_code,
            headers=dict(writer.headers),
        )

    app.add_api_route(route_path, rpc_endpoint, methods=_ALL_METHODS, include_in_schema=False)
    logger.info("RPC endpoint mounted at {} ({} methods)", route_path, len(server.method_names()))


def create_app(server: Server, settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application serving server."""
    settings = settings or server.settings
    app = FastAPI(title="GeneRPC", description="JSON-RPC 2.0 endpoint", version="0.1.0")
    mount(app, server, settings.rpc_path)
    return app


def run_server(server: Server, settings: Settings | None = None) -> None:
    """Run server over HTTP (blocks)."""
    settings = settings or get_settings()
    app = create_app(server, settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=30,
        log_level="warning",
    )
