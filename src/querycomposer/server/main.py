from __future__ import annotations

import logging

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from querycomposer.server.server_runtime import ComposerRuntime
from querycomposer.server.server_tools_composer import register_composer_tools
from querycomposer.server.server_tools_filters import register_filter_tools
from querycomposer.shared.config import ComposerConfig

logger = logging.getLogger(__name__)


def create_server(runtime: ComposerRuntime) -> FastMCP:
    """Build the MCP server with every composer tool registered."""
    mcp = FastMCP(name="querycomposer")
    register_composer_tools(mcp, runtime)
    register_filter_tools(mcp, runtime)
    return mcp


def main() -> None:
    """Entry point for launching the MCP server."""

    config = ComposerConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("🚀 Starting query composer MCP server")
    runtime = ComposerRuntime(config)
    runtime.initialize_critical_components()
    mcp = create_server(runtime)

    if config.transport == "sse":
        import uvicorn

        app = mcp.http_app(path="/", transport="sse")

        @app.route("/health", methods=["GET"])
        async def healthcheck(_: Request) -> JSONResponse:
            """Lightweight endpoint used for container health checks."""

            return JSONResponse({
                "status": "degraded" if runtime.degraded else "ok",
                "ready": runtime.server_ready,
            })

        logger.info("🌐 Running MCP server on http://%s:%s", config.host, config.port)
        logger.info("📡 SSE endpoint available at /sse")
        uvicorn.run(app, host=config.host, port=config.port)
    else:
        logger.info("📡 Running MCP server in STDIO mode")
        mcp.run()


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
