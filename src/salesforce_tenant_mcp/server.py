"""FastMCP server setup and lifecycle management for Salesforce tenant MCP."""

from __future__ import annotations

import asyncio
import os
import signal
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator

import msgspec
import typer
from dotenv import load_dotenv
from fastmcp import FastMCP

from .config import ManagerSettings, load_tenant_configs
from .context import set_session_manager
from .logging_config import get_logger, setup_logging
from .sessions.manager import SessionManager
from .tools import register_query_tools, register_tenant_tools

load_dotenv()
setup_logging()

logger = get_logger("server")


class ServerConfig(msgspec.Struct, kw_only=True):
    """Server configuration."""

    settings: ManagerSettings
    # HTTP server settings
    port: int = 8000


class AppContext(msgspec.Struct, kw_only=True):
    """Application context shared across requests."""

    session_manager: SessionManager
    config: ServerConfig


def _default_port() -> int:
    # Cloud platform standard: PORT first, then FASTMCP_PORT, then default
    return int(os.getenv("PORT") or os.getenv("FASTMCP_PORT") or "8000")


def get_config() -> ServerConfig:
    """Load configuration from environment variables."""
    config = ServerConfig(settings=ManagerSettings.from_env(), port=_default_port())
    logger.debug("Loaded config: port=%d", config.port)
    return config


async def _bootstrap_tenants(manager: SessionManager, tenants_file: str) -> None:
    """Adopt tenants listed in the tenants file; a bad file is logged, not fatal."""
    try:
        configs = load_tenant_configs(tenants_file)
    except (OSError, msgspec.DecodeError) as e:
        logger.error("Could not load tenants file %s: %s", tenants_file, e)
        return
    await manager.bootstrap(configs)


@asynccontextmanager
async def app_lifespan(mcp: FastMCP) -> AsyncIterator[AppContext]:
    """Create the session manager on startup and close it on shutdown."""
    logger.info("Starting Salesforce tenant MCP Server")
    config = get_config()

    session_manager = SessionManager.from_env(config.settings)
    set_session_manager(session_manager)

    if config.settings.tenants_file:
        await _bootstrap_tenants(session_manager, config.settings.tenants_file)

    ctx = AppContext(session_manager=session_manager, config=config)

    try:
        logger.info("Server initialization complete")
        yield ctx
    finally:
        logger.info("Shutting down Salesforce tenant MCP Server")
        await session_manager.close()
        set_session_manager(None)
        logger.info("Server shutdown complete")


def _print_config(transport: str, port: int) -> None:
    """Print server configuration at startup."""
    settings = ManagerSettings.from_env()

    sections: list[tuple[str, list[tuple[str, str]]]] = [
        (
            "Server",
            [
                ("Transport", transport),
                ("Port", str(port)),
                ("Log Level", os.getenv("LOG_LEVEL", "INFO")),
            ],
        ),
        (
            "Sessions",
            [
                ("Refresh Interval", f"{settings.refresh_interval:g}s"),
                ("HTTP Timeout", f"{settings.http_timeout:g}s"),
                ("HTTP Retries", str(settings.http_retries)),
                ("Tenants File", settings.tenants_file or "(not set)"),
            ],
        ),
    ]

    logger.info("")
    logger.info("=" * 55)
    logger.info("  Salesforce Tenant MCP Server Configuration")
    logger.info("=" * 55)

    for section_name, items in sections:
        logger.info("")
        logger.info("  [%s]", section_name)
        for key, value in items:
            logger.info("    %-20s %s", key, value)

    logger.info("")
    logger.info("=" * 55)

    if settings.tenants_file and not os.path.exists(settings.tenants_file):
        logger.warning(
            "  SALESFORCE_TENANTS_FILE does not exist: %s", settings.tenants_file
        )
        logger.info("")


def create_server() -> FastMCP:
    """Create and configure the FastMCP server."""
    logger.debug("Creating FastMCP server instance")

    mcp = FastMCP("Salesforce Tenant MCP Server", lifespan=app_lifespan)

    logger.debug("Registering tenant tools")
    register_tenant_tools(mcp)
    logger.debug("Registering query tools")
    register_query_tools(mcp)

    logger.debug("Server creation complete")
    return mcp


# Default server instance for `fastmcp run` (import compatibility)
mcp = create_server()


async def run_server_async(transport: str, port: int) -> None:
    """Run the server with graceful shutdown support.

    Args:
        transport: Transport mode ('stdio' or 'http')
        port: Port number for HTTP transport
    """
    _print_config(transport, port)
    server = create_server()

    def handle_shutdown(sig: signal.Signals) -> None:
        logger.info("Received signal %s, initiating shutdown...", sig.name)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler for SIGTERM
            pass

    logger.info("Starting server with transport: %s", transport)

    try:
        if transport == "http":
            await server.run_async(transport="http", port=port)
        else:
            await server.run_async(transport="stdio")
    except asyncio.CancelledError:
        logger.info("Server task cancelled")


app = typer.Typer(
    name="salesforce-tenant-mcp",
    help="Salesforce Tenant MCP Server - multi-tenant Salesforce sessions over MCP.",
    add_completion=False,
)


@app.command()
def main(
    transport: Annotated[
        str,
        typer.Option(
            "--transport",
            "-t",
            help="Transport mode: stdio, http",
        ),
    ] = "stdio",
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-p",
            help="Port for HTTP transport (default: from PORT env or 8000)",
        ),
    ] = None,
) -> None:
    """Run the Salesforce Tenant MCP Server."""
    if transport not in ("stdio", "http"):
        raise typer.BadParameter("transport must be 'stdio' or 'http'")
    actual_port = port or _default_port()

    try:
        asyncio.run(run_server_async(transport, actual_port))
    except KeyboardInterrupt:
        # Fallback for platforms where signal handlers don't work
        logger.info("Server stopped by user")


if __name__ == "__main__":
    app()
