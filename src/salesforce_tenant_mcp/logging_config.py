"""Logging configuration for the Salesforce tenant MCP server.

All modules obtain loggers through :func:`get_logger` so that every logger
lives under the ``salesforce_tenant_mcp`` hierarchy and picks up the handler
installed by :func:`setup_logging`.

Environment variables:
    LOG_LEVEL: Logging level name (default: INFO)
"""

from __future__ import annotations

import logging
import os
import sys

ROOT_LOGGER_NAME = "salesforce_tenant_mcp"

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure the package logger once.

    MCP stdio transport uses stdout for protocol messages, so log records
    always go to stderr.

    Args:
        level: Level name; falls back to LOG_LEVEL, then INFO
    """
    global _configured

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace.

    Args:
        name: Dotted suffix, e.g. ``"sessions.manager"``

    Returns:
        logging.Logger named ``salesforce_tenant_mcp.<name>``
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def mask_secret(value: str | None) -> str:
    """Mask tokens and secrets for log output."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "****"
    return value[:4] + "****" + value[-4:]
