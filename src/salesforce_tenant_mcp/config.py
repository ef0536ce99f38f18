"""Environment configuration for the session manager.

Environment variables:
    SALESFORCE_HTTP_TIMEOUT: Request timeout in seconds (default: 30)
    SALESFORCE_HTTP_RETRIES: Connect retries per request (default: 3)
    SALESFORCE_REFRESH_INTERVAL: Seconds between token refreshes (default: 7200)
    SALESFORCE_TENANTS_FILE: JSON file of refresh configs adopted at startup
    SALESFORCE_USER_AGENT: User agent for REST calls
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import msgspec

from .logging_config import get_logger
from .salesforce.client import DEFAULT_USER_AGENT

if TYPE_CHECKING:
    from .sessions.models import RefreshConfig

logger = get_logger("config")

# Salesforce access tokens are refreshed every two hours.
REFRESH_INTERVAL_SECONDS = 2 * 60 * 60


class ManagerSettings(msgspec.Struct, kw_only=True):
    """Session manager settings."""

    http_timeout: float = 30.0
    http_retries: int = 3
    refresh_interval: float = float(REFRESH_INTERVAL_SECONDS)
    tenants_file: str | None = None
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "ManagerSettings":
        """Load settings from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        settings = cls(
            http_timeout=float(os.getenv("SALESFORCE_HTTP_TIMEOUT") or 30.0),
            http_retries=int(os.getenv("SALESFORCE_HTTP_RETRIES") or 3),
            refresh_interval=float(
                os.getenv("SALESFORCE_REFRESH_INTERVAL") or REFRESH_INTERVAL_SECONDS
            ),
            tenants_file=os.getenv("SALESFORCE_TENANTS_FILE") or None,
            user_agent=os.getenv("SALESFORCE_USER_AGENT") or DEFAULT_USER_AGENT,
        )
        if settings.refresh_interval <= 0:
            raise ValueError("SALESFORCE_REFRESH_INTERVAL must be positive")
        logger.debug(
            "Loaded settings: timeout=%s, retries=%d, refresh_interval=%s, "
            "tenants_file=%s",
            settings.http_timeout,
            settings.http_retries,
            settings.refresh_interval,
            settings.tenants_file,
        )
        return settings


def load_tenant_configs(path: str | Path) -> list[RefreshConfig]:
    """Read refresh configs from a JSON file.

    The file holds a list of objects with ``tenant_id``, ``auth_url``,
    ``client_id``, ``client_secret`` and ``refresh_token``.

    Raises:
        OSError: If the file cannot be read
        msgspec.ValidationError: If an entry is missing required fields
    """
    from .sessions.models import RefreshConfig

    content = Path(path).read_bytes()
    configs = msgspec.json.decode(content, type=list[RefreshConfig])
    logger.info("Loaded %d tenant config(s) from %s", len(configs), path)
    return configs
