"""
SultanStamp portal configuration.

Frozen dataclass for immutable configuration with environment overrides.

Environment variables can override defaults (read at module import time):
- API_BASE_URL: Backend API URL
- API_TIMEOUT_SECONDS: Override API timeout
- MAX_RETRY_ATTEMPTS: Retries for idempotent failures
- WS_URL: Realtime WebSocket URL
- TOAST_DEFAULT_DURATION_MS: How long toasts stay visible
"""

import os
from dataclasses import dataclass, field


def _get_int_env(name: str, default: int) -> int:
    """Get integer environment variable or return default."""
    val = os.getenv(name)
    if val is not None:
        try:
            return int(val)
        except ValueError:
            pass
    return default


def _get_str_env(name: str, default: str) -> str:
    """Get string environment variable or return default."""
    return os.getenv(name, default)


def _default_ws_url() -> str:
    base = _get_str_env('API_BASE_URL', 'http://localhost:8000').rstrip('/')
    if base.startswith('https://'):
        base = 'wss://' + base[len('https://'):]
    elif base.startswith('http://'):
        base = 'ws://' + base[len('http://'):]
    return f"{base}/api/v1/ws"


@dataclass(frozen=True)
class PortalConfig:
    """Immutable portal configuration.

    frozen=True ensures config values cannot be accidentally modified.
    Environment variables are read at module import time.
    """

    # Application
    APP_NAME: str = "SultanStamp"
    CURRENCY_SYMBOL: str = "€"

    # Backend API
    API_BASE_URL: str = field(
        default_factory=lambda: _get_str_env('API_BASE_URL', 'http://localhost:8000').rstrip('/')
    )
    API_TIMEOUT_SECONDS: int = field(
        default_factory=lambda: _get_int_env('API_TIMEOUT_SECONDS', 30)
    )
    MAX_RETRY_ATTEMPTS: int = field(
        default_factory=lambda: _get_int_env('MAX_RETRY_ATTEMPTS', 3)
    )

    # Realtime
    WS_URL: str = field(default_factory=lambda: _get_str_env('WS_URL', _default_ws_url()))
    WS_PING_INTERVAL_SECONDS: int = 25
    WS_RECONNECT_MAX_DELAY_SECONDS: int = 30

    # Toasts
    TOAST_DEFAULT_DURATION_MS: int = field(
        default_factory=lambda: _get_int_env('TOAST_DEFAULT_DURATION_MS', 5000)
    )
    TOAST_QUEUE_LIMIT: int = 5

    # Notifications kept in memory
    NOTIFICATION_LIMIT: int = 50

    # Artwork
    MIN_PRINT_DPI: int = 300


# Global immutable config instance
config = PortalConfig()
