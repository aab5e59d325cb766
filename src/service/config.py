"""
Configuration setup for the dashboard session client.

This module handles:
- Environment variables parsing (a `.env` file is loaded if present)
- Logging setup
- Validation of the backend and Supabase settings
"""
import os
import logging
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_api_base_url() -> str:
    """
    Get the backend base URL from the API_BASE_URL environment variable.

    Returns:
        The URL without a trailing slash

    Raises:
        ValueError: If API_BASE_URL is not set
    """
    api_base_url = os.getenv("API_BASE_URL", "").strip()
    if not api_base_url:
        raise ValueError("API_BASE_URL environment variable is not set.")
    if not api_base_url.startswith(("http://", "https://")):
        logger.warning(
            f'API base URL may be invalid: "{api_base_url}". Expected URL starting with http:// or https://'
        )
    return api_base_url.rstrip("/")


def get_supabase_config() -> Tuple[str, str]:
    """
    Get the Supabase project URL and anon key.

    Raises:
        ValueError: If either variable is missing
    """
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_ANON_KEY")
    missing = [name for name, value in [("SUPABASE_URL", supabase_url), ("SUPABASE_ANON_KEY", supabase_key)] if not value]
    if missing:
        raise ValueError(f'Missing required environment variables: {", ".join(missing)}')
    return supabase_url, supabase_key


def get_heartbeat_interval() -> float:
    """Heartbeat period in seconds, from HEARTBEAT_INTERVAL_MS (default 5000)."""
    raw = os.getenv("HEARTBEAT_INTERVAL_MS", "5000")
    try:
        interval_ms = int(raw)
    except ValueError:
        raise ValueError(f"HEARTBEAT_INTERVAL_MS must be an integer, got {raw!r}")
    if interval_ms <= 0:
        raise ValueError(f"HEARTBEAT_INTERVAL_MS must be positive, got {interval_ms}")
    return interval_ms / 1000


def get_request_timeout() -> float:
    raw = os.getenv("HEARTBEAT_TIMEOUT_SECONDS", "10")
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"HEARTBEAT_TIMEOUT_SECONDS must be a number, got {raw!r}")
    if timeout <= 0:
        raise ValueError(f"HEARTBEAT_TIMEOUT_SECONDS must be positive, got {timeout}")
    return timeout


def get_login_path() -> str:
    return os.getenv("LOGIN_PATH", "/login")


def get_log_level() -> str:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if log_level not in VALID_LOG_LEVELS:
        logger.warning(
            f"Invalid LOG_LEVEL '{log_level}'. Using INFO instead. Valid levels: {', '.join(VALID_LOG_LEVELS)}"
        )
        log_level = 'INFO'
    return log_level


def configure_logging() -> str:
    """Configure root logging from LOG_LEVEL and return the level used."""
    log_level = get_log_level()
    logging.basicConfig(level=getattr(logging, log_level), format=LOG_FORMAT)
    return log_level


@dataclass
class DashboardConfig:
    """Settings for one DashboardSession."""
    api_base_url: str
    login_path: str = "/login"
    heartbeat_interval: float = 5.0
    request_timeout: float = 10.0

    def __post_init__(self):
        if not self.api_base_url:
            raise ValueError("api_base_url must be a non-empty string")
        if not self.login_path.startswith("/"):
            raise ValueError(f"login_path must start with '/', got {self.login_path!r}")
        if self.heartbeat_interval <= 0:
            raise ValueError("heartbeat_interval must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        return cls(
            api_base_url=get_api_base_url(),
            login_path=get_login_path(),
            heartbeat_interval=get_heartbeat_interval(),
            request_timeout=get_request_timeout(),
        )


__all__ = [
    'get_api_base_url',
    'get_supabase_config',
    'get_heartbeat_interval',
    'get_request_timeout',
    'get_login_path',
    'get_log_level',
    'configure_logging',
    'DashboardConfig',
]
