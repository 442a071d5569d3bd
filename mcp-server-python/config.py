"""
Configuration module for the marketplace sync MCP server.

Provides centralized configuration management with support for:
- Environment variables
- Default values
- Path resolution
- Logging configuration
"""

import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from models.errors import MarketplaceError
from models.status import ActorRole
from utils.validation import DEFAULT_NOTIFICATION_LIMIT, validate_limit

# Load environment variables from .env file at project root
# config.py is in mcp-server-python/, so .env is in parent directory
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)

DEFAULT_API_URL = "http://localhost:5001/api"


def _parse_bool(env_var: str, default: bool) -> bool:
    """Parse a boolean value from an environment variable."""
    value = os.getenv(env_var)
    if value is None:
        return default
    return value.lower() in ("true", "1", "t", "y", "yes")


def _parse_number(env_var: str, default, cast=float):
    """Parse a numeric environment variable, falling back to the default on garbage."""
    value = os.getenv(env_var)
    if value is None or not value.strip():
        return default
    try:
        return cast(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            "Ignoring invalid %s=%r, using default %s", env_var, value, default
        )
        return default


class Config:
    """
    Configuration class for the marketplace session and MCP server.

    Supports configuration via environment variables (and .env file) with sensible defaults.
    """

    def __init__(self):
        """Initialize configuration from environment variables and defaults."""
        # Repository root detection
        self._repo_root = self._find_repo_root()

        # Backend configuration
        self.api_url = os.getenv("MARKETPLACE_API_URL", DEFAULT_API_URL).rstrip("/")
        self.api_token = os.getenv("MARKETPLACE_API_TOKEN") or None
        self.request_timeout = _parse_number("MARKETPLACE_REQUEST_TIMEOUT_SECONDS", 15.0)

        # Signed-in actor (produced by the sign-in flow, outside this package)
        self.actor_role = os.getenv("MARKETPLACE_ACTOR_ROLE", ActorRole.JOBSEEKER.value).strip().lower()

        # Notification engine
        self.notification_limit = _parse_number(
            "MARKETPLACE_NOTIFICATION_LIMIT", DEFAULT_NOTIFICATION_LIMIT, int
        )
        self.notification_poll_seconds = _parse_number("MARKETPLACE_NOTIFICATION_POLL_SECONDS", 30.0)
        self.decrement_unread_on_delete = _parse_bool(
            "MARKETPLACE_DECREMENT_UNREAD_ON_DELETE", False
        )

        # Logging configuration
        self.log_level = os.getenv("MARKETPLACE_LOG_LEVEL", "INFO").upper()
        self.log_file = self._resolve_log_path()

        # Server configuration
        self.server_name = os.getenv("MARKETPLACE_SERVER_NAME", "marketplace-sync-mcp-server")

    def _find_repo_root(self) -> Path:
        """
        Find the repository root directory.

        Returns:
            Path to repository root
        """
        current_file = Path(__file__).resolve()
        # config.py is in mcp-server-python/, so parent is repo root
        return current_file.parent.parent

    def _resolve_log_path(self) -> Optional[Path]:
        """
        Resolve the log file path from environment.

        If MARKETPLACE_LOG_FILE is set, logs will be written to that file.
        Otherwise, logs go to stderr only.

        Returns:
            Path to log file, or None for stderr-only logging
        """
        log_env = os.getenv("MARKETPLACE_LOG_FILE")
        if not log_env:
            return None

        log_path = Path(log_env)
        if log_path.is_absolute():
            return log_path
        else:
            # Relative to repo root
            return self._repo_root / log_path

    def setup_logging(self):
        """
        Configure logging based on configuration settings.

        Sets up logging to stderr and optionally to a file.
        Log level is controlled by MARKETPLACE_LOG_LEVEL.
        """
        numeric_level = getattr(logging, self.log_level, logging.INFO)

        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)

        # Remove existing handlers to avoid duplicates
        root_logger.handlers.clear()

        # stdout carries the MCP stdio protocol, so logs always go to stderr
        stderr_handler = logging.StreamHandler()
        stderr_handler.setLevel(numeric_level)
        stderr_handler.setFormatter(formatter)
        root_logger.addHandler(stderr_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(self.log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            logging.info(f"Logging to file: {self.log_file}")

        # httpx logs every request at INFO; keep it quiet unless debugging
        if numeric_level > logging.DEBUG:
            logging.getLogger("httpx").setLevel(logging.WARNING)

        logging.info(f"Log level set to: {self.log_level}")
        logging.info(f"API URL: {self.api_url}")
        logging.info(f"Actor role: {self.actor_role}")

    def validate(self) -> list[str]:
        """
        Validate configuration and return any warnings.

        Returns:
            List of warning messages (empty if all valid)
        """
        warnings = []

        parsed = urlparse(self.api_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            warnings.append(f"MARKETPLACE_API_URL is not an http(s) URL: {self.api_url}")

        if not self.api_token:
            warnings.append(
                "MARKETPLACE_API_TOKEN is not set. "
                "Requests will be anonymous and mutations will fail with UNAUTHORIZED."
            )

        if self.actor_role not in {role.value for role in ActorRole}:
            warnings.append(
                f"Unknown MARKETPLACE_ACTOR_ROLE '{self.actor_role}'. "
                "Every mutation will be rejected as unauthorized."
            )

        try:
            validate_limit(self.notification_limit)
        except MarketplaceError as e:
            warnings.append(
                f"MARKETPLACE_NOTIFICATION_LIMIT rejected ({e.message}); "
                f"using {DEFAULT_NOTIFICATION_LIMIT}"
            )
            self.notification_limit = DEFAULT_NOTIFICATION_LIMIT

        if self.notification_poll_seconds <= 0:
            warnings.append(
                f"MARKETPLACE_NOTIFICATION_POLL_SECONDS must be positive, got {self.notification_poll_seconds}"
            )

        if self.decrement_unread_on_delete:
            warnings.append(
                "MARKETPLACE_DECREMENT_UNREAD_ON_DELETE is enabled; this departs from the "
                "web client's unread accounting."
            )

        # Check if log file directory is writable (if configured)
        if self.log_file:
            log_dir = self.log_file.parent
            if not log_dir.exists():
                try:
                    log_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    warnings.append(f"Cannot create log directory {log_dir}: {e}")
            elif not os.access(log_dir, os.W_OK):
                warnings.append(f"Log directory not writable: {log_dir}")

        return warnings


# Global configuration instance
config = Config()


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Global Config instance
    """
    return config
