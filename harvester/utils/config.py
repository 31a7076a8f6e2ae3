"""Configuration management for the portal token harvester."""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from ..errors import ConfigurationError
from .retry import RetryPolicy


DEFAULT_PORTAL_URL = "https://portal.talabat.com/ae/"
DEFAULT_TOKEN_ENDPOINT_FRAGMENT = "/v5/token"
DEFAULT_SHEET_RANGE = "Sheet1!A1:B1"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _is_true(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Path to .env file (default: .env in project root)
        """
        if env_file:
            load_dotenv(env_file)
        else:
            project_root = Path(__file__).parent.parent.parent
            env_path = project_root / ".env"
            if env_path.exists():
                load_dotenv(env_path)

    # Portal
    @property
    def portal_url(self) -> str:
        """Portal page that hosts the login form."""
        return os.getenv("PORTAL_URL", DEFAULT_PORTAL_URL)

    @property
    def token_endpoint_fragment(self) -> str:
        """URL fragment identifying the token-issuing response."""
        return os.getenv("TOKEN_ENDPOINT_FRAGMENT", DEFAULT_TOKEN_ENDPOINT_FRAGMENT)

    @property
    def portal_email(self) -> Optional[str]:
        """Portal login email (credential mode only)."""
        return os.getenv("PORTAL_EMAIL") or None

    @property
    def portal_password(self) -> Optional[str]:
        """Portal login password (credential mode only)."""
        return os.getenv("PORTAL_PASSWORD") or None

    @property
    def credential_mode(self) -> bool:
        """True when both portal credentials are configured."""
        return bool(self.portal_email and self.portal_password)

    # Google Sheets
    @property
    def sheet_id(self) -> str:
        """Target spreadsheet ID."""
        value = os.getenv("SHEET_ID", "")
        if not value:
            raise ConfigurationError("Missing SHEET_ID environment variable")
        return value

    @property
    def sheet_range(self) -> str:
        """Cells overwritten with token and timestamp."""
        return os.getenv("SHEET_RANGE", DEFAULT_SHEET_RANGE)

    @property
    def google_service_account(self) -> Dict[str, Any]:
        """Service account info, from GOOGLE_SERVICE_ACCOUNT (JSON) or GOOGLE_SERVICE_ACCOUNT_FILE."""
        raw = os.getenv("GOOGLE_SERVICE_ACCOUNT", "")
        source = "GOOGLE_SERVICE_ACCOUNT"
        if not raw:
            path_str = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", "")
            if not path_str:
                raise ConfigurationError(
                    "Missing GOOGLE_SERVICE_ACCOUNT (or GOOGLE_SERVICE_ACCOUNT_FILE) environment variable"
                )
            source = path_str
            try:
                raw = Path(path_str).read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(f"Cannot read service account file {path_str}: {e}") from e

        try:
            info = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Service account in {source} is not valid JSON: {e}") from e
        if not isinstance(info, dict):
            raise ConfigurationError(f"Service account in {source} must be a JSON object")
        return info

    # Session persistence
    @property
    def session_file(self) -> Path:
        """Path to the saved cookie file."""
        return Path(os.getenv("SESSION_FILE", "./session-cookies.json"))

    # Retry settings
    @property
    def retry_max_attempts(self) -> int:
        """Maximum attempts per retried operation."""
        return int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))

    @property
    def retry_base_delay_ms(self) -> int:
        """Base backoff delay, doubled after each failed attempt."""
        return int(os.getenv("RETRY_BASE_DELAY_MS", "2000"))

    @property
    def retry_policy(self) -> RetryPolicy:
        """Retry policy shared by every retried operation in a run."""
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay_seconds=self.retry_base_delay_ms / 1000,
        )

    # Timeout settings
    @property
    def navigation_timeout_ms(self) -> int:
        """Timeout for navigation and selector waits."""
        return int(os.getenv("NAVIGATION_TIMEOUT_MS", "60000"))

    @property
    def token_wait_ms(self) -> int:
        """Total time to wait for the token after login."""
        return int(os.getenv("TOKEN_WAIT_MS", "15000"))

    @property
    def token_poll_interval_ms(self) -> int:
        """Interval between token latch checks."""
        return int(os.getenv("TOKEN_POLL_INTERVAL_MS", "500"))

    @property
    def page_settle_ms(self) -> int:
        """Pause after navigation and logout so the page can settle."""
        return int(os.getenv("PAGE_SETTLE_MS", "3000"))

    @property
    def setup_wait_seconds(self) -> int:
        """How long setup mode waits for a manual login."""
        return int(os.getenv("SETUP_WAIT_SECONDS", "60"))

    # Browser / mode
    @property
    def setup_mode(self) -> bool:
        """Run the interactive session setup instead of an unattended harvest."""
        return _is_true(os.getenv("SETUP_MODE", "false"))

    @property
    def headless_mode(self) -> bool:
        """Run browser in headless mode (default: True)."""
        return _is_true(os.getenv("HEADLESS_MODE", "true"))

    @property
    def user_agent(self) -> str:
        """User agent for the browsing context."""
        return os.getenv("USER_AGENT", DEFAULT_USER_AGENT)

    # Logging
    @property
    def log_level(self) -> str:
        """Logging level."""
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def log_dir(self) -> Path:
        """Directory for component log files."""
        return Path(os.getenv("LOG_DIR", "./logs"))

    def validate(self, setup_mode: Optional[bool] = None) -> bool:
        """Validate that all required configuration is present.

        Args:
            setup_mode: Validate for setup mode (default: SETUP_MODE env var)

        Returns:
            bool: True if configuration is valid

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if setup_mode is None:
            setup_mode = self.setup_mode

        if bool(self.portal_email) != bool(self.portal_password):
            raise ConfigurationError("PORTAL_EMAIL and PORTAL_PASSWORD must be set together")

        try:
            numeric = {
                "RETRY_MAX_ATTEMPTS": self.retry_max_attempts,
                "NAVIGATION_TIMEOUT_MS": self.navigation_timeout_ms,
                "TOKEN_WAIT_MS": self.token_wait_ms,
                "TOKEN_POLL_INTERVAL_MS": self.token_poll_interval_ms,
                "SETUP_WAIT_SECONDS": self.setup_wait_seconds,
            }
            base_delay = self.retry_base_delay_ms
            settle = self.page_settle_ms
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        for name, value in numeric.items():
            if value < 1:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if base_delay < 0 or settle < 0:
            raise ConfigurationError("RETRY_BASE_DELAY_MS and PAGE_SETTLE_MS must not be negative")

        if not setup_mode:
            _ = self.sheet_id
            _ = self.google_service_account

        return True


# Global config instance
_config: Optional[Config] = None


def get_config(env_file: Optional[str] = None) -> Config:
    """Get global configuration instance.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Config: Global configuration instance
    """
    global _config
    if _config is None:
        _config = Config(env_file)
    return _config
