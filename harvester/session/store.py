"""Cookie persistence between unattended runs."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from playwright.sync_api import BrowserContext

from .credentials import SessionCredentialSet


logger = logging.getLogger(__name__)


class SessionStore:
    """Saves and restores the portal session cookies as a JSON list.

    A missing or empty file is a normal "no session" state. ``save`` and
    ``load`` report problems through their boolean result instead of raising,
    so callers must check it.
    """

    def __init__(self, session_file: Union[str, Path]):
        self.session_file = Path(session_file)

    def exists(self) -> bool:
        return self.session_file.exists()

    def save(self, context: BrowserContext) -> bool:
        """Write the context's current cookies to the session file.

        Args:
            context: Playwright browser context to read cookies from

        Returns:
            bool: True if the file was written
        """
        try:
            credentials = SessionCredentialSet.from_cookies(context.cookies())
            self.session_file.parent.mkdir(parents=True, exist_ok=True)
            self.session_file.write_text(
                json.dumps(credentials.to_cookies(), indent=2), encoding="utf-8"
            )
            logger.info(f"Saved {len(credentials)} cookies to {self.session_file}")
            return True
        except Exception as e:
            logger.error(f"Failed to save session cookies: {e}", exc_info=True)
            return False

    def load(self, context: BrowserContext, now: Optional[float] = None) -> bool:
        """Install the saved, still-valid cookies into a browser context.

        Expired cookies are skipped. If none survive, nothing is installed.

        Args:
            context: Playwright browser context to receive the cookies
            now: Reference time in epoch seconds (default: current time)

        Returns:
            bool: True if at least one valid cookie was installed
        """
        if not self.session_file.exists():
            logger.warning(f"Session file not found at {self.session_file}, a fresh login is needed")
            return False

        try:
            raw = self.session_file.read_text(encoding="utf-8")
            cookies = json.loads(raw) if raw.strip() else []
            if not isinstance(cookies, list) or not all(isinstance(c, dict) for c in cookies):
                logger.error(f"Session file {self.session_file} does not hold a cookie list")
                return False
            credentials = SessionCredentialSet.from_cookies(cookies)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to read session file {self.session_file}: {e}")
            return False

        if not credentials:
            logger.warning("No cookies found in session file")
            return False

        for credential in credentials.expired(now):
            logger.debug(f"Skipping expired cookie: {credential.name}")

        valid = credentials.usable(now)
        if not valid:
            logger.warning("All saved cookies are expired")
            return False

        try:
            context.add_cookies(valid.to_cookies())
        except Exception as e:
            logger.error(f"Failed to install session cookies: {e}")
            return False

        logger.info(f"Loaded {len(valid)}/{len(credentials)} valid cookies")
        return True

    def clear(self) -> None:
        """Delete saved session file."""
        if self.session_file.exists():
            self.session_file.unlink()
            logger.info(f"Deleted saved session: {self.session_file}")
        else:
            logger.debug(f"Saved session file does not exist: {self.session_file}")
