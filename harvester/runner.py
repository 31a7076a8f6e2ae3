"""Wires browser, controller, validator and publisher into the two run modes."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from playwright.sync_api import Browser

from .auth.browser import launch_browser
from .auth.controller import BrowserSessionController
from .auth.token_validator import validate_token
from .publishing.sheets import PublishAck, SheetsPublisher
from .session.store import SessionStore
from .utils.config import Config
from .utils.retry import execute


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HarvestResult:
    token: str
    timestamp: str
    ack: PublishAck


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TokenHarvester:
    """Runs the interactive setup or an unattended harvest from one config."""

    def __init__(
        self,
        config: Config,
        publisher: Optional[SheetsPublisher] = None,
        headless: Optional[bool] = None,
    ):
        self.config = config
        self.headless = config.headless_mode if headless is None else headless
        self.policy = config.retry_policy
        self.session_store = SessionStore(config.session_file)
        self._publisher = publisher

    @property
    def publisher(self) -> SheetsPublisher:
        if self._publisher is None:
            self._publisher = SheetsPublisher.from_service_account_info(
                self.config.google_service_account,
                spreadsheet_id=self.config.sheet_id,
                value_range=self.config.sheet_range,
            )
        return self._publisher

    def build_controller(self, browser: Browser) -> BrowserSessionController:
        return BrowserSessionController(
            browser=browser,
            session_store=self.session_store,
            portal_url=self.config.portal_url,
            token_endpoint_fragment=self.config.token_endpoint_fragment,
            email=self.config.portal_email,
            password=self.config.portal_password,
            navigation_timeout_ms=self.config.navigation_timeout_ms,
            token_wait_ms=self.config.token_wait_ms,
            token_poll_interval_ms=self.config.token_poll_interval_ms,
            page_settle_ms=self.config.page_settle_ms,
            user_agent=self.config.user_agent,
        )

    def establish_session(self) -> None:
        """Headed browser, manual login, save cookies for unattended runs."""
        with launch_browser(headless=False, policy=self.policy) as browser:
            controller = self.build_controller(browser)
            controller.establish_session(wait_seconds=self.config.setup_wait_seconds)
        logger.info(f"Session saved to {self.session_store.session_file}")

    def harvest(self) -> HarvestResult:
        """Capture a fresh token and publish it.

        Raises:
            ConfigurationError: If the publisher cannot be built
            RetryExhausted: If token capture or publishing kept failing
        """
        # Bad credentials should fail before a browser is ever started
        publisher = self.publisher

        with launch_browser(headless=self.headless, policy=self.policy) as browser:
            controller = self.build_controller(browser)
            token = execute(lambda: self._capture(controller), "Token Capture", self.policy)

        timestamp = utc_timestamp()
        ack = execute(lambda: publisher.publish(token, timestamp), "Sheet Update", self.policy)
        return HarvestResult(token=token, timestamp=timestamp, ack=ack)

    @staticmethod
    def _capture(controller: BrowserSessionController) -> str:
        token = controller.acquire()
        # A malformed capture is most likely a partial response, so it is retried with the attempt
        validate_token(token)
        return token
