"""Playwright login cycle that makes the portal issue a fresh access token."""

import math
import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from playwright.sync_api import Browser, BrowserContext, Page, Error as PlaywrightError

from ..errors import (
    HarvesterError,
    SessionExpired,
    SessionUnavailable,
    TokenNotCaptured,
    TransientAutomationError,
)
from ..session.store import SessionStore
from .interceptor import TokenInterceptor
from .login_state import LOGOUT_SELECTORS, LoginState, LoginStateDetector, SelectorLoginStateDetector


logger = logging.getLogger(__name__)


class AttemptState(Enum):
    START = "start"
    SESSION_LOADED = "session_loaded"
    NAVIGATED = "navigated"
    LOGIN_VERIFIED = "login_verified"
    LOGOUT_LOGIN_CYCLE = "logout_login_cycle"
    DIRECT_LOGIN = "direct_login"
    AWAITING_TOKEN = "awaiting_token"
    TOKEN_CAPTURED = "token_captured"
    FAILED = "failed"


class LoginMode(Enum):
    CREDENTIALS = "credentials"
    SESSION = "session"


@dataclass
class AcquisitionAttempt:
    """Bookkeeping for one pass through the login cycle. Never persisted."""

    mode: LoginMode
    state: AttemptState = AttemptState.START
    captured_token: Optional[str] = None
    started_at: float = field(default_factory=time.monotonic)
    deadline: Optional[float] = None
    history: List[AttemptState] = field(default_factory=lambda: [AttemptState.START])

    def advance(self, state: AttemptState) -> None:
        logger.info(f"State: {self.state.name} → {state.name}")
        self.state = state
        self.history.append(state)

    def fail(self) -> AttemptState:
        """Move to FAILED and return the state the failure happened in."""
        failed_in = self.state
        self.advance(AttemptState.FAILED)
        return failed_in

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class BrowserSessionController:
    """Drives the portal through a login so its token endpoint fires.

    Two modes share the same state machine:

    - credential mode (email and password given): log out if needed, fill
      the login form and submit it;
    - session mode: install the saved cookies, verify the session, then
      force a logout/login cycle that relies on the browser's credential
      autofill.

    Every call to ``acquire`` uses a brand new browser context and page,
    both closed on the way out, so a retry never inherits a broken page.
    """

    EMAIL_FIELD = "input[type='email'], input[name*='email'], input[id*='email']"
    PASSWORD_FIELD = "input[type='password'], input[name*='password']"
    SUBMIT_BUTTON = "button[type='submit'], button[class*='submit'], button[class*='login']"

    VIEWPORT = {"width": 1920, "height": 1080}

    def __init__(
        self,
        browser: Browser,
        session_store: SessionStore,
        portal_url: str,
        token_endpoint_fragment: str,
        email: Optional[str] = None,
        password: Optional[str] = None,
        detector: Optional[LoginStateDetector] = None,
        navigation_timeout_ms: int = 60000,
        selector_timeout_ms: int = 10000,
        token_wait_ms: int = 15000,
        token_poll_interval_ms: int = 500,
        page_settle_ms: int = 3000,
        user_agent: Optional[str] = None,
    ):
        """Initialize controller.

        Args:
            browser: Launched Playwright browser
            session_store: Where session cookies are loaded from and saved to
            portal_url: Page hosting the login form
            token_endpoint_fragment: URL fragment of the token-issuing response
            email: Portal email (credential mode)
            password: Portal password (credential mode)
            detector: Login-state detector (default: selector heuristics)
            navigation_timeout_ms: Timeout for navigations and default actions
            selector_timeout_ms: Timeout when waiting for login form fields
            token_wait_ms: Total time to wait for the token after login
            token_poll_interval_ms: Interval between token checks
            page_settle_ms: Pause after navigation and logout
            user_agent: User agent override for the browsing context
        """
        self.browser = browser
        self.session_store = session_store
        self.portal_url = portal_url
        self.token_endpoint_fragment = token_endpoint_fragment
        self.email = email
        self.password = password
        self.detector = detector or SelectorLoginStateDetector()
        self.navigation_timeout_ms = navigation_timeout_ms
        self.selector_timeout_ms = min(selector_timeout_ms, navigation_timeout_ms)
        self.token_poll_interval_ms = token_poll_interval_ms
        self.token_max_polls = max(1, math.ceil(token_wait_ms / token_poll_interval_ms))
        self.page_settle_ms = page_settle_ms
        self.user_agent = user_agent

        self.last_attempt: Optional[AcquisitionAttempt] = None

    @property
    def mode(self) -> LoginMode:
        if self.email and self.password:
            return LoginMode.CREDENTIALS
        return LoginMode.SESSION

    def acquire(self) -> str:
        """Run one full login cycle and return the captured token.

        Raises:
            SessionUnavailable: Session mode without a usable session file
            SessionExpired: The saved session no longer logs in
            TokenNotCaptured: The token response never arrived
            TransientAutomationError: Any navigation or selector failure
        """
        attempt = AcquisitionAttempt(mode=self.mode)
        self.last_attempt = attempt
        logger.info(f"Starting token acquisition ({attempt.mode.value} mode)")

        try:
            with self._attempt_page() as (context, page):
                # Listener goes in before the first navigation so no response is missed
                interceptor = TokenInterceptor(self.token_endpoint_fragment).attach(page)
                try:
                    token = self._run(attempt, context, page, interceptor)
                finally:
                    interceptor.detach()
        except PlaywrightError as e:
            failed_in = attempt.fail()
            raise TransientAutomationError(
                f"Browser automation failed during {failed_in.name}: {e}"
            ) from e
        except Exception:
            attempt.fail()
            raise

        logger.info(f"✓ Token acquired in {attempt.elapsed:.1f}s")
        return token

    def establish_session(self, wait_seconds: int = 60) -> None:
        """Open the portal and wait for a manual login, then save the session.

        Args:
            wait_seconds: How long to wait for the user to finish logging in

        Raises:
            TransientAutomationError: If no login was detected in time
            HarvesterError: If the session could not be saved
        """
        try:
            with self._attempt_page() as (context, page):
                self._navigate(page)
                logger.info(f"Waiting up to {wait_seconds}s for manual login...")

                state = self.detector.detect(page)
                waited = 0
                while state is not LoginState.LOGGED_IN and waited < wait_seconds:
                    page.wait_for_timeout(1000)
                    waited += 1
                    state = self.detector.detect(page)

                if state is not LoginState.LOGGED_IN:
                    raise TransientAutomationError(
                        "Login not detected. Please ensure you logged in successfully."
                    )

                logger.info("✓ Login detected")
                if self.session_store.exists():
                    logger.info(f"Replacing existing session at {self.session_store.session_file}")
                if not self.session_store.save(context):
                    # Unattended runs must not pick up the old or a half-written file
                    self.session_store.clear()
                    raise HarvesterError(f"Failed to save session cookies to {self.session_store.session_file}")
        except PlaywrightError as e:
            raise TransientAutomationError(f"Browser automation failed during setup: {e}") from e

    def _run(
        self,
        attempt: AcquisitionAttempt,
        context: BrowserContext,
        page: Page,
        interceptor: TokenInterceptor,
    ) -> str:
        if attempt.mode is LoginMode.SESSION:
            if not self.session_store.load(context):
                raise SessionUnavailable("Failed to load a valid saved session")
            attempt.advance(AttemptState.SESSION_LOADED)

        self._navigate(page)
        attempt.advance(AttemptState.NAVIGATED)

        state = self.detector.detect(page)
        attempt.advance(AttemptState.LOGIN_VERIFIED)

        if attempt.mode is LoginMode.SESSION:
            self._session_login(attempt, page, state)
        else:
            self._credential_login(attempt, page, state)

        token = self._await_token(attempt, page, interceptor)

        # Keep the saved cookies current so the next run's load sees rotated values
        if not self.session_store.save(context):
            logger.warning("Could not persist refreshed session, next run will use the previous cookies")

        attempt.advance(AttemptState.TOKEN_CAPTURED)
        return token

    def _session_login(self, attempt: AcquisitionAttempt, page: Page, state: LoginState) -> None:
        if state is LoginState.LOGGED_OUT:
            logger.warning("Saved session appears invalid")
            if self._click_logout(page):
                page.wait_for_timeout(self.page_settle_ms)
                raise SessionExpired("Session expired")

            attempt.advance(AttemptState.DIRECT_LOGIN)
            logger.info("No logout control, trying a direct login with browser autofill")
            self._autofill_login(page)
            return

        attempt.advance(AttemptState.LOGOUT_LOGIN_CYCLE)
        logger.info("Performing logout-login cycle to refresh token...")
        if not self._click_logout(page):
            logger.warning("Logged in but no logout control found, waiting for token without re-login")
            return

        page.wait_for_timeout(self.page_settle_ms)
        self._autofill_login(page)

    def _credential_login(self, attempt: AcquisitionAttempt, page: Page, state: LoginState) -> None:
        if state is LoginState.LOGGED_IN:
            attempt.advance(AttemptState.LOGOUT_LOGIN_CYCLE)
            if self._click_logout(page):
                page.wait_for_timeout(self.page_settle_ms)
            else:
                logger.warning("Already logged in but no logout control found, attempting login anyway")
        else:
            attempt.advance(AttemptState.DIRECT_LOGIN)

        logger.info("Entering credentials...")
        page.wait_for_selector(self.EMAIL_FIELD, timeout=self.selector_timeout_ms)
        page.fill(self.EMAIL_FIELD, self.email)

        if not page.locator(self.PASSWORD_FIELD).first.is_visible():
            # Email-first flow: submit email, then password appears
            logger.info("Email-first flow detected, submitting email first")
            page.click(self.SUBMIT_BUTTON)
            page.wait_for_selector(self.PASSWORD_FIELD, timeout=self.selector_timeout_ms)

        page.fill(self.PASSWORD_FIELD, self.password)
        self._submit_login(page)

    def _autofill_login(self, page: Page) -> None:
        try:
            page.wait_for_selector(self.EMAIL_FIELD, timeout=self.selector_timeout_ms)
            # Focusing the email field is what makes the browser offer saved credentials
            page.click(self.EMAIL_FIELD)
            page.wait_for_timeout(1000)
            logger.info("Credentials should be auto-filled by browser")
            self._submit_login(page)
        except PlaywrightError as e:
            raise TransientAutomationError(
                f"Auto-fill login failed, the browser may not have saved credentials: {e}"
            ) from e

    def _submit_login(self, page: Page) -> None:
        # The token response is emitted during this navigation
        with page.expect_navigation(wait_until="networkidle", timeout=self.navigation_timeout_ms):
            page.click(self.SUBMIT_BUTTON)
        logger.info(f"✓ Login submitted, now at {page.url}")

    def _click_logout(self, page: Page) -> bool:
        for selector in LOGOUT_SELECTORS:
            locator = page.locator(selector)
            if locator.count() > 0:
                # Logout often sits in a collapsed user menu, so fire the DOM click directly
                locator.first.evaluate("el => el.click()")
                logger.info(f"Clicked logout control ({selector})")
                return True
        logger.warning("No logout control found")
        return False

    def _navigate(self, page: Page) -> None:
        logger.info(f"Navigating to: {self.portal_url}")
        page.goto(self.portal_url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        logger.info(f"Page loaded, current URL: {page.url}")
        page.wait_for_timeout(self.page_settle_ms)

    def _await_token(self, attempt: AcquisitionAttempt, page: Page, interceptor: TokenInterceptor) -> str:
        attempt.advance(AttemptState.AWAITING_TOKEN)
        budget_ms = self.token_max_polls * self.token_poll_interval_ms
        attempt.deadline = time.monotonic() + budget_ms / 1000
        logger.info(f"Waiting up to {budget_ms}ms for token...")

        # wait_for_timeout (not time.sleep) so Playwright keeps dispatching response events
        token = interceptor.poll()
        polls = 0
        while token is None and polls < self.token_max_polls:
            page.wait_for_timeout(self.token_poll_interval_ms)
            polls += 1
            token = interceptor.poll()

        if token is None:
            raise TokenNotCaptured(
                f"Token was not captured from network traffic within {budget_ms}ms "
                f"({interceptor.matched_responses} token endpoint responses seen)"
            )

        attempt.captured_token = token
        return token

    @contextmanager
    def _attempt_page(self) -> Iterator[Tuple[BrowserContext, Page]]:
        logger.debug("Creating browser context...")
        context = self.browser.new_context(viewport=self.VIEWPORT, user_agent=self.user_agent)
        try:
            logger.debug("Creating new page...")
            page = context.new_page()
            page.set_default_timeout(self.navigation_timeout_ms)
            try:
                yield context, page
            finally:
                self._close(page, "page")
        finally:
            self._close(context, "context")

    @staticmethod
    def _close(resource, name: str) -> None:
        try:
            resource.close()
            logger.debug(f"Closed {name}")
        except Exception as e:
            logger.warning(f"Error closing {name}: {e}")
