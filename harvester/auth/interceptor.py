"""Passive capture of the access token from the portal's network traffic."""

import logging
from typing import Optional

from playwright.sync_api import Page, Response


logger = logging.getLogger(__name__)


class TokenLatch:
    """Single-assignment slot: the first offered value wins."""

    def __init__(self):
        self._value: Optional[str] = None

    def offer(self, value: str) -> bool:
        """Store the value unless one is already latched.

        Returns:
            bool: True if this value was latched
        """
        if self._value is not None:
            return False
        self._value = value
        return True

    @property
    def value(self) -> Optional[str]:
        return self._value


class TokenInterceptor:
    """Listens to page responses and latches the first ``access_token`` seen.

    The portal only emits the token inside the login network exchange, so
    the listener has to be attached before the first navigation.

    Usage:
        interceptor = TokenInterceptor("/v5/token").attach(page)
        # ... log in ...
        token = interceptor.poll()
    """

    TOKEN_FIELD = "access_token"

    def __init__(self, endpoint_fragment: str):
        self.endpoint_fragment = endpoint_fragment
        self.matched_responses = 0
        self._latch = TokenLatch()
        self._page: Optional[Page] = None

    def attach(self, page: Page) -> "TokenInterceptor":
        """Start listening to responses on a page."""
        logger.debug(f"Attaching response listener for '{self.endpoint_fragment}'")
        page.on("response", self._on_response)
        self._page = page
        return self

    def detach(self) -> None:
        """Stop listening. Safe to call more than once."""
        if self._page is None:
            return
        try:
            self._page.remove_listener("response", self._on_response)
        except Exception as e:
            logger.debug(f"Could not remove response listener: {e}")
        self._page = None

    def poll(self) -> Optional[str]:
        """Return the latched token, or None if none has been seen yet."""
        return self._latch.value

    def _on_response(self, response: Response) -> None:
        try:
            url = response.url
            if self.endpoint_fragment not in url:
                return

            self.matched_responses += 1
            logger.info(f"Token endpoint detected: {url} (status {response.status})")

            content_type = (response.headers.get("content-type") or "").lower()
            if "json" not in content_type:
                logger.debug(f"Ignoring non-JSON token endpoint response ({content_type or 'no content-type'})")
                return

            data = response.json()
            token = data.get(self.TOKEN_FIELD) if isinstance(data, dict) else None
            if not token:
                logger.debug(f"Token endpoint response has no '{self.TOKEN_FIELD}' field")
                return

            if self._latch.offer(token):
                logger.info(f"✓ Token captured: {str(token)[:50]}...")
            else:
                logger.debug("Token already captured for this attempt, ignoring later response")

        except Exception as e:
            # Never let a bad body break the browsing session
            logger.warning(f"Failed to parse token response: {e}")
