"""Scoped Chromium launch."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from playwright.sync_api import sync_playwright, Browser

from ..utils.retry import RetryPolicy, execute


logger = logging.getLogger(__name__)


CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]


@contextmanager
def launch_browser(headless: bool = True, policy: Optional[RetryPolicy] = None) -> Iterator[Browser]:
    """Launch Chromium (with retry) and close it on every exit path.

    Args:
        headless: Run browser in headless mode
        policy: Retry policy for the launch (default: RetryPolicy())
    """
    with sync_playwright() as p:
        logger.info(f"Launching Chromium ({'headless' if headless else 'headed'})...")
        browser = execute(
            lambda: p.chromium.launch(headless=headless, args=CHROMIUM_ARGS),
            "Browser Init",
            policy or RetryPolicy(),
        )
        logger.info("Browser launched")
        try:
            yield browser
        finally:
            logger.debug("Closing browser...")
            try:
                browser.close()
                logger.info("Browser closed")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
