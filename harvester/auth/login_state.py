"""Heuristic detection of whether the portal page shows a logged-in user."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from playwright.sync_api import Page


logger = logging.getLogger(__name__)


class LoginState(Enum):
    LOGGED_IN = "logged_in"
    LOGGED_OUT = "logged_out"


@dataclass(frozen=True)
class Heuristic:
    """A named guess: if any selector matches, the page suggests ``verdict``.

    An overriding heuristic decides the outcome on its own when it matches.
    """

    name: str
    selectors: Tuple[str, ...]
    verdict: LoginState
    overrides: bool = False


@dataclass(frozen=True)
class HeuristicResult:
    name: str
    matched: bool
    verdict: LoginState
    overrides: bool = False


LOGOUT_SELECTORS: Tuple[str, ...] = (
    "[data-testid*='logout']",
    "[class*='logout']",
    "button[aria-label*='logout']",
    "a[href*='logout']",
)

USER_MENU_SELECTORS: Tuple[str, ...] = (
    "[data-testid*='user']",
    "[class*='user-menu']",
    "[class*='profile']",
)

PASSWORD_FIELD_SELECTORS: Tuple[str, ...] = (
    "input[type='password']",
)

DEFAULT_HEURISTICS: Tuple[Heuristic, ...] = (
    Heuristic("password_field", PASSWORD_FIELD_SELECTORS, LoginState.LOGGED_OUT, overrides=True),
    Heuristic("logout_control", LOGOUT_SELECTORS, LoginState.LOGGED_IN),
    Heuristic("user_menu", USER_MENU_SELECTORS, LoginState.LOGGED_IN),
)


def combine(results: Iterable[HeuristicResult]) -> LoginState:
    """Combine heuristic results into a single login state.

    Precedence:
        1. The first matched overriding heuristic decides (a visible
           password field means logged out, even next to a logout link).
        2. Otherwise any matched logged-in heuristic means logged in.
        3. Otherwise the page is treated as logged out.
    """
    matched = [result for result in results if result.matched]

    for result in matched:
        if result.overrides:
            return result.verdict

    if any(result.verdict is LoginState.LOGGED_IN for result in matched):
        return LoginState.LOGGED_IN

    return LoginState.LOGGED_OUT


class LoginStateDetector(ABC):
    """Abstract base class for login-state detection."""

    @abstractmethod
    def detect(self, page: Page) -> LoginState:
        """Classify the page as logged in or logged out."""
        pass


class SelectorLoginStateDetector(LoginStateDetector):
    """Evaluates an ordered list of selector heuristics against the DOM."""

    def __init__(self, heuristics: Optional[Sequence[Heuristic]] = None):
        self.heuristics: List[Heuristic] = list(heuristics or DEFAULT_HEURISTICS)

    def evaluate(self, page: Page) -> List[HeuristicResult]:
        results = []
        for heuristic in self.heuristics:
            matched = any(page.locator(selector).count() > 0 for selector in heuristic.selectors)
            results.append(HeuristicResult(heuristic.name, matched, heuristic.verdict, heuristic.overrides))
        return results

    def detect(self, page: Page) -> LoginState:
        results = self.evaluate(page)
        state = combine(results)
        signals = ", ".join(f"{r.name}={'yes' if r.matched else 'no'}" for r in results)
        logger.info(f"Login state: {state.value} ({signals})")
        return state
