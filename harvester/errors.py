"""Exception hierarchy for the token harvester."""

from typing import Optional


SETUP_GUIDANCE = "Run setup mode (SETUP_MODE=true or --setup) to log in manually and refresh the saved session."


class HarvesterError(Exception):
    """Base class for all harvester failures."""


class ConfigurationError(HarvesterError, ValueError):
    """Required configuration is missing or invalid. Never retried."""


class TransientAutomationError(HarvesterError):
    """A navigation, selector or browser interaction failed and may succeed on retry."""


class SessionError(HarvesterError):
    """The saved session cannot be used without manual re-establishment."""

    def __init__(self, message: str):
        super().__init__(f"{message}. {SETUP_GUIDANCE}")


class SessionUnavailable(SessionError):
    """No usable session could be loaded from the session file."""


class SessionExpired(SessionError):
    """The saved session loaded but the portal no longer accepts it."""


class TokenNotCaptured(HarvesterError):
    """The token endpoint response was not observed within the wait budget."""


class InvalidToken(HarvesterError):
    """The captured value does not look like a compact token."""


class RetryExhausted(HarvesterError):
    """An operation kept failing until its retry policy ran out."""

    def __init__(self, label: str, attempts: int, last_error: Optional[BaseException]):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error is not None else "unknown error"
        super().__init__(f"{label} failed after {attempts} attempts: {reason}")
