"""Authentication module: login cycle, token capture and validation."""

from .controller import BrowserSessionController, AcquisitionAttempt, AttemptState, LoginMode
from .interceptor import TokenInterceptor, TokenLatch
from .login_state import LoginState, LoginStateDetector, SelectorLoginStateDetector
from .token_validator import validate_token

__all__ = [
    'BrowserSessionController',
    'AcquisitionAttempt',
    'AttemptState',
    'LoginMode',
    'TokenInterceptor',
    'TokenLatch',
    'LoginState',
    'LoginStateDetector',
    'SelectorLoginStateDetector',
    'validate_token',
]
