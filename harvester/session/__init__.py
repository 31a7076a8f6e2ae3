"""Session cookie persistence."""

from .credentials import SessionCredential, SessionCredentialSet
from .store import SessionStore

__all__ = ['SessionCredential', 'SessionCredentialSet', 'SessionStore']
