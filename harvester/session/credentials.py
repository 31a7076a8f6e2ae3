"""Session credential records (browser cookies) with expiry filtering."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional


# Cookie fields Playwright's add_cookies accepts besides name/value/domain/expires
COOKIE_ATTRIBUTES = ("path", "httpOnly", "secure", "sameSite")


@dataclass(frozen=True)
class SessionCredential:
    """One cookie, with its expiry pulled out for filtering."""

    domain: str
    name: str
    value: str
    expires_at: Optional[float] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_cookie(cls, cookie: Dict[str, Any]) -> "SessionCredential":
        """Build from a Playwright (or Puppeteer) cookie dict.

        Session cookies carry ``expires == -1``; any non-positive value means
        the cookie has no expiry.
        """
        expires = cookie.get("expires")
        expires_at = float(expires) if expires is not None and expires > 0 else None
        attributes = {key: cookie[key] for key in COOKIE_ATTRIBUTES if key in cookie}
        attributes.setdefault("path", "/")
        return cls(
            domain=cookie.get("domain", ""),
            name=cookie["name"],
            value=cookie["value"],
            expires_at=expires_at,
            attributes=attributes,
        )

    def to_cookie(self) -> Dict[str, Any]:
        """Cookie dict suitable for ``BrowserContext.add_cookies``."""
        cookie: Dict[str, Any] = {"name": self.name, "value": self.value, "domain": self.domain}
        cookie.update(self.attributes)
        cookie["expires"] = self.expires_at if self.expires_at is not None else -1
        return cookie

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at < now


class SessionCredentialSet:
    """Ordered collection of session credentials."""

    def __init__(self, credentials: Iterable[SessionCredential] = ()):
        self._credentials: List[SessionCredential] = list(credentials)

    @classmethod
    def from_cookies(cls, cookies: Iterable[Dict[str, Any]]) -> "SessionCredentialSet":
        return cls(SessionCredential.from_cookie(cookie) for cookie in cookies)

    def to_cookies(self) -> List[Dict[str, Any]]:
        return [credential.to_cookie() for credential in self._credentials]

    def usable(self, now: Optional[float] = None) -> "SessionCredentialSet":
        """Records that have not expired at ``now`` (default: current time)."""
        if now is None:
            now = time.time()
        return SessionCredentialSet(c for c in self._credentials if not c.is_expired(now))

    def expired(self, now: Optional[float] = None) -> List[SessionCredential]:
        if now is None:
            now = time.time()
        return [c for c in self._credentials if c.is_expired(now)]

    def __iter__(self) -> Iterator[SessionCredential]:
        return iter(self._credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    def __bool__(self) -> bool:
        return bool(self._credentials)
