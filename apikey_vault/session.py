"""
SessionRegistry — bearer tokens standing in for the master password.

Used by the HTTP front end only. A successful ``login`` mints an opaque
token bound to the master password for a fixed time-to-live; every
protected request resolves its token back into the password and hands
that to the VaultStore. The registry never sees vault contents.

Sessions are process-lifetime, volatile state: nothing is persisted.
Expiry is enforced lazily on every ``resolve``; ``sweep`` only reclaims
memory and is safe to run from a timer.

Security Note:
    Never log tokens or passwords. Only log token counts.
"""
import time
import secrets
import logging
import threading
from typing import Callable, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .exceptions import AuthenticationError, SessionExpiredError, VaultUnlockError

logger = logging.getLogger("apikey_vault.session")

TOKEN_BYTES = 32
DEFAULT_SESSION_TTL = 3600


@dataclass
class Session:
    """One unlocked session."""
    password: str = field(repr=False)
    expires_at: float
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class SessionRegistry:
    """Maps opaque bearer tokens to unlocked master passwords.

    Args:
        store: VaultStore used to verify passwords at login.
        ttl: Session lifetime in seconds.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        store,
        ttl: int = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self.active_count()

    def __repr__(self) -> str:
        return f"<SessionRegistry sessions={len(self._sessions)} ttl={self._ttl}>"

    @property
    def ttl(self) -> int:
        return self._ttl

    def login(self, password: str) -> str:
        """Verify ``password`` against the vault and open a session.

        Returns:
            A new opaque token.

        Raises:
            AuthenticationError: If the password does not unlock the vault.
        """
        try:
            self._store.load(password)
        except VaultUnlockError as err:
            logger.warning("Login rejected: invalid master password")
            raise AuthenticationError() from err
        return self.issue(password)

    def issue(self, password: str) -> str:
        """Mint a token for an already verified password."""
        token = secrets.token_hex(TOKEN_BYTES)
        with self._lock:
            self._sessions[token] = Session(
                password=password,
                expires_at=self._clock() + self._ttl,
            )
            count = len(self._sessions)
        logger.info("Session opened (%d active)", count)
        return token

    def resolve(self, token: Optional[str]) -> str:
        """Return the master password bound to ``token``.

        Raises:
            SessionExpiredError: If the token is unknown or expired.
        """
        if not token:
            raise SessionExpiredError()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                raise SessionExpiredError()
            if session.expired(self._clock()):
                del self._sessions[token]
                logger.debug(
                    "Session expired on access (opened %s)", session.created.isoformat()
                )
                raise SessionExpiredError()
            return session.password

    def logout(self, token: Optional[str]) -> None:
        """Drop a session. Unknown tokens are ignored."""
        with self._lock:
            removed = self._sessions.pop(token, None) is not None
        if removed:
            logger.info("Session closed")

    def sweep(self) -> int:
        """Remove every expired session. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [t for t, s in self._sessions.items() if s.expired(now)]
            for token in stale:
                del self._sessions[token]
        if stale:
            logger.debug("Swept %d expired session(s)", len(stale))
        return len(stale)

    def active_count(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for s in self._sessions.values() if not s.expired(now))

    def clear(self) -> None:
        """Forget all sessions (server shutdown)."""
        with self._lock:
            self._sessions.clear()
