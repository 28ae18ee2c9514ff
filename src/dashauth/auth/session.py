"""Per-process OAuth session state.

A :class:`SessionState` holds everything one CLI invocation knows about
its login: the in-flight authorization attempt (PKCE pair, ``state``,
received code) and the current token pair. It is an explicit object that
the flow owns and passes to each component, never a module global, so
tests can create as many independent sessions as they like.

Token fields live in a single frozen :class:`TokenSet` that is replaced
wholesale under the session lock. A reader therefore always sees an
access token together with the refresh token and scopes that came with
it, never a half-applied update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from dashauth.exceptions import InvalidUsageError
from dashauth.models import AccessContext, AccessToken, PKCECodes, RefreshToken, Scope

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenSet:
    """Immutable snapshot of the session's credentials."""

    access_token: Optional[AccessToken] = None
    refresh_token: Optional[RefreshToken] = None
    granted_scopes: frozenset[Scope] = frozenset()
    code_exchanged: bool = False


class SessionState:
    """The single in-flight or authenticated session of this process.

    ``code_exchanged`` is true only while the held access token was
    derived from the currently stored ``authorization_code``. A code is
    only ever stored after the callback's ``state`` matched
    ``csrf_state`` (see :func:`dashauth.auth.callback.handle_callback`).

    Example::

        session = SessionState()
        session.seed(AccessToken(value="t", expires_at=...), RefreshToken(value="r"))
        if session.is_expired():
            ...
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._pkce: Optional[PKCECodes] = None
        self._csrf_state: Optional[str] = None
        self._authorization_code: Optional[str] = None
        self._tokens = TokenSet()

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding check-then-set sequences on this session."""
        return self._lock

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def pkce(self) -> Optional[PKCECodes]:
        return self._pkce

    @property
    def csrf_state(self) -> Optional[str]:
        return self._csrf_state

    @property
    def authorization_code(self) -> Optional[str]:
        return self._authorization_code

    @property
    def tokens(self) -> TokenSet:
        return self._tokens

    @property
    def code_exchanged(self) -> bool:
        return self._tokens.code_exchanged

    @property
    def access_token(self) -> Optional[AccessToken]:
        return self._tokens.access_token

    @property
    def refresh_token(self) -> Optional[RefreshToken]:
        return self._tokens.refresh_token

    @property
    def granted_scopes(self) -> frozenset[Scope]:
        return self._tokens.granted_scopes

    def access_context(self) -> Optional[AccessContext]:
        """Return the current credentials as an :class:`AccessContext`, if any."""
        tokens = self._tokens
        if tokens.access_token is None:
            return None
        return AccessContext(
            token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            scopes=tokens.granted_scopes,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True iff an access token is held and *now* is at or past its expiry.

        No token is *not* expired: the caller must check for presence
        separately, because a missing token needs a full login while an
        expired one only needs a refresh.
        """
        token = self._tokens.access_token
        if token is None:
            return False
        return (now or _utcnow()) >= token.expires_at

    # ------------------------------------------------------------------
    # Authorization attempt
    # ------------------------------------------------------------------

    def begin_authorization(self, pkce: PKCECodes, csrf_state: str) -> None:
        """Start a new attempt, invalidating any attempt already in flight."""
        with self._lock:
            if self._csrf_state is not None:
                logger.debug("Replacing an in-flight authorization attempt")
            self._pkce = pkce
            self._csrf_state = csrf_state
            self._authorization_code = None
            self._tokens = replace(self._tokens, code_exchanged=False)

    def abandon_authorization(self) -> None:
        """Drop the in-flight attempt so a retry starts clean."""
        with self._lock:
            self._pkce = None
            self._csrf_state = None

    def accept_code(self, code: str) -> None:
        """Store a validated authorization code awaiting exchange."""
        with self._lock:
            self._authorization_code = code
            self._tokens = replace(self._tokens, code_exchanged=False)

    def pending_exchange(self) -> tuple[str, PKCECodes]:
        """Return the ``(code, pkce)`` pair to send to the token endpoint.

        Raises:
            InvalidUsageError: If no code has been received, the attempt
                was abandoned, or the code was already exchanged.
        """
        with self._lock:
            if self._authorization_code is None:
                raise InvalidUsageError("No authorization code has been received")
            if self._tokens.code_exchanged:
                raise InvalidUsageError("The authorization code was already exchanged")
            if self._pkce is None:
                raise InvalidUsageError("No PKCE verifier is stored for this authorization code")
            return self._authorization_code, self._pkce

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def apply_tokens(
        self,
        access_token: AccessToken,
        refresh_token: Optional[RefreshToken] = None,
        scopes: Optional[frozenset[Scope]] = None,
        exchanged_code: Optional[str] = None,
    ) -> AccessContext:
        """Atomically install a new token pair and return the resulting context.

        Args:
            access_token: The newly issued access token.
            refresh_token: A rotated refresh token. ``None`` keeps the
                current one.
            scopes: Granted scopes. ``None`` keeps the current set.
            exchanged_code: The authorization code these tokens were
                issued for. ``None`` for a refresh.
        """
        with self._lock:
            current = self._tokens
            code_exchanged = current.code_exchanged
            if exchanged_code is not None:
                code_exchanged = exchanged_code == self._authorization_code
                if code_exchanged:
                    self._pkce = None
            self._tokens = TokenSet(
                access_token=access_token,
                refresh_token=refresh_token or current.refresh_token,
                granted_scopes=current.granted_scopes if scopes is None else scopes,
                code_exchanged=code_exchanged,
            )
            return AccessContext(
                token=self._tokens.access_token,
                refresh_token=self._tokens.refresh_token,
                scopes=self._tokens.granted_scopes,
            )

    def seed(
        self,
        access_token: Optional[AccessToken],
        refresh_token: Optional[RefreshToken],
    ) -> None:
        """Restore persisted credentials at process start."""
        with self._lock:
            self._tokens = TokenSet(access_token=access_token, refresh_token=refresh_token)

    def clear_tokens(self) -> None:
        """Forget all credentials (after logout)."""
        with self._lock:
            self._authorization_code = None
            self._tokens = TokenSet()
