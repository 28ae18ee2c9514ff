"""Explicit success/failure values returned by the OAuth core.

Operations that can fail for protocol reasons return ``Ok(value)`` or
``Err(error)`` instead of raising, so callers branch on the outcome
rather than catching exceptions::

    result = client.exchange_authorization_code()
    if isinstance(result, Err):
        if result.error.kind is OAuthErrorKind.INVALID_GRANT:
            ...  # start a fresh login
    else:
        persist(result.value)

At the CLI boundary :meth:`Err.unwrap` converts the failure into an
:class:`~dashauth.exceptions.AuthError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

from dashauth.auth.errors import OAuthError, OAuthErrorKind
from dashauth.exceptions import AuthError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful outcome carrying *value*."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """A failed outcome carrying a classified :class:`OAuthError`."""

    error: OAuthError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def kind(self) -> OAuthErrorKind:
        return self.error.kind

    def unwrap(self) -> NoReturn:
        """Raise :class:`~dashauth.exceptions.AuthError` for this failure."""
        raise AuthError(f"OAuth error: {self.error}", oauth_error=self.error)


Result = Union[Ok[T], Err]
