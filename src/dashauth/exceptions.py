"""Errors that end a dashauth command.

Each class fixes the process exit code (:mod:`dashauth.exit_codes`);
:func:`dashauth.app.main` prints the message and exits with it.

Failures reported by the identity provider travel through the OAuth core
as :class:`~dashauth.auth.result.Err` values, not exceptions. The command
layer converts them into :class:`AuthError` at the last moment, keeping
the classified :class:`~dashauth.auth.errors.OAuthError` attached.

::

    DashauthError        1
      InvalidUsageError  2   nothing to refresh, no code to exchange
      AuthError          3   provider said no, or the login never finished
      ConnectionError_   6   provider unreachable
      ConfigError        1   bad config.json or override
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from dashauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)

if TYPE_CHECKING:
    from dashauth.auth.errors import OAuthError


class DashauthError(Exception):
    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DashauthError):
    """The session is not in a state where the operation makes sense."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(DashauthError):
    """Login, refresh or code exchange failed.

    ``oauth_error`` is set when the failure was classified by the OAuth
    core, so callers can look at its ``kind`` and ``is_fatal``.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        oauth_error: Optional["OAuthError"] = None,
    ):
        super().__init__(message, exit_code=exit_code)
        self.oauth_error = oauth_error


class ConnectionError_(DashauthError):
    """The token or revoke endpoint could not be reached.

    The underscore keeps the builtin ``ConnectionError`` usable.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(DashauthError):
    exit_code = EXIT_GENERIC_FAILURE
