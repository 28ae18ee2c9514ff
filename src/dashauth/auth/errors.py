"""OAuth error taxonomy and the classifier for provider error codes.

Every failure the OAuth core can report is an :class:`OAuthError` value
with a :class:`OAuthErrorKind` discriminant. Kinds are grouped into four
categories:

* **generic** -- ``unknown`` plus the locally detected protocol
  violations ``no_auth_code``, ``invalid_returned_state`` and
  ``invalid_json``.
* **cross-cutting** -- ``invalid_scope``, ``invalid_request``,
  ``invalid_token``; any endpoint may return these.
* **authorization grant** -- errors delivered on the browser redirect
  (:rfc:`6749#section-4.1.2.1`).
* **access token response** -- errors returned by the token endpoint
  (:rfc:`6749#section-5.2`).

Raw provider strings are mapped through a fixed table by
:func:`classify_error`; anything unrecognised becomes ``unknown`` rather
than an exception.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class OAuthErrorCategory(str, enum.Enum):
    """Coarse grouping of :class:`OAuthErrorKind` values."""

    GENERIC = "generic"
    CROSS_CUTTING = "cross_cutting"
    AUTHORIZATION_GRANT = "authorization_grant"
    ACCESS_TOKEN_RESPONSE = "access_token_response"


class OAuthErrorKind(str, enum.Enum):
    """Discriminant for :class:`OAuthError`."""

    # generic
    UNKNOWN = "unknown"
    NO_AUTH_CODE = "no_auth_code"
    INVALID_RETURNED_STATE = "invalid_returned_state"
    INVALID_JSON = "invalid_json"
    # cross-cutting
    INVALID_SCOPE = "invalid_scope"
    INVALID_REQUEST = "invalid_request"
    INVALID_TOKEN = "invalid_token"
    # authorization grant
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    ACCESS_DENIED = "access_denied"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"
    # access token response
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"


_CATEGORIES: dict[OAuthErrorKind, OAuthErrorCategory] = {
    OAuthErrorKind.UNKNOWN: OAuthErrorCategory.GENERIC,
    OAuthErrorKind.NO_AUTH_CODE: OAuthErrorCategory.GENERIC,
    OAuthErrorKind.INVALID_RETURNED_STATE: OAuthErrorCategory.GENERIC,
    OAuthErrorKind.INVALID_JSON: OAuthErrorCategory.GENERIC,
    OAuthErrorKind.INVALID_SCOPE: OAuthErrorCategory.CROSS_CUTTING,
    OAuthErrorKind.INVALID_REQUEST: OAuthErrorCategory.CROSS_CUTTING,
    OAuthErrorKind.INVALID_TOKEN: OAuthErrorCategory.CROSS_CUTTING,
    OAuthErrorKind.UNAUTHORIZED_CLIENT: OAuthErrorCategory.AUTHORIZATION_GRANT,
    OAuthErrorKind.ACCESS_DENIED: OAuthErrorCategory.AUTHORIZATION_GRANT,
    OAuthErrorKind.UNSUPPORTED_RESPONSE_TYPE: OAuthErrorCategory.AUTHORIZATION_GRANT,
    OAuthErrorKind.SERVER_ERROR: OAuthErrorCategory.AUTHORIZATION_GRANT,
    OAuthErrorKind.TEMPORARILY_UNAVAILABLE: OAuthErrorCategory.AUTHORIZATION_GRANT,
    OAuthErrorKind.INVALID_CLIENT: OAuthErrorCategory.ACCESS_TOKEN_RESPONSE,
    OAuthErrorKind.INVALID_GRANT: OAuthErrorCategory.ACCESS_TOKEN_RESPONSE,
    OAuthErrorKind.UNSUPPORTED_GRANT_TYPE: OAuthErrorCategory.ACCESS_TOKEN_RESPONSE,
}

RAW_ERROR_KINDS: dict[str, OAuthErrorKind] = {
    "invalid_request": OAuthErrorKind.INVALID_REQUEST,
    "invalid_grant": OAuthErrorKind.INVALID_GRANT,
    "unauthorized_client": OAuthErrorKind.UNAUTHORIZED_CLIENT,
    "access_denied": OAuthErrorKind.ACCESS_DENIED,
    "unsupported_response_type": OAuthErrorKind.UNSUPPORTED_RESPONSE_TYPE,
    "invalid_scope": OAuthErrorKind.INVALID_SCOPE,
    "server_error": OAuthErrorKind.SERVER_ERROR,
    "temporarily_unavailable": OAuthErrorKind.TEMPORARILY_UNAVAILABLE,
    "invalid_client": OAuthErrorKind.INVALID_CLIENT,
    "unsupported_grant_type": OAuthErrorKind.UNSUPPORTED_GRANT_TYPE,
    "invalid_json": OAuthErrorKind.INVALID_JSON,
    "invalid_token": OAuthErrorKind.INVALID_TOKEN,
}
"""Provider ``error`` strings and the kind each one maps to."""

_LOCAL_KINDS = frozenset(
    {
        OAuthErrorKind.NO_AUTH_CODE,
        OAuthErrorKind.INVALID_RETURNED_STATE,
        OAuthErrorKind.INVALID_JSON,
    }
)

_MESSAGES: dict[OAuthErrorKind, str] = {
    OAuthErrorKind.UNKNOWN: "an unknown error occurred",
    OAuthErrorKind.NO_AUTH_CODE: "no authorization code present",
    OAuthErrorKind.INVALID_RETURNED_STATE: "returned state does not match the one sent",
    OAuthErrorKind.INVALID_JSON: "response body is not valid JSON",
    OAuthErrorKind.INVALID_SCOPE: "requested scope is invalid or unknown",
    OAuthErrorKind.INVALID_REQUEST: "request is malformed",
    OAuthErrorKind.INVALID_TOKEN: "token is invalid",
    OAuthErrorKind.UNAUTHORIZED_CLIENT: "client is not authorized for this grant",
    OAuthErrorKind.ACCESS_DENIED: "access was denied",
    OAuthErrorKind.UNSUPPORTED_RESPONSE_TYPE: "response type is not supported",
    OAuthErrorKind.SERVER_ERROR: "the authorization server hit an error",
    OAuthErrorKind.TEMPORARILY_UNAVAILABLE: "the authorization server is temporarily unavailable",
    OAuthErrorKind.INVALID_CLIENT: "client authentication failed",
    OAuthErrorKind.INVALID_GRANT: "authorization code or refresh token is expired, revoked, or already used",
    OAuthErrorKind.UNSUPPORTED_GRANT_TYPE: "grant type is not supported",
}


@dataclass(frozen=True)
class OAuthError:
    """A classified OAuth failure.

    Attributes:
        kind: The discriminant; branch on this at call sites.
        description: Optional detail, usually the provider's
            ``error_description``.
        raw: The raw provider ``error`` string, when there was one.
    """

    kind: OAuthErrorKind
    description: Optional[str] = None
    raw: Optional[str] = None

    @property
    def category(self) -> OAuthErrorCategory:
        return _CATEGORIES[self.kind]

    @property
    def is_local(self) -> bool:
        """True for protocol violations detected by this client, not declared by the provider."""
        return self.kind in _LOCAL_KINDS and self.raw is None

    @property
    def is_fatal(self) -> bool:
        """False only for a missing code, which a stray browser request can cause."""
        return self.kind is not OAuthErrorKind.NO_AUTH_CODE

    def __str__(self) -> str:
        message = _MESSAGES[self.kind]
        if self.description:
            return f"{message} ({self.description})"
        return message


def classify_error(raw_error: str, description: Optional[str] = None) -> OAuthError:
    """Translate a raw provider ``error`` string into an :class:`OAuthError`.

    Args:
        raw_error: The ``error`` parameter from a redirect or token
            response body.
        description: The accompanying ``error_description``, if any.

    Returns:
        The classified error. Unrecognised strings yield
        :attr:`OAuthErrorKind.UNKNOWN` with *raw_error* preserved.
    """
    kind = RAW_ERROR_KINDS.get(raw_error, OAuthErrorKind.UNKNOWN)
    return OAuthError(kind=kind, description=description or None, raw=raw_error)
