"""Token endpoint and revocation endpoint client.

:class:`TokenClient` performs the three network operations of the flow:

* :meth:`~TokenClient.exchange_authorization_code` -- trade the received
  code plus the PKCE verifier for tokens (:rfc:`6749#section-4.1.3`).
* :meth:`~TokenClient.exchange_refresh_token` -- trade the stored refresh
  token for a new access token (:rfc:`6749#section-6`).
* :meth:`~TokenClient.revoke` -- invalidate the refresh token at logout
  (:rfc:`7009`).

Each is a single ``httpx.post`` with a timeout and no retries. Provider
errors come back as :class:`~dashauth.auth.result.Err`; transport
failures raise :class:`~dashauth.exceptions.ConnectionError_`. The session
is only touched after a response has been fully parsed, so a failed
exchange leaves it exactly as it was.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from dashauth.auth.errors import OAuthError, OAuthErrorKind, classify_error
from dashauth.auth.result import Err, Ok, Result
from dashauth.auth.session import SessionState
from dashauth.exceptions import ConnectionError_, InvalidUsageError
from dashauth.models import AccessContext, AccessToken, ProviderConfig, RefreshToken, Scope, parse_scopes

logger = logging.getLogger(__name__)

_FORM_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/x-www-form-urlencoded",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _TokenResponse:
    """Validated fields of a successful token endpoint response."""

    access_token: AccessToken
    refresh_token: Optional[RefreshToken]
    scopes: Optional[frozenset[Scope]]


class TokenClient:
    """Talks to the provider's token and revocation endpoints.

    Args:
        session: The session whose code/refresh token is sent and which
            receives the resulting tokens.
        config: Endpoints, client id, redirect URI, and request timeout.
        clock: Returns the current UTC time; used to turn ``expires_in``
            into an absolute expiry.
    """

    def __init__(
        self,
        session: SessionState,
        config: ProviderConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._config = config
        self._clock = clock

    def exchange_authorization_code(self) -> Result[AccessContext]:
        """Exchange the session's authorization code for tokens.

        Sends the PKCE *verifier*, which proves this client requested the
        code. An ``invalid_grant`` failure means the code/verifier pair
        expired or was already used; the caller should start a new login.

        Returns:
            ``Ok(AccessContext)`` on success, otherwise ``Err``.

        Raises:
            InvalidUsageError: If no unexchanged code is pending.
            ConnectionError_: On network failures.
        """
        code, pkce = self._session.pending_exchange()
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._config.redirect_uri,
            "client_id": self._config.client_id,
            "code_verifier": pkce.code_verifier,
        }
        result = self._request_tokens(data)
        if isinstance(result, Err):
            if result.kind is OAuthErrorKind.INVALID_GRANT:
                logger.info("Authorization code expired or already used; a new login is needed")
            return result
        parsed = result.value
        context = self._session.apply_tokens(
            parsed.access_token,
            parsed.refresh_token,
            parsed.scopes,
            exchanged_code=code,
        )
        logger.debug("Authorization code exchanged; token expires at %s", context.token.expires_at)
        return Ok(context)

    def exchange_refresh_token(self) -> Result[AccessContext]:
        """Obtain a new access token with the stored refresh token.

        If the provider rotates the refresh token the new one replaces the
        old; otherwise the old one is kept.

        Returns:
            ``Ok(AccessContext)`` on success, otherwise ``Err``.

        Raises:
            InvalidUsageError: If no refresh token is stored. Raised before
                any request is made.
            ConnectionError_: On network failures.
        """
        refresh_token = self._session.refresh_token
        if refresh_token is None:
            raise InvalidUsageError("No refresh token is stored; log in first")
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token.value,
            "client_id": self._config.client_id,
        }
        result = self._request_tokens(data)
        if isinstance(result, Err):
            if result.kind is OAuthErrorKind.INVALID_GRANT:
                logger.info("Refresh token expired or revoked; a new login is needed")
            return result
        parsed = result.value
        context = self._session.apply_tokens(parsed.access_token, parsed.refresh_token, parsed.scopes)
        logger.debug("Access token refreshed; expires at %s", context.token.expires_at)
        return Ok(context)

    def revoke(self) -> Ok[None]:
        """Ask the provider to revoke the stored refresh token.

        An absent token is sent as an empty string. The response body is
        not interpreted and a provider-level rejection is ignored.

        Raises:
            ConnectionError_: On network failures.
        """
        refresh_token = self._session.refresh_token
        data = {
            "client_id": self._config.client_id,
            "token_type_hint": "refresh_token",
            "token": refresh_token.value if refresh_token else "",
        }
        response = self._post(self._config.revoke_url, data)
        logger.debug("Revocation endpoint answered HTTP %s", response.status_code)
        return Ok(None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _post(self, url: str, data: dict[str, str]) -> httpx.Response:
        try:
            return httpx.post(
                url,
                data=data,
                headers=_FORM_HEADERS,
                timeout=self._config.request_timeout,
            )
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

    def _request_tokens(self, data: dict[str, str]) -> Result[_TokenResponse]:
        """POST *data* to the token endpoint and validate the response.

        A non-2xx status and a 2xx body carrying ``error`` are treated the
        same way: the ``error`` field is classified. A body that is not a
        JSON object fails with ``invalid_json``.
        """
        issued_at = self._clock()
        response = self._post(self._config.token_url, data)

        try:
            body: Any = response.json()
        except ValueError:
            logger.debug("Token endpoint returned a non-JSON body (HTTP %s)", response.status_code)
            return Err(OAuthError(OAuthErrorKind.INVALID_JSON))
        if not isinstance(body, dict):
            return Err(OAuthError(OAuthErrorKind.INVALID_JSON, description="expected a JSON object"))

        if "error" in body or not response.is_success:
            raw_error = body.get("error")
            description = body.get("error_description")
            if not isinstance(description, str):
                description = None
            if isinstance(raw_error, str) and raw_error:
                return Err(classify_error(raw_error, description))
            return Err(
                OAuthError(
                    OAuthErrorKind.UNKNOWN,
                    description=description or f"HTTP {response.status_code}",
                )
            )

        return self._parse_token_body(body, issued_at)

    def _parse_token_body(self, body: dict[str, Any], issued_at: datetime) -> Result[_TokenResponse]:
        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            return Err(OAuthError(OAuthErrorKind.INVALID_JSON, description="missing 'access_token'"))

        expires_in = body.get("expires_in")
        if isinstance(expires_in, str):
            try:
                expires_in = float(expires_in)
            except ValueError:
                expires_in = None
        if (
            isinstance(expires_in, bool)
            or not isinstance(expires_in, (int, float))
            or (isinstance(expires_in, float) and not math.isfinite(expires_in))
            or expires_in < 0
        ):
            return Err(OAuthError(OAuthErrorKind.INVALID_JSON, description="missing or invalid 'expires_in'"))
        try:
            expires_at = issued_at + timedelta(seconds=expires_in)
        except (OverflowError, ValueError):
            return Err(OAuthError(OAuthErrorKind.INVALID_JSON, description="'expires_in' out of range"))

        refresh_token: Optional[RefreshToken] = None
        raw_refresh = body.get("refresh_token")
        if isinstance(raw_refresh, str) and raw_refresh:
            refresh_token = RefreshToken(value=raw_refresh)

        scopes: Optional[frozenset[Scope]] = None
        raw_scope = body.get("scope")
        if isinstance(raw_scope, str) and raw_scope:
            scopes, unknown = parse_scopes(raw_scope)
            if unknown:
                logger.warning("Ignoring unrecognised scopes in token response: %s", " ".join(unknown))

        return Ok(
            _TokenResponse(
                access_token=AccessToken(value=access_token, expires_at=expires_at),
                refresh_token=refresh_token,
                scopes=scopes,
            )
        )
