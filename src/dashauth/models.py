"""Canonical Pydantic models shared across all dashauth modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Protocol models** -- produced and consumed by the OAuth core:
    :class:`Scope`, :class:`PKCECodes`, :class:`AccessToken`,
    :class:`RefreshToken`, and :class:`AccessContext`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`ProviderConfig`.

Protocol models are frozen; a new instance is created whenever a token
changes so that readers never observe a half-updated value.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Scopes ---


class Scope(str, enum.Enum):
    """Capabilities the identity provider can grant.

    Requested as a space-delimited list in the authorization URL and
    returned the same way in the token response. ``offline_access`` is
    always requested so that the provider issues a refresh token.
    """

    ACCOUNT_READ = "account:read"
    USER_READ = "user:read"
    WORKERS_WRITE = "workers:write"
    WORKERS_KV_WRITE = "workers_kv:write"
    WORKERS_ROUTES_WRITE = "workers_routes:write"
    WORKERS_SCRIPTS_WRITE = "workers_scripts:write"
    WORKERS_TAIL_READ = "workers_tail:read"
    ZONE_READ = "zone:read"
    OFFLINE_ACCESS = "offline_access"

    @property
    def description(self) -> str:
        """Human-readable explanation shown by ``dashauth scopes``."""
        return SCOPE_DESCRIPTIONS[self]


SCOPE_DESCRIPTIONS: dict[Scope, str] = {
    Scope.ACCOUNT_READ: "See your account info such as account details, analytics, and memberships.",
    Scope.USER_READ: "See your user info such as name, email address, and account memberships.",
    Scope.WORKERS_WRITE: "See and change Cloudflare Workers data such as zones, KV storage, "
    "namespaces, scripts, and routes.",
    Scope.WORKERS_KV_WRITE: "See and change Cloudflare Workers KV Storage data such as keys "
    "and namespaces.",
    Scope.WORKERS_ROUTES_WRITE: "See and change Cloudflare Workers data such as filters and routes.",
    Scope.WORKERS_SCRIPTS_WRITE: "See and change Cloudflare Workers scripts, durable objects, "
    "subdomains, triggers, and tail data.",
    Scope.WORKERS_TAIL_READ: "See Cloudflare Workers tail and script data.",
    Scope.ZONE_READ: "Grants read level access to account zone.",
    Scope.OFFLINE_ACCESS: "Issue a refresh token so the login survives access token expiry.",
}

DEFAULT_SCOPES: list[Scope] = [s for s in Scope if s is not Scope.OFFLINE_ACCESS]
"""Scopes requested when the configuration does not override them."""


def parse_scopes(raw: str) -> tuple[frozenset[Scope], list[str]]:
    """Split a space-delimited ``scope`` value into known scopes.

    Args:
        raw: The ``scope`` string from a token response.

    Returns:
        A tuple of ``(known_scopes, unrecognised_strings)``.
    """
    known: set[Scope] = set()
    unknown: list[str] = []
    for item in raw.split():
        try:
            known.add(Scope(item))
        except ValueError:
            unknown.append(item)
    return frozenset(known), unknown


# --- Protocol models ---


class PKCECodes(BaseModel):
    """A PKCE ``code_verifier`` / ``code_challenge`` pair (:rfc:`7636`).

    Created once per authorization attempt and discarded after the code
    has been exchanged. Only the challenge ever leaves the process before
    the exchange; the verifier proves possession at the token endpoint.
    """

    model_config = ConfigDict(frozen=True)

    code_verifier: str = Field(min_length=43, max_length=128)
    code_challenge: str
    code_challenge_method: str = "S256"


class AccessToken(BaseModel):
    """Short-lived bearer credential with an absolute UTC expiry."""

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: datetime


class RefreshToken(BaseModel):
    """Opaque long-lived credential used to mint new access tokens."""

    model_config = ConfigDict(frozen=True)

    value: str


class AccessContext(BaseModel):
    """The externally visible result of a successful exchange or refresh.

    This is what gets handed to the persistence layer.
    """

    model_config = ConfigDict(frozen=True)

    token: AccessToken
    refresh_token: Optional[RefreshToken] = None
    scopes: frozenset[Scope] = Field(default_factory=frozenset)


# --- Configuration ---


class ProviderConfig(BaseModel):
    """Identity provider endpoints and local callback settings.

    Defaults describe the dashboard's public OAuth client. Each field can
    be overridden in ``config.json`` or through a ``DASHAUTH_*``
    environment variable (see :func:`dashauth.config.load_config`).

    Example::

        ProviderConfig(callback_port=9000).redirect_uri
        # 'http://localhost:9000/oauth/callback'
    """

    client_id: str = Field(
        default="54d11594-84e4-41aa-b438-e81b8fa78ee7",
        description="Public OAuth client identifier",
    )
    authorization_url: str = Field(
        default="https://dash.cloudflare.com/oauth2/auth",
        description="Authorization endpoint the browser is sent to",
    )
    token_url: str = Field(
        default="https://dash.cloudflare.com/oauth2/token",
        description="Token endpoint for code and refresh exchanges",
    )
    revoke_url: str = Field(
        default="https://dash.cloudflare.com/oauth2/revoke",
        description="Token revocation endpoint used by logout",
    )
    callback_host: str = Field(
        default="localhost", description="Host the callback listener binds to"
    )
    callback_port: int = Field(
        default=8976, ge=0, le=65535, description="Port the callback listener binds to"
    )
    callback_path: str = Field(
        default="/oauth/callback", description="Path of the redirect endpoint"
    )
    scopes: list[Scope] = Field(
        default_factory=lambda: list(DEFAULT_SCOPES),
        description="Scopes to request (offline_access is always added)",
    )
    callback_timeout: int = Field(
        default=120, gt=0, description="Seconds to wait for the browser redirect"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for token/revoke requests"
    )

    @property
    def redirect_uri(self) -> str:
        """The fixed local address registered with the provider."""
        return f"http://{self.callback_host}:{self.callback_port}{self.callback_path}"
