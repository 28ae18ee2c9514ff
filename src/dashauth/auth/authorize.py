"""Build the authorization URL the user opens in their browser."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from dashauth.auth.pkce import STATE_LENGTH, generate_pkce_codes, generate_state
from dashauth.auth.session import SessionState
from dashauth.models import ProviderConfig, Scope


def requested_scopes(config: ProviderConfig) -> list[Scope]:
    """Return the configured scopes, de-duplicated, with ``offline_access`` last."""
    scopes: list[Scope] = []
    for scope in config.scopes:
        if scope is not Scope.OFFLINE_ACCESS and scope not in scopes:
            scopes.append(scope)
    scopes.append(Scope.OFFLINE_ACCESS)
    return scopes


def build_authorization_url(session: SessionState, config: ProviderConfig) -> str:
    """Start a new authorization attempt and return the URL to visit.

    A fresh PKCE pair and ``state`` value are generated and stored in
    *session*, replacing any attempt already in flight.

    Args:
        session: The session that will receive the callback.
        config: Provider endpoints, client id, and requested scopes.

    Returns:
        ``authorization_url`` with ``response_type``, ``client_id``,
        ``redirect_uri``, ``scope``, ``state``, ``code_challenge`` and
        ``code_challenge_method`` query parameters.
    """
    pkce = generate_pkce_codes()
    state = generate_state(STATE_LENGTH)
    session.begin_authorization(pkce, state)

    params = {
        "response_type": "code",
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "scope": " ".join(scope.value for scope in requested_scopes(config)),
        "state": state,
        "code_challenge": pkce.code_challenge,
        "code_challenge_method": pkce.code_challenge_method,
    }
    # Percent-encode spaces as %20 rather than "+".
    return f"{config.authorization_url}?{urlencode(params, safe='', quote_via=quote)}"
