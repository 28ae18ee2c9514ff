"""Auth commands -- log in, refresh, inspect, and log out.

These are registered directly on the root application::

    dashauth login            # browser login, waits for the redirect
    dashauth login --no-browser --timeout 300
    dashauth status           # is the stored token still valid?
    dashauth refresh          # force a refresh-token exchange
    dashauth logout           # revoke and delete stored credentials
    dashauth scopes           # list requestable scopes

Every command builds a :class:`~dashauth.auth.flow.LoginFlow` seeded from
the credential store, so state carries over between invocations only
through the persisted token pair.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import typer

from dashauth.auth.errors import OAuthErrorKind
from dashauth.exceptions import AuthError, DashauthError, InvalidUsageError
from dashauth.output import error, format_response, get_output, info, success, suggest, warning

if TYPE_CHECKING:
    from dashauth.auth.flow import LoginFlow


def _build_flow() -> "LoginFlow":
    """Create a :class:`~dashauth.auth.flow.LoginFlow` from config and stored credentials."""
    from dashauth.auth import CredentialStore, LoginFlow
    from dashauth.config import load_config

    return LoginFlow.from_store(load_config(), CredentialStore())


def _fail(exc: DashauthError) -> typer.Exit:
    """Print *exc* with a next-step hint and return the matching ``typer.Exit``."""
    error(str(exc))
    oauth_error = exc.oauth_error if isinstance(exc, AuthError) else None
    kind = oauth_error.kind if oauth_error is not None else None
    if kind is OAuthErrorKind.INVALID_GRANT or isinstance(exc, InvalidUsageError):
        suggest("Log in again: dashauth login")
    elif kind is OAuthErrorKind.INVALID_RETURNED_STATE:
        warning("The login redirect did not come from this request and was discarded.")
        suggest("Start a new login: dashauth login")
    elif kind is OAuthErrorKind.ACCESS_DENIED:
        info("Access was not granted in the browser.")
    elif kind is OAuthErrorKind.TEMPORARILY_UNAVAILABLE:
        suggest("The provider is busy; try again in a moment.")
    return typer.Exit(code=exc.exit_code)


def login_command(
    timeout: Optional[int] = typer.Option(
        None, "--timeout", "-t", min=1, help="Seconds to wait for the browser redirect."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the login URL instead of opening a browser."
    ),
) -> None:
    """Log in through the browser and store the resulting tokens.

    Starts a listener on the local redirect address, opens the
    authorization page, and waits for the provider to redirect back with
    an authorization code. The code is exchanged for an access token and
    a refresh token, which are written to the credential store.

    Example::

        dashauth login
        dashauth login --no-browser --timeout 300
    """
    flow = _build_flow()

    def show_url(url: str) -> None:
        if no_browser:
            info("Visit this URL to log in:")
        else:
            info("Opening the login page in your browser. If it does not open, visit:")
        info(url)

    try:
        context = flow.login(timeout=timeout, launch_browser=not no_browser, on_url=show_url)
    except DashauthError as exc:
        raise _fail(exc) from None

    success("Successfully logged in.")
    info(f"Access token expires at {context.token.expires_at.isoformat()}")
    if context.scopes:
        get_output().debug("Granted scopes: " + " ".join(sorted(s.value for s in context.scopes)))


def refresh_command() -> None:
    """Exchange the stored refresh token for a new access token.

    Example::

        dashauth refresh
    """
    flow = _build_flow()
    try:
        context = flow.refresh()
    except DashauthError as exc:
        raise _fail(exc) from None
    success("Access token refreshed.")
    info(f"Access token expires at {context.token.expires_at.isoformat()}")


def logout_command() -> None:
    """Revoke the refresh token and delete stored credentials.

    Example::

        dashauth logout
    """
    flow = _build_flow()
    if flow.session.access_context() is None and flow.session.refresh_token is None:
        info("Not logged in.")
        return
    try:
        flow.logout()
    except DashauthError as exc:
        raise _fail(exc) from None
    success("Logged out.")


def status_command() -> None:
    """Show whether stored credentials exist and when they expire.

    Makes no network requests. In ``--json`` mode a single object is
    printed with ``logged_in``, ``expired``, ``expires_at``,
    ``has_refresh_token`` and ``credentials_file`` keys.

    Example::

        dashauth status
        dashauth --json status
    """
    from dashauth.output import OutputFormat

    flow = _build_flow()
    session = flow.session
    token = session.access_token
    record = {
        "logged_in": token is not None,
        "expired": session.is_expired(),
        "expires_at": token.expires_at.isoformat() if token else None,
        "has_refresh_token": session.refresh_token is not None,
        "credentials_file": str(flow.store.path),
    }

    output = get_output()
    if output.format == OutputFormat.JSON:
        format_response(record)
    else:
        rows = [
            ["Logged in", "yes" if record["logged_in"] else "no"],
            ["Access token", _mask(token.value) if token else "-"],
            ["Expires at", record["expires_at"] or "-"],
            ["Expired", "yes" if record["expired"] else "no"],
            ["Refresh token", "yes" if record["has_refresh_token"] else "no"],
            ["Credentials file", record["credentials_file"]],
        ]
        output.print_table(["Field", "Value"], rows, title="Login Status")

    if token is None:
        suggest("Log in: dashauth login")
    elif record["expired"]:
        if record["has_refresh_token"]:
            suggest("Refresh it: dashauth refresh")
        else:
            suggest("Log in again: dashauth login")
    else:
        remaining = token.expires_at - datetime.now(timezone.utc)
        get_output().debug(f"Token valid for another {int(remaining.total_seconds())}s")


def scopes_command() -> None:
    """List the scopes dashauth can request, marking the configured ones.

    Example::

        dashauth scopes
    """
    from dashauth.auth.authorize import requested_scopes
    from dashauth.config import load_config
    from dashauth.models import Scope

    requested = set(requested_scopes(load_config()))
    rows = [
        [scope.value, "yes" if scope in requested else "no", scope.description]
        for scope in Scope
    ]
    get_output().print_table(["Scope", "Requested", "Description"], rows, title="Scopes")


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return value[:8] + "..."
