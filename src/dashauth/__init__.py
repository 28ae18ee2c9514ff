"""dashauth -- log a command-line tool in to the dashboard with OAuth 2.0.

This package implements the OAuth 2.0 Authorization Code grant with PKCE
(:rfc:`6749` section 4.1, :rfc:`7636`) against a single fixed identity
provider. It obtains an access/refresh token pair through the user's
browser, keeps it fresh, persists it between invocations, and revokes it
on logout.

Typical workflow::

    dashauth login      # open the browser, wait for the redirect
    dashauth status     # show token expiry
    dashauth refresh    # trade the refresh token for a new access token
    dashauth logout     # revoke and forget

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading and saving.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    auth: The OAuth protocol core (PKCE, callback, token exchange).
"""

__version__ = "0.1.0"
