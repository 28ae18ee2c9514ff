"""OAuth 2.0 Authorization Code + PKCE core for dashauth.

The components, leaf to root:

- :mod:`~dashauth.auth.pkce` -- verifier/challenge pairs and ``state`` tokens.
- :mod:`~dashauth.auth.errors` -- the :class:`OAuthError` taxonomy and
  :func:`classify_error`.
- :mod:`~dashauth.auth.session` -- :class:`SessionState`, the per-process
  session.
- :mod:`~dashauth.auth.authorize` -- :func:`build_authorization_url`.
- :mod:`~dashauth.auth.callback` -- :func:`handle_callback` and the
  :class:`CallbackListener`.
- :mod:`~dashauth.auth.token_client` -- :class:`TokenClient` for code
  exchange, refresh, and revocation.
- :mod:`~dashauth.auth.credential_store` -- :class:`CredentialStore`.
- :mod:`~dashauth.auth.flow` -- :class:`LoginFlow`, which wires the above
  to the browser and the credential store.

Typical usage::

    from dashauth.auth import CredentialStore, LoginFlow
    from dashauth.config import load_config

    flow = LoginFlow.from_store(load_config(), CredentialStore())
    context = flow.login()
"""

from dashauth.auth.authorize import build_authorization_url
from dashauth.auth.callback import CallbackListener, handle_callback
from dashauth.auth.credential_store import CredentialStore, StoredCredentials
from dashauth.auth.errors import OAuthError, OAuthErrorCategory, OAuthErrorKind, classify_error
from dashauth.auth.flow import LoginFlow
from dashauth.auth.pkce import generate_pkce_codes, generate_state
from dashauth.auth.result import Err, Ok, Result
from dashauth.auth.session import SessionState
from dashauth.auth.token_client import TokenClient

__all__ = [
    "CallbackListener",
    "CredentialStore",
    "Err",
    "LoginFlow",
    "OAuthError",
    "OAuthErrorCategory",
    "OAuthErrorKind",
    "Ok",
    "Result",
    "SessionState",
    "StoredCredentials",
    "TokenClient",
    "build_authorization_url",
    "classify_error",
    "generate_pkce_codes",
    "generate_state",
    "handle_callback",
]
