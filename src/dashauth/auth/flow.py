"""Login orchestration -- ties the OAuth core to the browser and the disk.

:class:`LoginFlow` is the only place where protocol outcomes become
exceptions: every ``Err`` from the core is unwrapped into an
:class:`~dashauth.exceptions.AuthError` carrying the classified
:class:`~dashauth.auth.errors.OAuthError`, so the CLI can decide what to
suggest next (for example a fresh login after ``invalid_grant``).

Nothing here retries. A failed exchange is reported and the caller
decides whether to start over.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from collections.abc import Callable
from typing import Any, Optional

from dashauth.auth.authorize import build_authorization_url
from dashauth.auth.callback import CallbackListener
from dashauth.auth.credential_store import CredentialStore, StoredCredentials
from dashauth.auth.session import SessionState
from dashauth.auth.token_client import TokenClient
from dashauth.exceptions import AuthError
from dashauth.models import AccessContext, ProviderConfig

logger = logging.getLogger(__name__)


class LoginFlow:
    """Drive login, refresh, and logout for one session.

    Args:
        session: The session for this process.
        config: Provider endpoints and callback settings.
        store: Where credentials are persisted after each exchange.
        client: Token endpoint client. Built from *session* and *config*
            when omitted.
        open_browser: Callable that opens a URL; ``webbrowser.open`` by
            default.
    """

    def __init__(
        self,
        session: SessionState,
        config: ProviderConfig,
        store: CredentialStore,
        client: Optional[TokenClient] = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self.session = session
        self.config = config
        self.store = store
        self.client = client or TokenClient(session, config)
        self._open_browser = open_browser

    @classmethod
    def from_store(cls, config: ProviderConfig, store: CredentialStore) -> "LoginFlow":
        """Create a flow whose session is seeded from *store*."""
        session = SessionState()
        stored = store.load()
        if stored is not None:
            session.seed(stored.access_token(), stored.refresh())
        return cls(session, config, store)

    def login(
        self,
        timeout: Optional[float] = None,
        launch_browser: bool = True,
        on_url: Optional[Callable[[str], None]] = None,
    ) -> AccessContext:
        """Run the interactive authorization code flow and persist the result.

        Args:
            timeout: Seconds to wait for the redirect. Defaults to
                ``config.callback_timeout``.
            launch_browser: Open the URL in the default browser.
            on_url: Called with the authorization URL before waiting, so
                the CLI can print it.

        Returns:
            The new :class:`~dashauth.models.AccessContext`.

        Raises:
            AuthError: If the provider reports an error, the state check
                fails, or no redirect arrives before the timeout.
            ConnectionError_: If the token request fails at the network level.
        """
        wait_for = timeout if timeout is not None else self.config.callback_timeout
        url = build_authorization_url(self.session, self.config)
        listener = CallbackListener(
            self.session,
            self.config.callback_host,
            self.config.callback_port,
            self.config.callback_path,
        )
        with listener.start(wait_for):
            if on_url is not None:
                on_url(url)
            if launch_browser:
                self._launch(url)
            outcome = listener.wait()

        if outcome is None:
            raise AuthError(f"Timed out after {wait_for:g}s waiting for the browser login to complete")
        outcome.unwrap()

        context = self.client.exchange_authorization_code().unwrap()
        self._persist(context)
        return context

    def refresh(self) -> AccessContext:
        """Exchange the refresh token for a new access token and persist it.

        Raises:
            InvalidUsageError: If no refresh token is stored.
            AuthError: If the provider rejects the refresh.
            ConnectionError_: On network failures.
        """
        context = self.client.exchange_refresh_token().unwrap()
        self._persist(context)
        return context

    def logout(self) -> None:
        """Revoke the refresh token, then forget all credentials."""
        self.client.revoke()
        self.store.clear()
        self.session.clear_tokens()

    def ensure_valid(self) -> AccessContext:
        """Return usable credentials, refreshing silently when expired.

        Raises:
            AuthError: If there are no credentials, or they expired and
                cannot be refreshed.
        """
        context = self.session.access_context()
        if context is None:
            raise AuthError("Not logged in. Run 'dashauth login' first.")
        if self.session.is_expired():
            if self.session.refresh_token is None:
                raise AuthError("Access token expired and no refresh token is stored. Run 'dashauth login'.")
            logger.debug("Access token expired; refreshing")
            return self.refresh()
        return context

    def _persist(self, context: AccessContext) -> None:
        self.store.save(StoredCredentials.from_context(context))

    def _launch(self, url: str) -> None:
        # Some browsers block until closed; never hold up the listener.
        thread = threading.Thread(target=self._open_browser, args=(url,), daemon=True)
        thread.start()
