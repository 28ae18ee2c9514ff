"""Tests for authorization URL construction."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from dashauth.auth.authorize import build_authorization_url, requested_scopes
from dashauth.auth.session import SessionState
from dashauth.models import DEFAULT_SCOPES, ProviderConfig, Scope


def _params(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestRequestedScopes:
    def test_defaults_plus_offline_access(self) -> None:
        scopes = requested_scopes(ProviderConfig())
        assert scopes == [*DEFAULT_SCOPES, Scope.OFFLINE_ACCESS]

    def test_offline_access_moved_last_and_not_duplicated(self) -> None:
        config = ProviderConfig(
            scopes=[Scope.OFFLINE_ACCESS, Scope.ZONE_READ, Scope.ZONE_READ, Scope.USER_READ]
        )
        assert requested_scopes(config) == [Scope.ZONE_READ, Scope.USER_READ, Scope.OFFLINE_ACCESS]

    def test_empty_config_still_requests_offline_access(self) -> None:
        assert requested_scopes(ProviderConfig(scopes=[])) == [Scope.OFFLINE_ACCESS]


class TestBuildAuthorizationUrl:
    def test_url_targets_authorization_endpoint(
        self, session: SessionState, provider_config: ProviderConfig
    ) -> None:
        url = build_authorization_url(session, provider_config)
        parsed = urlparse(url)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == provider_config.authorization_url

    def test_required_parameters(self, session: SessionState, provider_config: ProviderConfig) -> None:
        params = _params(build_authorization_url(session, provider_config))
        assert params["response_type"] == "code"
        assert params["client_id"] == "test-client"
        assert params["redirect_uri"] == "http://127.0.0.1:8976/oauth/callback"
        assert params["code_challenge_method"] == "S256"

    def test_state_and_challenge_stored_in_session(
        self, session: SessionState, provider_config: ProviderConfig
    ) -> None:
        params = _params(build_authorization_url(session, provider_config))
        assert params["state"] == session.csrf_state
        assert len(params["state"]) == 32
        assert session.pkce is not None
        assert params["code_challenge"] == session.pkce.code_challenge

    def test_verifier_never_in_url(self, session: SessionState, provider_config: ProviderConfig) -> None:
        url = build_authorization_url(session, provider_config)
        assert session.pkce is not None
        assert session.pkce.code_verifier not in url
        assert "code_verifier" not in url

    def test_scope_is_space_delimited_and_percent_encoded(
        self, session: SessionState, provider_config: ProviderConfig
    ) -> None:
        url = build_authorization_url(session, provider_config)
        assert "+" not in urlparse(url).query
        scopes = _params(url)["scope"].split(" ")
        assert scopes[-1] == "offline_access"
        assert set(scopes) == {s.value for s in requested_scopes(provider_config)}

    def test_each_call_starts_fresh_attempt(
        self, session: SessionState, provider_config: ProviderConfig
    ) -> None:
        first = _params(build_authorization_url(session, provider_config))
        session.accept_code("stale")
        second = _params(build_authorization_url(session, provider_config))
        assert first["state"] != second["state"]
        assert first["code_challenge"] != second["code_challenge"]
        assert session.csrf_state == second["state"]
        assert session.authorization_code is None

    def test_redirect_uri_follows_config(self, session: SessionState) -> None:
        config = ProviderConfig(callback_host="localhost", callback_port=9100, callback_path="/cb")
        params = _params(build_authorization_url(session, config))
        assert params["redirect_uri"] == "http://localhost:9100/cb"
