"""
Unit Tests: OAuth Token Lifecycle
=================================
Authorization URLs, code exchange, refresh and token freshness for
every provider, against a recording fake transport.
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

ALL_PROVIDERS = ["googledrive", "google", "dropbox", "onedrive", "box", "adobe"]
BASIC_AUTH_PROVIDERS = {"dropbox", "box"}

REDIRECT_URI = "https://app.example.com/oauth/callback"


def _token_response(**fields):
    from fakes import FakeResponse

    payload = {"access_token": "new-access", "expires_in": 3600, "token_type": "bearer"}
    payload.update(fields)
    return FakeResponse(200, payload)


class TestAuthorizationUrl:
    """Tests for authorization_url."""

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_is_deterministic_and_offline(self, provider, make_provider, fake_session):
        """Same inputs give the same URL and nothing touches the network."""
        adapter = make_provider(provider)

        first = adapter.authorization_url("state-123", REDIRECT_URI)
        second = adapter.authorization_url("state-123", REDIRECT_URI)

        assert first == second
        assert fake_session.calls == []

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_carries_client_state_and_redirect(self, provider, make_provider):
        adapter = make_provider(provider)

        url = adapter.authorization_url("state-123", REDIRECT_URI)
        query = parse_qs(urlparse(url).query)

        assert url.startswith(adapter.AUTHORIZE_URL + "?")
        assert query["client_id"] == ["client-id"]
        assert query["redirect_uri"] == [REDIRECT_URI]
        assert query["state"] == ["state-123"]
        assert query["response_type"] == ["code"]

    @pytest.mark.unit
    @pytest.mark.parametrize("provider,param,value", [
        ("googledrive", "access_type", "offline"),
        ("googledrive", "prompt", "consent"),
        ("google", "access_type", "offline"),
        ("dropbox", "token_access_type", "offline"),
        ("onedrive", "response_mode", "query"),
    ])
    def test_offline_access_params(self, provider, param, value, make_provider):
        """Each provider asks for a refresh token its own way."""
        url = make_provider(provider).authorization_url("s", REDIRECT_URI)

        assert parse_qs(urlparse(url).query)[param] == [value]

    @pytest.mark.unit
    @pytest.mark.parametrize("provider,scope", [
        ("googledrive", "https://www.googleapis.com/auth/drive.file"),
        ("google", "https://www.googleapis.com/auth/photoslibrary.appendonly"),
        ("onedrive", "offline_access"),
        ("adobe", "cc_files"),
    ])
    def test_scopes(self, provider, scope, make_provider):
        url = make_provider(provider).authorization_url("s", REDIRECT_URI)

        assert scope in parse_qs(urlparse(url).query)["scope"][0].split(" ")


class TestExchangeCode:
    """Tests for exchange_code."""

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_returns_credentials(self, provider, make_provider, fake_session):
        adapter = make_provider(provider)
        fake_session.add("POST", adapter.TOKEN_URL, _token_response(refresh_token="new-refresh"))

        creds = adapter.exchange_code("auth-code", REDIRECT_URI)

        assert creds.access_token == "new-access"
        assert creds.refresh_token == "new-refresh"
        assert creds.expires_at > datetime.now(timezone.utc)

        call = fake_session.calls_to("POST", adapter.TOKEN_URL)[0]
        assert call.data["grant_type"] == "authorization_code"
        assert call.data["code"] == "auth-code"
        assert call.data["redirect_uri"] == REDIRECT_URI

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_client_authentication(self, provider, make_provider, fake_session):
        """Dropbox and Box take HTTP basic auth, the rest form fields."""
        adapter = make_provider(provider)
        fake_session.add("POST", adapter.TOKEN_URL, _token_response())

        adapter.exchange_code("auth-code", REDIRECT_URI)
        call = fake_session.calls[0]

        if provider in BASIC_AUTH_PROVIDERS:
            assert call.kwargs["auth"] == ("client-id", "client-secret")
            assert "client_secret" not in call.data
        else:
            assert call.kwargs["auth"] is None
            assert call.data["client_id"] == "client-id"
            assert call.data["client_secret"] == "client-secret"

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_error_response_carries_status_and_body(self, provider, make_provider, fake_session):
        from cloud_export.errors import AuthExchangeError
        from fakes import FakeResponse

        adapter = make_provider(provider)
        fake_session.add("POST", adapter.TOKEN_URL, FakeResponse(400, {"error": "invalid_grant"}))

        with pytest.raises(AuthExchangeError) as exc_info:
            adapter.exchange_code("bad-code", REDIRECT_URI)

        assert exc_info.value.status_code == 400
        assert "invalid_grant" in exc_info.value.response_body

    @pytest.mark.unit
    def test_transport_failure(self, make_provider, fake_session):
        from cloud_export.errors import AuthExchangeError
        from fakes import connection_error

        adapter = make_provider("dropbox")
        fake_session.add("POST", adapter.TOKEN_URL, connection_error())

        with pytest.raises(AuthExchangeError) as exc_info:
            adapter.exchange_code("code", REDIRECT_URI)

        assert exc_info.value.status_code is None

    @pytest.mark.unit
    def test_response_without_access_token(self, make_provider, fake_session):
        from cloud_export.errors import AuthExchangeError
        from fakes import FakeResponse

        adapter = make_provider("box")
        fake_session.add("POST", adapter.TOKEN_URL, FakeResponse(200, {"token_type": "bearer"}))

        with pytest.raises(AuthExchangeError):
            adapter.exchange_code("code", REDIRECT_URI)

    @pytest.mark.unit
    def test_non_json_response(self, make_provider, fake_session):
        from cloud_export.errors import AuthExchangeError
        from fakes import FakeResponse

        adapter = make_provider("onedrive")
        fake_session.add("POST", adapter.TOKEN_URL, FakeResponse(200, text="<html>oops</html>"))

        with pytest.raises(AuthExchangeError):
            adapter.exchange_code("code", REDIRECT_URI)


class TestRefreshToken:
    """Tests for refresh_token."""

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_refresh_extends_expiry(self, provider, make_provider, fake_session, expired_credentials):
        """Refreshed credentials expire strictly later than the stale ones."""
        adapter = make_provider(provider)
        fake_session.add("POST", adapter.TOKEN_URL, _token_response())

        refreshed = adapter.refresh_token(expired_credentials.refresh_token)

        assert refreshed.access_token == "new-access"
        assert refreshed.expires_at > expired_credentials.expires_at

        call = fake_session.calls[0]
        assert call.data["grant_type"] == "refresh_token"
        assert call.data["refresh_token"] == "refresh-token"

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_keeps_refresh_token_when_not_rotated(self, provider, make_provider, fake_session):
        adapter = make_provider(provider)
        fake_session.add("POST", adapter.TOKEN_URL, _token_response())

        assert adapter.refresh_token("long-lived-refresh").refresh_token == "long-lived-refresh"

    @pytest.mark.unit
    def test_uses_rotated_refresh_token(self, make_provider, fake_session):
        adapter = make_provider("box")
        fake_session.add("POST", adapter.TOKEN_URL, _token_response(refresh_token="rotated"))

        assert adapter.refresh_token("old").refresh_token == "rotated"

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_refresh_failure(self, provider, make_provider, fake_session):
        from cloud_export.errors import AuthRefreshError
        from fakes import FakeResponse

        adapter = make_provider(provider)
        fake_session.add("POST", adapter.TOKEN_URL, FakeResponse(401, {"error": "invalid_grant"}))

        with pytest.raises(AuthRefreshError) as exc_info:
            adapter.refresh_token("revoked")

        assert exc_info.value.status_code == 401
        assert "invalid_grant" in str(exc_info.value)


class TestEnsureFresh:
    """Tests for ensure_fresh."""

    @pytest.mark.unit
    def test_valid_credentials_untouched(self, make_provider, fake_session, valid_credentials):
        adapter = make_provider("dropbox")

        assert adapter.ensure_fresh(valid_credentials) is valid_credentials
        assert fake_session.calls == []

    @pytest.mark.unit
    def test_expired_credentials_refreshed_and_reported(self, make_provider, fake_session, expired_credentials):
        """Rotated credentials go to the refresh callback."""
        received = []
        adapter = make_provider("googledrive", token_refresh_callback=received.append)
        fake_session.add("POST", adapter.TOKEN_URL, _token_response())

        fresh = adapter.ensure_fresh(expired_credentials)

        assert fresh.access_token == "new-access"
        assert fresh.refresh_token == "refresh-token"
        assert received == [fresh]

    @pytest.mark.unit
    def test_expired_without_refresh_token(self, make_provider, fake_session):
        from cloud_export.errors import AuthRefreshError
        from cloud_export.models import ProviderCredentials

        adapter = make_provider("box")
        stale = ProviderCredentials(access_token="stale", expires_at=datetime(2000, 1, 1, tzinfo=timezone.utc))

        with pytest.raises(AuthRefreshError):
            adapter.ensure_fresh(stale)

        assert fake_session.calls == []

    @pytest.mark.unit
    def test_callback_failure_does_not_break_refresh(self, make_provider, fake_session, expired_credentials):
        def broken_callback(credentials):
            raise RuntimeError("database down")

        adapter = make_provider("onedrive", token_refresh_callback=broken_callback)
        fake_session.add("POST", adapter.TOKEN_URL, _token_response())

        assert adapter.ensure_fresh(expired_credentials).access_token == "new-access"

    @pytest.mark.unit
    def test_upload_refreshes_before_api_calls(self, make_provider, fake_session, expired_credentials, sample_image_bytes):
        """The token endpoint is hit first and the new token is used for the upload."""
        from fakes import FakeResponse

        adapter = make_provider("adobe")
        fake_session.add("POST", adapter.TOKEN_URL, _token_response())
        fake_session.add("PUT", "/files/", FakeResponse(201))
        fake_session.add("GET", "/files/", FakeResponse(200, {"link": "https://assets.adobe.com/id/x"}))

        adapter.upload_file(sample_image_bytes, "a.jpg", expired_credentials)

        assert fake_session.calls[0].url == adapter.TOKEN_URL
        put = fake_session.calls_to("PUT")[0]
        assert put.headers["Authorization"] == "Bearer new-access"
