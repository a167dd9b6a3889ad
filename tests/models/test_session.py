import dataclasses

import pytest

from desktop_oauth.config import ClientConfig
from desktop_oauth.models.session import AuthorizationSession
from desktop_oauth.primitives.pkce import derive_code_challenge


@pytest.fixture
def config():
    return ClientConfig(
        client_id="client-123",
        client_secret="shh",
        authorization_endpoint="https://auth.example.com/authorize",
        token_endpoint="https://auth.example.com/token",
    )


class TestAuthorizationSession:
    def test_create_derives_challenge_from_verifier(self, config):
        # Act
        session = AuthorizationSession.create(config, "http://127.0.0.1:5000/")

        # Assert
        assert session.code_challenge == derive_code_challenge(session.code_verifier)
        assert session.redirect_uri == "http://127.0.0.1:5000/"
        assert session.state

    def test_session_is_immutable(self, config):
        # Arrange
        session = AuthorizationSession.create(config, "http://127.0.0.1:5000/")

        # Act & Assert
        with pytest.raises(dataclasses.FrozenInstanceError):
            session.state = "forged"

    def test_sessions_do_not_share_values(self, config):
        # Act
        first = AuthorizationSession.create(config, "http://127.0.0.1:5000/")
        second = AuthorizationSession.create(config, "http://127.0.0.1:5001/")

        # Assert
        assert first.code_verifier != second.code_verifier
        assert first.state != second.state

    def test_authorization_request_carries_session_values(self, config):
        # Arrange
        session = AuthorizationSession.create(config, "http://127.0.0.1:5000/")

        # Act
        request = session.authorization_request()

        # Assert
        assert request.authorization_endpoint == config.authorization_endpoint
        assert request.client_id == "client-123"
        assert request.redirect_uri == "http://127.0.0.1:5000/"
        assert request.scope == "openid email profile"
        assert request.code_challenge == session.code_challenge
        assert request.state == session.state

    def test_token_request_carries_verifier_and_secret(self, config):
        # Arrange
        session = AuthorizationSession.create(config, "http://127.0.0.1:5000/")

        # Act
        form = session.token_request("auth-code").to_form_data()

        # Assert
        assert form == {
            "grant_type": "authorization_code",
            "code": "auth-code",
            "redirect_uri": "http://127.0.0.1:5000/",
            "client_id": "client-123",
            "client_secret": "shh",
            "code_verifier": session.code_verifier,
        }

    def test_repr_does_not_leak_verifier_or_state(self, config):
        session = AuthorizationSession.create(config, "http://127.0.0.1:5000/")
        text = repr(session)
        assert session.code_verifier not in text
        assert session.state not in text
        assert "shh" not in text
