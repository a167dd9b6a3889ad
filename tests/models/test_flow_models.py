"""Tests for the authorization request builder and captured callback parameters."""

from urllib.parse import unquote, urlparse

from desktop_oauth.models.flow import (
    AuthorizationRequest,
    CallbackResult,
    build_authorization_url,
)


def _decode_query(url: str) -> dict[str, str]:
    query = urlparse(url).query
    pairs = [item.split("=", 1) for item in query.split("&")]
    return {unquote(key): unquote(value) for key, value in pairs}


class TestBuildAuthorizationUrl:
    def setup_method(self):
        # Arrange
        self.inputs = {
            "endpoint": "https://accounts.example.com/o/oauth2/v2/auth",
            "client_id": "client-123.apps.example.com",
            "redirect_uri": "http://127.0.0.1:53682/",
            "scope": "openid email profile",
            "code_challenge": "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
            "state": "af0ifjsldkj~_-.",
        }

    def test_round_trip_recovers_every_parameter(self):
        # Act
        url = build_authorization_url(**self.inputs)

        # Assert
        assert url.startswith(self.inputs["endpoint"] + "?")
        params = _decode_query(url)
        assert params == {
            "response_type": "code",
            "client_id": self.inputs["client_id"],
            "redirect_uri": self.inputs["redirect_uri"],
            "scope": self.inputs["scope"],
            "code_challenge": self.inputs["code_challenge"],
            "code_challenge_method": "S256",
            "state": self.inputs["state"],
        }

    def test_spaces_are_encoded_as_percent_20(self):
        # Act
        url = build_authorization_url(**self.inputs)

        # Assert
        assert "scope=openid%20email%20profile" in url
        assert "+" not in urlparse(url).query

    def test_reserved_characters_in_values_are_percent_encoded(self):
        # Act
        url = build_authorization_url(**self.inputs)

        # Assert
        assert "redirect_uri=http%3A%2F%2F127.0.0.1%3A53682%2F" in url

    def test_values_with_ampersand_and_equals_survive(self):
        # Arrange
        self.inputs["state"] = "a&b=c d"

        # Act
        url = build_authorization_url(**self.inputs)

        # Assert
        assert _decode_query(url)["state"] == "a&b=c d"

    def test_endpoint_with_existing_query_is_extended(self):
        # Arrange
        self.inputs["endpoint"] = "https://auth.example.com/authorize?tenant=x"

        # Act
        url = build_authorization_url(**self.inputs)

        # Assert
        assert url.startswith("https://auth.example.com/authorize?tenant=x&")

    def test_request_model_builds_same_url(self):
        # Arrange
        request = AuthorizationRequest(
            authorization_endpoint=self.inputs["endpoint"],
            client_id=self.inputs["client_id"],
            redirect_uri=self.inputs["redirect_uri"],
            scope=self.inputs["scope"],
            code_challenge=self.inputs["code_challenge"],
            state=self.inputs["state"],
        )

        # Act & Assert
        assert request.build_authorization_url() == build_authorization_url(
            **self.inputs
        )


class TestCallbackResult:
    def test_from_query_params_maps_known_fields(self):
        # Act
        result = CallbackResult.from_query_params(
            {
                "code": "abc",
                "state": "S1",
                "scope": "openid",
            }
        )

        # Assert
        assert result.code == "abc"
        assert result.state == "S1"
        assert result.error is None
        assert result.is_success()
        assert not result.is_error()

    def test_error_fields(self):
        # Act
        result = CallbackResult.from_query_params(
            {"error": "access_denied", "error_description": "User denied access"}
        )

        # Assert
        assert result.is_error()
        assert not result.is_success()
        assert result.error_description == "User denied access"

    def test_repr_hides_code_and_state(self):
        result = CallbackResult(code="secret-code", state="secret-state")
        assert "secret-code" not in repr(result)
        assert "secret-state" not in repr(result)
