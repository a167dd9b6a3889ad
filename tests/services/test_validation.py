"""Tests for callback validation ordering and outcomes."""

import pytest

from desktop_oauth.models.errors import (
    CallbackValidationError,
    MissingCodeError,
    ProviderError,
    StateMismatchError,
)
from desktop_oauth.models.flow import CallbackResult
from desktop_oauth.services.validation import states_match, validate_callback


class TestValidateCallback:
    def test_matching_state_and_code_returns_code(self):
        # Arrange
        result = CallbackResult(state="S1", code="abc")

        # Act & Assert
        assert validate_callback(result, "S1") == "abc"

    def test_wrong_state_raises_state_mismatch(self):
        # Arrange
        result = CallbackResult(state="WRONG", code="abc")

        # Act & Assert
        with pytest.raises(StateMismatchError) as exc_info:
            validate_callback(result, "S1")

        assert "CSRF" in str(exc_info.value)

    def test_missing_state_raises_state_mismatch(self):
        with pytest.raises(StateMismatchError):
            validate_callback(CallbackResult(code="abc"), "S1")

    def test_state_comparison_is_case_sensitive(self):
        with pytest.raises(StateMismatchError):
            validate_callback(CallbackResult(state="s1", code="abc"), "S1")

    @pytest.mark.parametrize(
        "result",
        [
            CallbackResult(error="access_denied"),
            CallbackResult(error="access_denied", state="WRONG"),
            CallbackResult(error="access_denied", state="S1", code="abc"),
        ],
    )
    def test_provider_error_wins_regardless_of_state_or_code(self, result):
        # Act & Assert
        with pytest.raises(ProviderError) as exc_info:
            validate_callback(result, "S1")

        assert exc_info.value.error == "access_denied"

    def test_provider_error_carries_description(self):
        # Arrange
        result = CallbackResult(
            error="access_denied",
            error_description="User denied access",
            error_uri="https://auth.example.com/help",
        )

        # Act
        with pytest.raises(ProviderError) as exc_info:
            validate_callback(result, "S1")

        # Assert
        error = exc_info.value
        assert error.error_description == "User denied access"
        assert error.error_uri == "https://auth.example.com/help"
        assert "access_denied - User denied access" in str(error)

    def test_missing_code_raises_missing_code(self):
        with pytest.raises(MissingCodeError):
            validate_callback(CallbackResult(state="S1"), "S1")

    def test_empty_code_raises_missing_code(self):
        with pytest.raises(MissingCodeError):
            validate_callback(CallbackResult(state="S1", code=""), "S1")

    def test_all_failures_share_a_base_class(self):
        for error_type in (ProviderError, StateMismatchError, MissingCodeError):
            assert issubclass(error_type, CallbackValidationError)


class TestStatesMatch:
    def test_non_ascii_state_does_not_raise(self):
        assert not states_match("S1", "ß")
        assert states_match("ß", "ß")

    def test_empty_actual_never_matches(self):
        assert not states_match("", "")
        assert not states_match("S1", None)
