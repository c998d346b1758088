"""Tests for error types and sanitization utilities."""

from __future__ import annotations

from email_provider_operator.utils.errors import (
    BadRequestError,
    DeletionPendingError,
    NotFoundError,
    RetryableSignal,
    TemplateRenderError,
    WaitingForDependentsError,
    sanitize_dict,
    sanitize_error_message,
    sanitize_exception,
)


class TestSanitizeErrorMessage:
    """Test cases for sanitize_error_message function."""

    def test_sanitize_bearer_token(self):
        """Test that bearer tokens are sanitized."""
        result = sanitize_error_message("401: Authorization Bearer re_abc123XYZ456 rejected")
        assert "re_abc123XYZ456" not in result
        assert "[REDACTED]" in result

    def test_sanitize_resend_key(self):
        """Test that bare Resend API keys are sanitized."""
        result = sanitize_error_message("invalid key re_1234567890abcdef")
        assert "re_1234567890abcdef" not in result

    def test_sanitize_webhook_secret(self):
        """Test that webhook signing secrets are sanitized."""
        result = sanitize_error_message("bad secret whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw")
        assert "MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw" not in result

    def test_sanitize_api_key_field(self):
        """Test that api_key fields are sanitized."""
        result = sanitize_error_message("config api_key=abcdef123 invalid")
        assert "abcdef123" not in result

    def test_plain_message_unchanged(self):
        """Test that messages without secrets pass through."""
        message = "contact 'ada@example.com' not found"
        assert sanitize_error_message(message) == message


class TestSanitizeException:
    """Test cases for sanitize_exception function."""

    def test_sanitize_exception(self):
        """Test that exception messages are sanitized."""
        error = ValueError("request failed: token=secret-token-value")
        assert "secret-token-value" not in sanitize_exception(error)


class TestSanitizeDict:
    """Test cases for sanitize_dict function."""

    def test_sensitive_keys_redacted(self):
        """Test that sensitive keys are redacted recursively."""
        data = {"api_key": "re_live", "nested": {"password": "p"}, "name": "ok"}

        result = sanitize_dict(data)

        assert result["api_key"] == "[REDACTED]"
        assert result["nested"]["password"] == "[REDACTED]"
        assert result["name"] == "ok"


class TestErrorTaxonomy:
    """Test cases for the operator error hierarchy."""

    def test_not_found_message(self):
        """Test the default NotFoundError message."""
        error = NotFoundError("contact", "ada")
        assert str(error) == "contact 'ada' not found"
        assert error.entity_kind == "contact"

    def test_template_errors_are_bad_requests(self):
        """Test that rendering failures are permanent."""
        assert issubclass(TemplateRenderError, BadRequestError)

    def test_deletion_signals_are_retryable(self):
        """Test that deletion guard signals share a base class."""
        assert issubclass(WaitingForDependentsError, RetryableSignal)
        assert issubclass(DeletionPendingError, RetryableSignal)
        assert str(WaitingForDependentsError(2, "ContactGroupMembership")) == (
            "waiting for 2 ContactGroupMembership deletions"
        )
