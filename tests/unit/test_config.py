"""Tests for operator configuration."""

from __future__ import annotations

import pytest

from email_provider_operator.config import ConfigError, OperatorConfig, RetryWaits

BASE_ENV = {
    "RESEND_API_KEY": "re_test_key",
    "EMAIL_FROM": "noreply@example.com",
    "EMAIL_REPLY_TO": "support@example.com",
    "LOOPS_API_KEY": "loops_key",
    "WEBHOOK_SIGNING_SECRET": "whsec_c2VjcmV0",
}


def env(**overrides):
    result = dict(BASE_ENV)
    result.update(overrides)
    return {k: v for k, v in result.items() if v is not None}


class TestOperatorConfig:
    """Test cases for reading configuration from the environment."""

    def test_defaults(self):
        """Test the defaults applied to a minimal environment."""
        config = OperatorConfig.from_env(env())

        assert config.resend.api_key == "re_test_key"
        assert config.resend.base_url == "https://api.resend.com"
        assert config.loops.newsletter_list_id == ""
        assert config.webhook.enabled is True
        assert config.webhook.port == 9443
        assert config.webhook.path == "/apis/emailnotification.k8s.io/v1/resend"
        assert config.provider_timeout_seconds == 15.0
        assert config.retry_waits == RetryWaits()
        assert config.confirmation_probe_after_seconds == 300.0

    def test_overrides(self):
        """Test that environment values override defaults."""
        config = OperatorConfig.from_env(
            env(
                WEBHOOK_PORT="9000",
                EMAIL_RETRY_WAIT_HIGH_SECONDS="5",
                LOOPS_NEWSLETTER_LIST_ID="list-1",
                NEWSLETTER_CONTACT_GROUP="newsletter",
                CONFIRMATION_PROBE_AFTER_SECONDS="60",
            )
        )

        assert config.webhook.port == 9000
        assert config.retry_waits.high == 5
        assert config.loops.newsletter_list_id == "list-1"
        assert config.loops.newsletter_contact_group == "newsletter"
        assert config.confirmation_probe_after_seconds == 60

    def test_all_problems_reported_together(self):
        """Test that every invalid setting is listed in one error."""
        with pytest.raises(ConfigError) as exc_info:
            OperatorConfig.from_env(env(RESEND_API_KEY=None, METRICS_PORT="http", MAX_WORKERS="-1"))

        problems = exc_info.value.problems
        assert "RESEND_API_KEY is required" in problems
        assert any(p.startswith("METRICS_PORT") for p in problems)
        assert "MAX_WORKERS must be positive" in problems

    def test_signing_secret_required_only_with_webhook(self):
        """Test that the signing secret is optional when the webhook is off."""
        with pytest.raises(ConfigError):
            OperatorConfig.from_env(env(WEBHOOK_SIGNING_SECRET=None))

        config = OperatorConfig.from_env(env(WEBHOOK_SIGNING_SECRET=None, WEBHOOK_ENABLED="false"))
        assert config.webhook.enabled is False

    def test_timeout_is_capped(self):
        """Test that provider timeouts above 15 seconds are rejected."""
        with pytest.raises(ConfigError):
            OperatorConfig.from_env(env(PROVIDER_TIMEOUT_SECONDS="30"))

    def test_ports_must_differ(self):
        """Test that webhook and metrics ports cannot collide."""
        with pytest.raises(ConfigError):
            OperatorConfig.from_env(env(WEBHOOK_PORT="8080"))

    def test_retry_bounds(self):
        """Test that the max retry delay cannot be below the min."""
        with pytest.raises(ConfigError):
            OperatorConfig.from_env(env(RETRY_MIN_DELAY_SECONDS="10", RETRY_MAX_DELAY_SECONDS="5"))


class TestRetryWaits:
    """Test cases for priority based retry waits."""

    @pytest.mark.parametrize(
        "priority,expected",
        [("low", 600.0), ("normal", 60.0), ("high", 10.0), (None, 60.0), ("urgent", 60.0)],
    )
    def test_for_priority(self, priority, expected):
        """Test the wait chosen for each priority."""
        assert RetryWaits().for_priority(priority) == expected
