"""Operator configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from .constants import PRIORITY_HIGH, PRIORITY_LOW, PRIORITY_NORMAL


class ConfigError(ValueError):
    """Raised when the operator configuration is invalid."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("invalid configuration: " + "; ".join(problems))


@dataclass(frozen=True)
class RetryWaits:
    """Requeue delay after a failed send, selected by Email priority."""

    low: float = 600.0
    normal: float = 60.0
    high: float = 10.0

    def for_priority(self, priority: str | None) -> float:
        """Return the wait for a priority; unknown or empty priorities use normal."""
        if priority == PRIORITY_LOW:
            return self.low
        if priority == PRIORITY_HIGH:
            return self.high
        return self.normal


@dataclass(frozen=True)
class ResendSettings:
    api_key: str
    email_from: str
    reply_to: str
    base_url: str = "https://api.resend.com"
    rate_limit_per_second: float = 2.0


@dataclass(frozen=True)
class LoopsSettings:
    api_key: str
    base_url: str = "https://app.loops.so"
    newsletter_list_id: str = ""
    newsletter_contact_group: str = ""
    rate_limit_per_second: float = 10.0


@dataclass(frozen=True)
class WebhookSettings:
    enabled: bool = True
    port: int = 9443
    path: str = "/apis/emailnotification.k8s.io/v1/resend"
    signing_secret: str = ""
    timestamp_tolerance_seconds: int = 300
    conflict_retries: int = 3


@dataclass(frozen=True)
class OperatorConfig:
    """Complete, validated operator configuration."""

    resend: ResendSettings
    loops: LoopsSettings
    webhook: WebhookSettings = field(default_factory=WebhookSettings)
    retry_waits: RetryWaits = field(default_factory=RetryWaits)
    provider_timeout_seconds: float = 15.0
    metrics_port: int = 8080
    resync_interval_seconds: float = 60.0
    retry_min_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 300.0
    signal_retry_delay_seconds: float = 10.0
    max_workers: int = 4
    template_cache_ttl_seconds: float = 30.0
    confirmation_probe_after_seconds: float = 300.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build the configuration from environment variables.

        All problems are collected and reported together in one ConfigError.
        """
        env = os.environ if environ is None else environ
        reader = _EnvReader(env)

        resend = ResendSettings(
            api_key=reader.required("RESEND_API_KEY"),
            email_from=reader.required("EMAIL_FROM"),
            reply_to=reader.required("EMAIL_REPLY_TO"),
            base_url=reader.string("RESEND_BASE_URL", "https://api.resend.com"),
            rate_limit_per_second=reader.positive_float("RESEND_RATE_LIMIT_PER_SECOND", 2.0),
        )
        loops = LoopsSettings(
            api_key=reader.required("LOOPS_API_KEY"),
            base_url=reader.string("LOOPS_BASE_URL", "https://app.loops.so"),
            newsletter_list_id=reader.string("LOOPS_NEWSLETTER_LIST_ID", ""),
            newsletter_contact_group=reader.string("NEWSLETTER_CONTACT_GROUP", ""),
            rate_limit_per_second=reader.positive_float("LOOPS_RATE_LIMIT_PER_SECOND", 10.0),
        )

        webhook_enabled = reader.boolean("WEBHOOK_ENABLED", True)
        webhook = WebhookSettings(
            enabled=webhook_enabled,
            port=reader.port("WEBHOOK_PORT", 9443),
            path=reader.string("WEBHOOK_PATH", "/apis/emailnotification.k8s.io/v1/resend"),
            signing_secret=(
                reader.required("WEBHOOK_SIGNING_SECRET")
                if webhook_enabled
                else reader.string("WEBHOOK_SIGNING_SECRET", "")
            ),
            timestamp_tolerance_seconds=int(
                reader.non_negative_float("WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS", 300)
            ),
            conflict_retries=int(reader.positive_float("WEBHOOK_CONFLICT_RETRIES", 3)),
        )
        if not webhook.path.startswith("/"):
            reader.problems.append("WEBHOOK_PATH must start with '/'")

        retry_waits = RetryWaits(
            low=reader.non_negative_float("EMAIL_RETRY_WAIT_LOW_SECONDS", 600.0),
            normal=reader.non_negative_float("EMAIL_RETRY_WAIT_NORMAL_SECONDS", 60.0),
            high=reader.non_negative_float("EMAIL_RETRY_WAIT_HIGH_SECONDS", 10.0),
        )

        timeout = reader.positive_float("PROVIDER_TIMEOUT_SECONDS", 15.0)
        if timeout > 15.0:
            reader.problems.append("PROVIDER_TIMEOUT_SECONDS must not exceed 15")

        min_delay = reader.positive_float("RETRY_MIN_DELAY_SECONDS", 1.0)
        max_delay = reader.positive_float("RETRY_MAX_DELAY_SECONDS", 300.0)
        if max_delay < min_delay:
            reader.problems.append("RETRY_MAX_DELAY_SECONDS must be >= RETRY_MIN_DELAY_SECONDS")

        config = cls(
            resend=resend,
            loops=loops,
            webhook=webhook,
            retry_waits=retry_waits,
            provider_timeout_seconds=timeout,
            metrics_port=reader.port("METRICS_PORT", 8080),
            resync_interval_seconds=reader.positive_float("RESYNC_INTERVAL_SECONDS", 60.0),
            retry_min_delay_seconds=min_delay,
            retry_max_delay_seconds=max_delay,
            signal_retry_delay_seconds=reader.positive_float("SIGNAL_RETRY_DELAY_SECONDS", 10.0),
            max_workers=int(reader.positive_float("MAX_WORKERS", 4)),
            template_cache_ttl_seconds=reader.non_negative_float("TEMPLATE_CACHE_TTL_SECONDS", 30.0),
            confirmation_probe_after_seconds=reader.non_negative_float(
                "CONFIRMATION_PROBE_AFTER_SECONDS", 300.0
            ),
        )

        if webhook.enabled and webhook.port == config.metrics_port:
            reader.problems.append("WEBHOOK_PORT and METRICS_PORT must differ")

        if reader.problems:
            raise ConfigError(reader.problems)
        return config


class _EnvReader:
    """Typed environment accessors that record problems instead of raising."""

    def __init__(self, env: Mapping[str, str]):
        self.env = env
        self.problems: list[str] = []

    def string(self, name: str, default: str) -> str:
        value = self.env.get(name)
        return default if value is None or value.strip() == "" else value.strip()

    def required(self, name: str) -> str:
        value = self.string(name, "")
        if not value:
            self.problems.append(f"{name} is required")
        return value

    def boolean(self, name: str, default: bool) -> bool:
        value = self.string(name, "")
        if not value:
            return default
        lowered = value.lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        self.problems.append(f"{name} must be a boolean, got {value!r}")
        return default

    def _number(self, name: str, default: float) -> float | None:
        value = self.string(name, "")
        if not value:
            return default
        try:
            return float(value)
        except ValueError:
            self.problems.append(f"{name} must be a number, got {value!r}")
            return None

    def non_negative_float(self, name: str, default: float) -> float:
        number = self._number(name, default)
        if number is None:
            return default
        if number < 0:
            self.problems.append(f"{name} must not be negative")
            return default
        return number

    def positive_float(self, name: str, default: float) -> float:
        number = self._number(name, default)
        if number is None:
            return default
        if number <= 0:
            self.problems.append(f"{name} must be positive")
            return default
        return number

    def port(self, name: str, default: int) -> int:
        number = self._number(name, default)
        if number is None:
            return default
        if number != int(number) or not 1 <= number <= 65535:
            self.problems.append(f"{name} must be a port between 1 and 65535")
            return default
        return int(number)
