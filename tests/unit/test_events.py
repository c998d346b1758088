"""Tests for Kubernetes event utilities."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from kubernetes.client.exceptions import ApiException

from email_provider_operator.models import ManagedResource
from email_provider_operator.utils.events import (
    KopfEventRecorder,
    KubernetesEventRecorder,
    emit_event,
    emit_reconcile_failed,
    emit_reconcile_started,
    emit_validate_failed,
)


def email_resource() -> ManagedResource:
    return ManagedResource(
        {
            "apiVersion": "notification.miloapis.com/v1alpha1",
            "kind": "Email",
            "metadata": {"name": "welcome", "namespace": "default", "uid": "u1", "resourceVersion": "7"},
        }
    )


class TestEmitEvent:
    """Test cases for emit_event function."""

    @patch("email_provider_operator.utils.events.kopf.event")
    def test_emit_event_normal(self, mock_event):
        """Test emitting normal event."""
        body = {"metadata": {"name": "test-resource", "namespace": "default"}}

        emit_event(body, "TestReason", "Test message")

        mock_event.assert_called_once_with(
            body,
            reason="TestReason",
            message="Test message",
            type="Normal",
        )

    @patch("email_provider_operator.utils.events.kopf.event")
    def test_emit_event_warning(self, mock_event):
        """Test emitting warning event."""
        body = {"metadata": {"name": "test-resource", "namespace": "default"}}

        emit_event(body, "ErrorReason", "Error occurred", type_="Warning")

        mock_event.assert_called_once_with(
            body,
            reason="ErrorReason",
            message="Error occurred",
            type="Warning",
        )


class TestReconcileEvents:
    """Test cases for reconciliation events."""

    @patch("email_provider_operator.utils.events.kopf.event")
    def test_emit_reconcile_started(self, mock_event):
        """Test emitting reconcile started event."""
        body = {"metadata": {"name": "test-resource"}}

        emit_reconcile_started(body)

        call_args = mock_event.call_args
        assert call_args[1]["reason"] == "ReconcileStarted"
        assert call_args[1]["type"] == "Normal"

    @patch("email_provider_operator.utils.events.kopf.event")
    def test_emit_reconcile_failed(self, mock_event):
        """Test emitting reconcile failed event."""
        emit_reconcile_failed({}, "provider unavailable")

        call_args = mock_event.call_args
        assert call_args[1]["reason"] == "ReconcileFailed"
        assert call_args[1]["message"] == "provider unavailable"
        assert call_args[1]["type"] == "Warning"

    @patch("email_provider_operator.utils.events.kopf.event")
    def test_emit_validate_failed(self, mock_event):
        """Test emitting validation failed event."""
        emit_validate_failed({}, "spec.templateRef.name is required")

        assert mock_event.call_args[1]["reason"] == "ValidateFailed"
        assert mock_event.call_args[1]["type"] == "Warning"


class TestRecorders:
    """Test cases for the event recorders."""

    @patch("email_provider_operator.utils.events.kopf.event")
    def test_kopf_recorder_sanitizes(self, mock_event):
        """Test that the kopf recorder posts sanitized messages."""
        resource = email_resource()

        KopfEventRecorder().record(resource, "ReconcileFailed", "api_key=re_secret123 bad", "Warning")

        args = mock_event.call_args
        assert args[0][0] is resource.body
        assert "re_secret123" not in args[1]["message"]
        assert args[1]["type"] == "Warning"

    def test_kubernetes_recorder_builds_event(self):
        """Test the events.k8s.io Event written for the webhook."""
        api = MagicMock()
        recorder = KubernetesEventRecorder("email-provider-operator-webhook", api=api, reporting_instance="pod-1")

        recorder.record(email_resource(), "Delivered", "Updated Email status", "Normal")

        kwargs = api.create_namespaced_event.call_args[1]
        event = kwargs["body"]
        assert kwargs["namespace"] == "default"
        assert event.reason == "Delivered"
        assert event.note == "Updated Email status"
        assert event.reporting_controller == "email-provider-operator-webhook"
        assert event.reporting_instance == "pod-1"
        assert event.regarding.kind == "Email"
        assert event.regarding.uid == "u1"

    def test_kubernetes_recorder_swallows_api_errors(self):
        """Test that a failed event write does not fail the request."""
        api = MagicMock()
        api.create_namespaced_event.side_effect = ApiException(status=403, reason="Forbidden")
        recorder = KubernetesEventRecorder("email-provider-operator-webhook", api=api)

        recorder.record(email_resource(), "Delivered", "ok")

        assert api.create_namespaced_event.called
