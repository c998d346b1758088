"""Declarative resource store."""

from .base import ResourceStore, StatusMutation, apply_status
from .kubernetes import KubernetesStore, get_k8s_client, translate_api_exception

__all__ = [
    "ResourceStore",
    "StatusMutation",
    "apply_status",
    "KubernetesStore",
    "get_k8s_client",
    "translate_api_exception",
]
