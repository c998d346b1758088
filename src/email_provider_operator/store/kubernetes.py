"""ResourceStore backed by the Kubernetes API server."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..indexing import FieldIndexer
from ..models import ManagedResource, ResourceKey, resource_kind
from ..utils.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    TransportError,
    sanitize_error_message,
)

logger = logging.getLogger(__name__)


def translate_api_exception(error: ApiException, key: ResourceKey) -> Exception:
    """Map an API server error onto the operator's error taxonomy."""
    reason = sanitize_error_message(str(error.reason or ""))
    if error.status == 404:
        return NotFoundError(key.kind, key.name)
    if error.status == 409:
        return ConflictError(f"conflict writing {key}: {reason}")
    if error.status in (400, 422):
        return BadRequestError(f"invalid request for {key}: {reason}")
    return TransportError(f"API error for {key}: {error.status} {reason}", status_code=error.status)


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client, loading in-cluster config first."""
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.CustomObjectsApi()


class KubernetesStore:
    """CustomObjectsApi-based store that writes through to the field indexer."""

    def __init__(self, api: client.CustomObjectsApi, indexer: FieldIndexer):
        self.api = api
        self.indexer = indexer

    def _call(self, operation: str, key: ResourceKey, fn: Callable[..., Any], **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = fn(**kwargs)
            metrics.api_call_total.labels(operation=operation, result="success").inc()
            return result
        except ApiException as e:
            metrics.api_call_total.labels(operation=operation, result=str(e.status)).inc()
            raise translate_api_exception(e, key) from e
        finally:
            logger.debug("%s %s took %.3fs", operation, key, time.time() - start_time)

    def _target(self, key: ResourceKey) -> dict[str, Any]:
        kind = resource_kind(key.kind)
        target = {"group": kind.group, "version": kind.version, "plural": kind.plural}
        if kind.namespaced:
            target["namespace"] = key.namespace
        return target

    def _wrap(self, key: ResourceKey, raw: dict[str, Any]) -> ManagedResource:
        kind = resource_kind(key.kind)
        raw.setdefault("apiVersion", kind.api_version)
        raw.setdefault("kind", kind.kind)
        return ManagedResource(raw)

    def get(self, key: ResourceKey) -> ManagedResource:
        if resource_kind(key.kind).namespaced:
            fn = self.api.get_namespaced_custom_object
        else:
            fn = self.api.get_cluster_custom_object
        raw = self._call("get", key, fn, name=key.name, **self._target(key))
        return self._wrap(key, raw)

    def list_by_index(self, kind: str, index_name: str, value: str) -> list[ManagedResource]:
        resources = []
        for key in self.indexer.lookup(kind, index_name, value):
            try:
                resource = self.get(key)
            except NotFoundError:
                self.indexer.remove(key)
                continue
            # A fresh read may show the entry no longer matches.
            self.indexer.upsert(resource)
            if key in self.indexer.lookup(kind, index_name, value):
                resources.append(resource)
        return resources

    def update_status(self, resource: ManagedResource, writer: str = "reconciler") -> ManagedResource:
        key = resource.key
        if resource_kind(key.kind).namespaced:
            fn = self.api.replace_namespaced_custom_object_status
        else:
            fn = self.api.replace_cluster_custom_object_status
        try:
            raw = self._call("replace_status", key, fn, name=key.name, body=resource.body, **self._target(key))
        except ConflictError:
            metrics.status_conflicts_total.labels(kind=key.kind, writer=writer).inc()
            raise
        stored = self._wrap(key, raw)
        self.indexer.upsert(stored)
        return stored

    def _replace(self, resource: ManagedResource) -> ManagedResource:
        key = resource.key
        if resource_kind(key.kind).namespaced:
            fn = self.api.replace_namespaced_custom_object
        else:
            fn = self.api.replace_cluster_custom_object
        raw = self._call("replace", key, fn, name=key.name, body=resource.body, **self._target(key))
        stored = self._wrap(key, raw)
        self.indexer.upsert(stored)
        return stored

    def add_finalizer(self, resource: ManagedResource, finalizer: str) -> ManagedResource:
        finalizers = resource.finalizers
        if finalizer in finalizers:
            return resource
        resource.metadata["finalizers"] = finalizers + [finalizer]
        return self._replace(resource)

    def remove_finalizer(self, resource: ManagedResource, finalizer: str) -> ManagedResource:
        finalizers = resource.finalizers
        if finalizer not in finalizers:
            return resource
        resource.metadata["finalizers"] = [f for f in finalizers if f != finalizer]
        return self._replace(resource)

    def delete(self, key: ResourceKey) -> None:
        if resource_kind(key.kind).namespaced:
            fn = self.api.delete_namespaced_custom_object
        else:
            fn = self.api.delete_cluster_custom_object
        self._call("delete", key, fn, name=key.name, **self._target(key))
