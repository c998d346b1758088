"""Resource identities and a thin wrapper over custom resource bodies."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from .constants import (
    API_GROUP,
    API_VERSION,
    FINALIZER_CONTACT,
    FINALIZER_CONTACT_GROUP,
    FINALIZER_CONTACT_GROUP_MEMBERSHIP,
    IAM_API_GROUP,
    IAM_API_VERSION,
    KIND_CONTACT,
    KIND_CONTACT_GROUP,
    KIND_CONTACT_GROUP_MEMBERSHIP,
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL,
    KIND_EMAIL,
    KIND_EMAIL_TEMPLATE,
    KIND_USER,
)


@dataclass(frozen=True)
class ResourceKind:
    """How a kind is addressed through the Kubernetes API."""

    kind: str
    plural: str
    group: str = API_GROUP
    version: str = API_VERSION
    namespaced: bool = True
    finalizer: str | None = None

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


KINDS: dict[str, ResourceKind] = {
    KIND_EMAIL: ResourceKind(KIND_EMAIL, "emails"),
    KIND_EMAIL_TEMPLATE: ResourceKind(KIND_EMAIL_TEMPLATE, "emailtemplates", namespaced=False),
    KIND_CONTACT: ResourceKind(KIND_CONTACT, "contacts", finalizer=FINALIZER_CONTACT),
    KIND_CONTACT_GROUP: ResourceKind(
        KIND_CONTACT_GROUP, "contactgroups", finalizer=FINALIZER_CONTACT_GROUP
    ),
    KIND_CONTACT_GROUP_MEMBERSHIP: ResourceKind(
        KIND_CONTACT_GROUP_MEMBERSHIP,
        "contactgroupmemberships",
        finalizer=FINALIZER_CONTACT_GROUP_MEMBERSHIP,
    ),
    KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL: ResourceKind(
        KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL, "contactgroupmembershipremovals"
    ),
    KIND_USER: ResourceKind(
        KIND_USER, "users", group=IAM_API_GROUP, version=IAM_API_VERSION, namespaced=False
    ),
}


def resource_kind(kind: str) -> ResourceKind:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown resource kind {kind!r}") from None


@dataclass(frozen=True, order=True)
class ResourceKey:
    """Identity of one resource. Cluster-scoped kinds use an empty namespace."""

    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


def namespaced_index_key(namespace: str, name: str) -> str:
    """Composite index value for a single namespaced reference."""
    return f"{namespace}|{name}"


def membership_index_key(contact: ResourceKey, group: ResourceKey) -> str:
    """Composite index value for a (contact, group) reference pair."""
    return f"{contact.namespace}|{contact.name}|{group.namespace}|{group.name}"


class ManagedResource:
    """An owned, mutable snapshot of one custom resource.

    The wrapped body is never shared with the store: reconcilers mutate it
    freely and hand it back for a compare-and-swap status write.
    """

    def __init__(self, body: dict[str, Any]):
        self.body = body

    @classmethod
    def from_body(cls, body: Any) -> ManagedResource:
        """Build an owned snapshot from any mapping-like body (kopf or API)."""
        return cls(copy.deepcopy(dict(body)))

    def copy(self) -> ManagedResource:
        return ManagedResource(copy.deepcopy(self.body))

    @property
    def metadata(self) -> dict[str, Any]:
        return self.body.setdefault("metadata", {})

    @property
    def kind(self) -> str:
        return self.body.get("kind", "")

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace") or ""

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.kind, self.namespace, self.name)

    @property
    def uid(self) -> str:
        return self.metadata.get("uid", "")

    @property
    def generation(self) -> int:
        return int(self.metadata.get("generation") or 0)

    @property
    def resource_version(self) -> str:
        return self.metadata.get("resourceVersion", "")

    @property
    def finalizers(self) -> list[str]:
        return list(self.metadata.get("finalizers") or [])

    @property
    def deletion_requested(self) -> bool:
        return bool(self.metadata.get("deletionTimestamp"))

    @property
    def spec(self) -> dict[str, Any]:
        return self.body.get("spec") or {}

    @property
    def status(self) -> dict[str, Any]:
        status = self.body.get("status")
        if status is None:
            status = self.body["status"] = {}
        return status

    @property
    def conditions(self) -> list[dict[str, Any]]:
        return self.status.setdefault("conditions", [])

    @property
    def provider_id(self) -> str:
        return self.status.get("providerID") or ""

    @provider_id.setter
    def provider_id(self, value: str) -> None:
        self.status["providerID"] = value

    def status_snapshot(self) -> dict[str, Any]:
        """A deep copy of the current status for change detection; empty fields are dropped."""
        status = self.body.get("status") or {}
        return copy.deepcopy({k: v for k, v in status.items() if v not in (None, "", [], {})})

    def meta(self) -> dict[str, Any]:
        """Resource metadata in the shape expected by logging and kopf events."""
        return {
            "name": self.name,
            "namespace": self.namespace,
            "uid": self.uid,
            "generation": self.generation,
        }

    def object_reference(self) -> dict[str, Any]:
        """Reference to this object, as used in Kubernetes events."""
        return {
            "apiVersion": self.body.get("apiVersion", ""),
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace or None,
            "uid": self.uid,
            "resourceVersion": self.resource_version,
        }

    def __repr__(self) -> str:
        return f"ManagedResource({self.key}, rv={self.resource_version!r})"


def reference_key(resource: ManagedResource, field: str, kind: str) -> ResourceKey | None:
    """Resolve a `{name, namespace}` reference in the resource spec.

    The namespace defaults to the referring resource's namespace.
    """
    ref = resource.spec.get(field) or {}
    name = ref.get("name")
    if not name:
        return None
    namespace = ref.get("namespace") or resource.namespace
    if not resource_kind(kind).namespaced:
        namespace = ""
    return ResourceKey(kind, namespace, name)


def contact_ref(resource: ManagedResource) -> ResourceKey | None:
    return reference_key(resource, "contactRef", KIND_CONTACT)


def contact_group_ref(resource: ManagedResource) -> ResourceKey | None:
    return reference_key(resource, "contactGroupRef", KIND_CONTACT_GROUP)
