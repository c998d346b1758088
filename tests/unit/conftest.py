"""Shared fixtures: an in-memory store with compare-and-swap and fake providers."""

from __future__ import annotations

import copy
import itertools
from typing import Any

import pytest

from email_provider_operator.constants import (
    API_GROUP_VERSION,
    IAM_API_GROUP,
    IAM_API_VERSION,
    KIND_USER,
    PROVIDER_LOOPS,
    PROVIDER_RESEND,
)
from email_provider_operator.indexing import FieldIndexer, register_default_indexes
from email_provider_operator.models import ManagedResource, ResourceKey, resource_kind
from email_provider_operator.services.provider.base import (
    ContactInput,
    ContactOutput,
    CreateContactGroupInput,
    CreateContactGroupOutput,
    CreateMembershipInput,
    CreateMembershipOutput,
    DeleteContactGroupOutput,
    DeleteContactOutput,
    DeleteMembershipOutput,
    GetContactGroupOutput,
    GetMembershipOutput,
    ListContactGroupsOutput,
    SendEmailInput,
    SendEmailOutput,
)
from email_provider_operator.utils.cache import configure_cache
from email_provider_operator.utils.errors import ConflictError, NotFoundError


class FakeStore:
    """ResourceStore over plain dicts, with resourceVersion compare-and-swap."""

    def __init__(self, indexer: FieldIndexer | None = None):
        self.indexer = indexer or register_default_indexes(FieldIndexer())
        self.objects: dict[ResourceKey, dict[str, Any]] = {}
        self.status_writes: list[tuple[ResourceKey, str]] = []
        self.deleted: list[ResourceKey] = []
        self.inject_conflicts = 0
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    def add(
        self,
        kind: str,
        name: str,
        namespace: str = "default",
        spec: dict[str, Any] | None = None,
        status: dict[str, Any] | None = None,
        generation: int = 1,
        finalizers: list[str] | None = None,
        uid: str | None = None,
    ) -> ManagedResource:
        rk = resource_kind(kind)
        if not rk.namespaced:
            namespace = ""
        api_version = f"{IAM_API_GROUP}/{IAM_API_VERSION}" if kind == KIND_USER else API_GROUP_VERSION
        metadata: dict[str, Any] = {
            "name": name,
            "uid": uid or f"uid-{kind.lower()}-{next(self._uids)}",
            "generation": generation,
            "resourceVersion": str(next(self._versions)),
        }
        if namespace:
            metadata["namespace"] = namespace
        if finalizers:
            metadata["finalizers"] = list(finalizers)
        body = {
            "apiVersion": api_version,
            "kind": kind,
            "metadata": metadata,
            "spec": copy.deepcopy(spec or {}),
        }
        if status is not None:
            body["status"] = copy.deepcopy(status)
        resource = ManagedResource(body)
        self.objects[resource.key] = body
        self.indexer.upsert(resource)
        return ManagedResource.from_body(body)

    def body(self, key: ResourceKey) -> dict[str, Any]:
        return self.objects[key]

    def edit_spec(self, key: ResourceKey, **changes: Any) -> None:
        """Simulate a client spec edit: bumps generation and resourceVersion."""
        body = self.objects[key]
        body["spec"].update(changes)
        body["metadata"]["generation"] += 1
        self._bump(body)

    def backdate(self, key: ResourceKey, condition_type: str, when: str = "2020-01-01T00:00:00Z") -> None:
        """Pretend a condition transitioned long ago."""
        for cond in self.objects[key].get("status", {}).get("conditions", []):
            if cond.get("type") == condition_type:
                cond["lastTransitionTime"] = when

    def set_condition(self, key: ResourceKey, condition: dict[str, Any]) -> None:
        """Write a condition as another writer (e.g. the webhook) would."""
        body = self.objects[key]
        conditions = body.setdefault("status", {}).setdefault("conditions", [])
        conditions[:] = [c for c in conditions if c.get("type") != condition["type"]]
        conditions.append(dict(condition))
        self._bump(body)

    def _bump(self, body: dict[str, Any]) -> None:
        body["metadata"]["resourceVersion"] = str(next(self._versions))
        self.indexer.upsert(ManagedResource(body))

    def _stored(self, key: ResourceKey) -> dict[str, Any]:
        try:
            return self.objects[key]
        except KeyError:
            raise NotFoundError(key.kind, key.name) from None

    def _check_version(self, resource: ManagedResource) -> dict[str, Any]:
        stored = self._stored(resource.key)
        if self.inject_conflicts > 0:
            self.inject_conflicts -= 1
            self._bump(stored)
            raise ConflictError(f"{resource.key} was modified")
        if stored["metadata"]["resourceVersion"] != resource.resource_version:
            raise ConflictError(f"{resource.key} was modified")
        return stored

    def get(self, key: ResourceKey) -> ManagedResource:
        return ManagedResource.from_body(self._stored(key))

    def list_by_index(self, kind: str, index_name: str, value: str) -> list[ManagedResource]:
        return [self.get(key) for key in self.indexer.lookup(kind, index_name, value) if key in self.objects]

    def update_status(self, resource: ManagedResource, writer: str = "reconciler") -> ManagedResource:
        stored = self._check_version(resource)
        stored["status"] = copy.deepcopy(resource.body.get("status") or {})
        self._bump(stored)
        self.status_writes.append((resource.key, writer))
        return self.get(resource.key)

    def add_finalizer(self, resource: ManagedResource, finalizer: str) -> ManagedResource:
        stored = self._check_version(resource)
        finalizers = stored["metadata"].setdefault("finalizers", [])
        if finalizer not in finalizers:
            finalizers.append(finalizer)
        self._bump(stored)
        return self.get(resource.key)

    def remove_finalizer(self, resource: ManagedResource, finalizer: str) -> ManagedResource:
        stored = self._check_version(resource)
        finalizers = stored["metadata"].get("finalizers") or []
        if finalizer in finalizers:
            finalizers.remove(finalizer)
        self._bump(stored)
        if not finalizers and stored["metadata"].get("deletionTimestamp"):
            self._remove(resource.key)
            return ManagedResource.from_body(stored)
        return self.get(resource.key)

    def delete(self, key: ResourceKey) -> None:
        stored = self._stored(key)
        self.deleted.append(key)
        if stored["metadata"].get("finalizers"):
            stored["metadata"].setdefault("deletionTimestamp", "2026-01-01T00:00:00Z")
            self._bump(stored)
        else:
            self._remove(key)

    def _remove(self, key: ResourceKey) -> None:
        del self.objects[key]
        self.indexer.remove(key)


class RecordingRecorder:
    def __init__(self) -> None:
        self.events: list[tuple[ResourceKey, str, str, str]] = []

    def record(self, resource: ManagedResource, reason: str, message: str, type_: str = "Normal") -> None:
        self.events.append((resource.key, reason, message, type_))

    def reasons(self) -> list[str]:
        return [reason for _, reason, _, _ in self.events]


class FakeEmailProvider:
    """Resend-like delivery and audiences, kept in memory."""

    name = PROVIDER_RESEND

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.sent: list[SendEmailInput] = []
        self.groups: dict[str, str] = {}
        self.memberships: dict[str, dict[str, str]] = {}
        self.send_error: Exception | None = None
        self.delete_membership_error: Exception | None = None
        self._ids = itertools.count(1)

    def send_email(self, input: SendEmailInput) -> SendEmailOutput:
        self.calls.append(("send_email", input.idempotency_key))
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(input)
        return SendEmailOutput(delivery_id=f"d-{len(self.sent)}")

    def create_contact_group(self, input: CreateContactGroupInput) -> CreateContactGroupOutput:
        self.calls.append(("create_contact_group", input.display_name))
        group_id = f"aud-{next(self._ids)}"
        self.groups[group_id] = input.display_name
        self.memberships[group_id] = {}
        return CreateContactGroupOutput(contact_group_id=group_id)

    def get_contact_group(self, contact_group_id: str) -> GetContactGroupOutput:
        self.calls.append(("get_contact_group", contact_group_id))
        if contact_group_id not in self.groups:
            raise NotFoundError("audience", contact_group_id)
        return GetContactGroupOutput(contact_group_id, self.groups[contact_group_id])

    def list_contact_groups(self) -> ListContactGroupsOutput:
        self.calls.append(("list_contact_groups", None))
        return ListContactGroupsOutput(
            [GetContactGroupOutput(gid, name) for gid, name in self.groups.items()]
        )

    def delete_contact_group(self, contact_group_id: str) -> DeleteContactGroupOutput:
        self.calls.append(("delete_contact_group", contact_group_id))
        if contact_group_id not in self.groups:
            raise NotFoundError("audience", contact_group_id)
        del self.groups[contact_group_id]
        self.memberships.pop(contact_group_id, None)
        return DeleteContactGroupOutput(contact_group_id, deleted=True)

    def create_membership(self, input: CreateMembershipInput) -> CreateMembershipOutput:
        self.calls.append(("create_membership", input.email))
        membership_id = f"mem-{next(self._ids)}"
        self.memberships.setdefault(input.contact_group_id, {})[membership_id] = input.email
        return CreateMembershipOutput(membership_id=membership_id)

    def get_membership_by_email(self, contact_group_id: str, email: str) -> GetMembershipOutput:
        self.calls.append(("get_membership_by_email", email))
        for membership_id, member_email in self.memberships.get(contact_group_id, {}).items():
            if member_email == email:
                return GetMembershipOutput(membership_id, email)
        raise NotFoundError("audience contact", email)

    def delete_membership(self, contact_group_id: str, membership_id: str) -> DeleteMembershipOutput:
        self.calls.append(("delete_membership", membership_id))
        if self.delete_membership_error is not None:
            raise self.delete_membership_error
        members = self.memberships.get(contact_group_id, {})
        if membership_id not in members:
            raise NotFoundError("audience contact", membership_id)
        del members[membership_id]
        return DeleteMembershipOutput(membership_id, deleted=True)


class FakeContactProvider:
    """Contact provider in memory.

    Recreating providers look contacts up by email and reject duplicate
    emails, like Resend. Others key contacts by user id, like Loops.
    """

    def __init__(self, name: str, recreates_on_update: bool, confirms_asynchronously: bool):
        self.name = name
        self.recreates_on_update = recreates_on_update
        self.confirms_asynchronously = confirms_asynchronously
        self.contacts: dict[str, ContactInput] = {}
        self.calls: list[tuple[str, str]] = []
        self.subscriptions: list[tuple[str, str]] = []
        self.errors: dict[str, Exception] = {}
        self._ids = itertools.count(1)

    def _fail(self, operation: str) -> None:
        if operation in self.errors:
            raise self.errors[operation]

    def _matches(self, input: ContactInput) -> str | None:
        for contact_id, stored in self.contacts.items():
            if self.recreates_on_update and stored.email == input.email:
                return contact_id
            if not self.recreates_on_update and stored.user_id == input.user_id:
                return contact_id
        return None

    def find_contact(self, input: ContactInput) -> ContactOutput:
        self.calls.append(("find", input.email))
        self._fail("find")
        contact_id = self._matches(input)
        if contact_id is None:
            raise NotFoundError("contact", input.email)
        return ContactOutput(contact_id, self.contacts[contact_id].email)

    def create_contact(self, input: ContactInput) -> ContactOutput:
        self.calls.append(("create", input.email))
        self._fail("create")
        if self._matches(input) is not None:
            raise ConflictError(f"contact {input.email} already exists")
        contact_id = f"{self.name.lower()}-c{next(self._ids)}"
        self.contacts[contact_id] = input
        return ContactOutput(contact_id, input.email)

    def update_contact(self, contact_id: str, input: ContactInput) -> ContactOutput:
        self.calls.append(("update", input.email))
        self._fail("update")
        self.contacts[contact_id] = input
        return ContactOutput(contact_id, input.email)

    def delete_contact(self, contact_id: str, input: ContactInput) -> DeleteContactOutput:
        self.calls.append(("delete", contact_id))
        self._fail("delete")
        if contact_id not in self.contacts:
            raise NotFoundError("contact", contact_id)
        del self.contacts[contact_id]
        return DeleteContactOutput(deleted=True)

    def subscribe(self, input: ContactInput, mailing_list_id: str) -> None:
        self.calls.append(("subscribe", input.email))
        self._fail("subscribe")
        self.subscriptions.append((input.user_id, mailing_list_id))


@pytest.fixture(autouse=True)
def clear_object_cache():
    configure_cache(30.0)
    yield
    configure_cache(30.0)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def recorder() -> RecordingRecorder:
    return RecordingRecorder()


@pytest.fixture
def email_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture
def resend_contacts() -> FakeContactProvider:
    return FakeContactProvider(PROVIDER_RESEND, recreates_on_update=True, confirms_asynchronously=True)


@pytest.fixture
def loops_contacts() -> FakeContactProvider:
    return FakeContactProvider(PROVIDER_LOOPS, recreates_on_update=False, confirms_asynchronously=False)
