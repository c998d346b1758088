"""Per-kind reconcilers and deletion guards."""

from .base import DeletionGuard, Reconciler, Result
from .contact import ContactGuard, ContactReconciler
from .contact_group import ContactGroupGuard, ContactGroupReconciler
from .email import EmailReconciler
from .membership import MembershipGuard, MembershipReconciler
from .membership_removal import MembershipRemovalReconciler

__all__ = [
    "DeletionGuard",
    "Reconciler",
    "Result",
    "ContactGuard",
    "ContactReconciler",
    "ContactGroupGuard",
    "ContactGroupReconciler",
    "EmailReconciler",
    "MembershipGuard",
    "MembershipReconciler",
    "MembershipRemovalReconciler",
]
