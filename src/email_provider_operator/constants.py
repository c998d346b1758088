"""Constants for the Email Provider Operator."""

# API Group
API_GROUP = "notification.miloapis.com"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Identity API (recipients referenced by Email.spec.recipient.userRef)
IAM_API_GROUP = "iam.miloapis.com"
IAM_API_VERSION = "v1alpha1"

# Resource Kinds
KIND_EMAIL = "Email"
KIND_EMAIL_TEMPLATE = "EmailTemplate"
KIND_CONTACT = "Contact"
KIND_CONTACT_GROUP = "ContactGroup"
KIND_CONTACT_GROUP_MEMBERSHIP = "ContactGroupMembership"
KIND_CONTACT_GROUP_MEMBERSHIP_REMOVAL = "ContactGroupMembershipRemoval"
KIND_USER = "User"

# Finalizers (one per kind, removed only by the kind's deletion guard)
FINALIZER_CONTACT = f"{API_GROUP}/contact"
FINALIZER_CONTACT_GROUP = f"{API_GROUP}/contactgroup"
FINALIZER_CONTACT_GROUP_MEMBERSHIP = f"{API_GROUP}/contactgroupmembership"

# Field Manager / reporting identity
FIELD_MANAGER = "email-provider-operator"
CONTROLLER_NAME = "email-provider-operator"
WEBHOOK_REPORTING_CONTROLLER = "email-provider-operator-webhook"

# Provider names as recorded in status.providers
PROVIDER_RESEND = "Resend"
PROVIDER_LOOPS = "Loops"

# Index names
INDEX_PROVIDER_ID = "status.providerID"
INDEX_CONTACT_REF = "spec.contactRef"
INDEX_CONTACT_GROUP_REF = "spec.contactGroupRef"
INDEX_MEMBERSHIP_TUPLE = "spec.contactRef+spec.contactGroupRef"

# Email priorities
PRIORITY_LOW = "low"
PRIORITY_NORMAL = "normal"
PRIORITY_HIGH = "high"

# Contacts whose name carries this prefix are subscribed to the newsletter list
NEWSLETTER_CONTACT_PREFIX = "newsletter-"

# Source attribute sent with every Loops contact
LOOPS_CONTACT_SOURCE = "email-provider-operator"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_EMAIL_SENT = "EmailSent"
EVENT_REASON_CONTACT_CREATED = "ContactCreated"
EVENT_REASON_CONTACT_UPDATED = "ContactUpdated"
EVENT_REASON_CONTACT_GROUP_CREATED = "ContactGroupCreated"
EVENT_REASON_MEMBERSHIP_CREATED = "ContactGroupMembershipCreated"
EVENT_REASON_MEMBERSHIP_RECREATED = "ContactGroupMembershipRecreated"
EVENT_REASON_MEMBERSHIP_REMOVED = "ContactGroupMembershipRemoved"
EVENT_REASON_WAITING_FOR_DEPENDENTS = "WaitingForDependents"
EVENT_REASON_DELETE_PENDING = "DeletePending"
EVENT_REASON_FINALIZED = "Finalized"
