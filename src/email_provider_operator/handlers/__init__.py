"""Handler modules for CRD resources."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import contact  # noqa: F401
from . import contact_group  # noqa: F401
from . import email  # noqa: F401
from . import indexing  # noqa: F401
from . import membership  # noqa: F401
from . import membership_removal  # noqa: F401
