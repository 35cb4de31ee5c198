"""Order lifecycle constants.

Statuses, buyer replacement policies, pricing modes and the administrative
transition table.  ``VALID_TRANSITIONS`` is only enforced while
``settings.ORDERS_ENFORCE_STATUS_TRANSITIONS`` is true; otherwise any member
of ``OrderStatus`` is accepted, as back-office corrections used to be.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    IN_CART = "in_cart", "In cart"
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class UnavailableAction(models.TextChoices):
    CURATE = "curate", "Let us pick a substitute"
    REPLACE_SAME_VENDOR = "replace_same_vendor", "Replace with same vendor"
    REPLACE_OTHER_VENDORS = "replace_other_vendors", "Replace with other vendors"
    REMOVE = "remove", "Remove from order"


class PricingMode(models.TextChoices):
    CASE = "case", "Case"
    UNIT = "unit", "Unit"


class SnapshotType(models.TextChoices):
    ORIGINAL = "original", "Original"
    MODIFIED = "modified", "Modified"


REPLACEMENT_ACTIONS: frozenset = frozenset(
    {UnavailableAction.REPLACE_SAME_VENDOR, UnavailableAction.REPLACE_OTHER_VENDORS}
)

DEFAULT_UNAVAILABLE_ACTION = UnavailableAction.CURATE

VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.IN_CART: set(),
    OrderStatus.PENDING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: {OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: {OrderStatus.PENDING},
}

SUBMITTED_STATES: frozenset = frozenset(
    {OrderStatus.PENDING, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

# A batch summary reports the "worst" status still present.
STATUS_SEVERITY: dict[str, int] = {
    OrderStatus.CANCELLED: 1,
    OrderStatus.COMPLETED: 2,
    OrderStatus.PENDING: 3,
}

BATCH_LABEL_MAX_RETRIES = 5
BATCH_LABEL_SUFFIX_SPACE = 10_000
BATCH_LABEL_MAX_LENGTH = 255
