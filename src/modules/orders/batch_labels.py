"""Human-readable batch labels: ``"<name> - MM/DD/YYYY #dddd"``.

The first attempt derives the 4-digit suffix from the low-order digits of a
monotonic millisecond clock; retries after a collision draw it at random.
Names too long for the label column are truncated.
Uniqueness itself is guaranteed by the ``OrderBatch.label`` constraint and
the repository's retry loop, not by this module.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime
from typing import Callable, Optional

from django.utils import timezone

from modules.orders.constants import BATCH_LABEL_MAX_LENGTH, BATCH_LABEL_SUFFIX_SPACE

DEFAULT_DISPLAY_NAME = "Buyer"


def buyer_display_name(name: Optional[str], email: Optional[str]) -> str:
    """Prefer the buyer's name, falling back to the email local part."""
    if name and name.strip():
        return name.strip()
    if email and "@" in email:
        local_part = email.split("@", 1)[0].strip()
        if local_part:
            return local_part
    return DEFAULT_DISPLAY_NAME


def _monotonic_millis() -> int:
    return time.monotonic_ns() // 1_000_000


def generate_batch_label(
    display_name: str,
    now: Optional[datetime] = None,
    attempt: int = 0,
    clock: Callable[[], int] = _monotonic_millis,
) -> str:
    now = now or timezone.now()
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    if attempt == 0:
        suffix = clock() % BATCH_LABEL_SUFFIX_SPACE
    else:
        suffix = secrets.randbelow(BATCH_LABEL_SUFFIX_SPACE)
    tail = f" - {now:%m/%d/%Y} #{suffix:04d}"
    name = display_name[: BATCH_LABEL_MAX_LENGTH - len(tail)].rstrip()
    return f"{name}{tail}"
