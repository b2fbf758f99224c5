"""Air Waybill numbers.

Format: ``AWB`` + two-digit year + eight random digits, e.g. ``AWB2612345678``.
Numbers are case-sensitive and globally unique; a candidate is checked
against the booking store before it is handed out.
"""

import secrets
from collections.abc import Callable
from datetime import UTC, datetime

from protean.exceptions import InvalidOperationError
from protean.utils.globals import current_domain

AWB_PREFIX = "AWB"
MAX_ATTEMPTS = 10


def candidate_awb(now: datetime | None = None) -> str:
    year = (now or datetime.now(UTC)).strftime("%y")
    return f"{AWB_PREFIX}{year}{secrets.randbelow(10**8):08d}"


def generate_awb(exists: Callable[[str], bool] | None = None, now: datetime | None = None) -> str:
    """Return an AWB not yet used by any booking."""
    if exists is None:
        from courier.booking.booking import Booking

        exists = current_domain.repository_for(Booking).awb_exists

    for _ in range(MAX_ATTEMPTS):
        awb = candidate_awb(now)
        if not exists(awb):
            return awb
    raise InvalidOperationError({"awb": [f"Could not allocate a unique AWB after {MAX_ATTEMPTS} attempts"]})


def normalize_awb(value: str) -> str:
    """Clean AWB input typed by a person: strip and upper-case."""
    return value.strip().upper()
