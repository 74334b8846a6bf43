from datetime import datetime, timedelta, timezone

NEVER_EXPIRES = 0
NEVER_EXPIRES_AT = datetime(9999, 1, 1, tzinfo=timezone.utc)

# Milliseconds; the value 0 keeps an address forever.
EXPIRY_OPTIONS: tuple[int, ...] = (
    1000 * 60 * 60,
    1000 * 60 * 60 * 24,
    1000 * 60 * 60 * 24 * 3,
    NEVER_EXPIRES,
)


def is_valid_expiry(expiry_time: int) -> bool:
    return expiry_time in EXPIRY_OPTIONS


def expires_at(expiry_time: int, now: datetime) -> datetime:
    """Absolute expiry for an address created at ``now``."""
    if expiry_time == NEVER_EXPIRES:
        return NEVER_EXPIRES_AT
    return now + timedelta(milliseconds=expiry_time)
