"""Utility helper functions for the file server."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        Timestamp such as "2024-01-01T12:00:00.000Z"
    """
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


def is_flag_set(value) -> bool:
    """
    Interpret a query flag that is enabled by its mere presence.

    Args:
        value: Raw query value, None when the parameter is absent

    Returns:
        True unless the parameter is absent or explicitly disabled
    """
    if value is None:
        return False
    return value.strip().lower() not in ("0", "false", "no")
