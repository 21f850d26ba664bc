"""Identifier and clock helpers shared by the codec and the services."""
import secrets
import string
import time
from datetime import datetime, timezone

_BASE36 = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Return ``<epoch-ms>-<9 base36 chars>``, the id format already in the sheets."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
