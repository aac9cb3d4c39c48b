"""
Shared utility functions for the FormCraft core.
"""

import random
import string
import time
from typing import Any

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_id(prefix: str) -> str:
    """Generate an id of the form ``<prefix>_<ms timestamp>_<7 base36 chars>``.

    Args:
        prefix: Short tag identifying the kind of record ("f", "form", ...).

    Returns:
        A new id string. Uniqueness is probabilistic, which is enough
        for ids that only need to be unique within one form.
    """
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"{prefix}_{now_ms()}_{suffix}"


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def to_text(value: Any) -> str:
    """Render a field value as text for comparisons and length checks.

    None becomes the empty string, booleans are lower-cased, lists are
    comma-joined and integral floats drop their fractional part, so that
    ``3.0`` and ``"3"`` compare equal.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(v) for v in value)
    return str(value)


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after trimming."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
