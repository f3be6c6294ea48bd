"""
General helper functions.
"""

from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from config import settings


TRUTHY_STRINGS = {"1", "true", "on", "yes"}
FALSY_STRINGS = {"0", "false", "off", "no", ""}


def current_timestamp() -> datetime:
    """
    Current time in the configured timezone, without tzinfo.

    Timestamp columns are naive, so the offset is dropped after conversion.
    """
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def parse_boolean(value: Any) -> Optional[bool]:
    """
    Parse a loosely typed boolean.

    Args:
        value: Raw value, usually a request string

    Returns:
        True for "1"/"true"/"on"/"yes", False for "0"/"false"/"off"/"no"/""
        (case-insensitive), None when the value cannot be interpreted
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        return None

    normalized = value.strip().lower()
    if normalized in TRUTHY_STRINGS:
        return True
    if normalized in FALSY_STRINGS:
        return False
    return None


def filter_boolean_inputs(inputs: dict) -> dict:
    """
    Coerce the ``bulk`` flag of a request payload to a boolean.

    Args:
        inputs: Request payload

    Returns:
        A copy of the payload with ``bulk`` parsed, other keys untouched
    """
    inputs = dict(inputs)
    if "bulk" in inputs:
        inputs["bulk"] = parse_boolean(inputs["bulk"])
    return inputs


def parse_includes(includes: Optional[str] = None, include: Optional[str] = None) -> list[str]:
    """
    Merge the ``includes`` and ``include`` request parameters.

    Both are comma separated lists of relation names. Empty entries are
    dropped and duplicates removed, first occurrence wins.
    """
    names: list[str] = []
    for raw in (includes, include):
        if not raw:
            continue
        for name in raw.split(","):
            name = name.strip()
            if name and name not in names:
                names.append(name)
    return names
