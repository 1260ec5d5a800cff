"""
Field conversions for raw query rows.

Rows come back with loosely typed values: dates as ``/Date(ms)/`` strings,
booleans sometimes as strings, file sizes as ``"<number> <unit>"``. Missing
values stay None; nothing here invents a zero date or a zero size.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

_MS_DATE = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")
_FILE_SIZE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B)\s*$", re.IGNORECASE)

FILE_SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 ** 2,
    "GB": 1024 ** 3,
    "TB": 1024 ** 4,
}


def parse_platform_date(value: Any) -> Optional[datetime]:
    """
    Parse a tenant date value.

    Accepts ``/Date(1600000000000)/`` strings, ISO-8601 strings and datetime
    instances. Empty or missing values return None.

    Raises:
        ValueError: If a non-empty value cannot be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    match = _MS_DATE.match(text)
    if match:
        return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    # fromisoformat accepts at most microseconds before 3.11
    text = _LONG_FRACTION.sub(r"\1", text)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("true", "1", "yes")


def to_optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def parse_file_size(value: Optional[str]) -> int:
    """
    Convert a ``"<number> <unit>"`` size string to bytes.

    Units B/KB/MB/GB/TB use powers of 1024. Missing values count as 0 bytes.

    Raises:
        ValueError: If the string is not a recognized size
    """
    if value is None or str(value).strip() == "":
        return 0
    match = _FILE_SIZE.match(str(value))
    if not match:
        raise ValueError(f"Unrecognized file size: {value!r}")
    number, unit = match.groups()
    return int(round(float(number) * FILE_SIZE_UNITS[unit.upper()]))
