"""Lenient query-string parsing.

Malformed values are treated as absent rather than rejected.
"""

from enum import Enum
from typing import Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


def is_true(value: Optional[str]) -> bool:
    return value == "true"


def parse_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_enum(enum_cls: Type[E], value: Optional[str]) -> Optional[E]:
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def clamp_limit(value: Optional[str], default: int, maximum: int) -> int:
    limit = parse_int(value if value is not None else str(default))
    if limit is None:
        return default
    return min(max(limit, 1), maximum)
