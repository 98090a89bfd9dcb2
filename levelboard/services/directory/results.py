"""
LevelBoard - Lookup Results
===========================

Tagged outcome of a single directory lookup. The resolver uses these
internally for logging and counters; callers only ever see the resolved
value or nothing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union


T = TypeVar("T")


class UnresolvedReason(str, Enum):
    """Why a lookup produced no display metadata."""
    DISABLED = "disabled"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T
    cached: bool = False


@dataclass(frozen=True)
class Unresolved:
    reason: UnresolvedReason
    detail: Optional[str] = None


LookupResult = Union[Resolved[T], Unresolved]


def unwrap(result: "LookupResult[T]") -> Optional[T]:
    """Collapse a tagged result to the value or None."""
    if isinstance(result, Resolved):
        return result.value
    return None


__all__ = [
    "UnresolvedReason",
    "Resolved",
    "Unresolved",
    "LookupResult",
    "unwrap",
]
