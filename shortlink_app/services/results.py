"""
Result types for allocation.

A result is exactly one of a success payload or a typed failure, never a
bag of optional fields. Callers branch with isinstance().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from shortlink_app.models.mapping import Mapping


class AllocationErrorKind(Enum):
    """Why an allocation did not produce a mapping"""
    VALIDATION = "validation"  # malformed or reserved input, store never touched
    CONFLICT = "conflict"  # (partition, identifier) already taken
    QUOTA_EXCEEDED = "quota_exceeded"  # owner already holds `quota` mappings
    EXHAUSTED = "exhausted"  # generator ran out of retries; transient


@dataclass(frozen=True)
class Allocated:
    mapping: Mapping
    # False when an existing mapping was reused (shortest-path policy)
    created: bool = True


@dataclass(frozen=True)
class AllocationFailure:
    kind: AllocationErrorKind
    message: str


AllocationResult = Union[Allocated, AllocationFailure]
