"""Typed lookup outcomes.

Every degrade-and-log path still returns one of these, so callers (and
tests) can tell a hit from an absence or a failure without reading logs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class LookupStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"   # every source answered "no such product"
    FAILED = "failed"         # at least one source errored, none succeeded
    REJECTED = "rejected"     # input refused locally, no network call


@dataclass
class Lookup(Generic[T]):
    status: LookupStatus
    value: T | None = None
    detail: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is LookupStatus.FOUND and self.value is not None

    @classmethod
    def hit(cls, value: T, detail: str = "") -> Lookup[T]:
        return cls(LookupStatus.FOUND, value=value, detail=detail)

    @classmethod
    def miss(cls, detail: str = "") -> Lookup[T]:
        return cls(LookupStatus.NOT_FOUND, detail=detail)

    @classmethod
    def failure(cls, detail: str, errors: list[str] | None = None) -> Lookup[T]:
        return cls(LookupStatus.FAILED, detail=detail, errors=list(errors or []))

    @classmethod
    def rejected(cls, detail: str) -> Lookup[T]:
        return cls(LookupStatus.REJECTED, detail=detail)
