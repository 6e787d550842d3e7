"""
Explicit outcome of a best-effort integration call
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class IntegrationResult(Generic[T]):
    """
    Success/failure of a call to an external collaborator.

    Integrations never raise to the ticket pathway; they return this and the
    caller decides whether a failure matters.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def success(cls, value: T = None) -> "IntegrationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, value: T = None) -> "IntegrationResult[T]":
        return cls(ok=False, value=value, error=error)

    @classmethod
    def skip(cls, value: T = None, reason: str = None) -> "IntegrationResult[T]":
        return cls(ok=True, value=value, error=reason, skipped=True)
