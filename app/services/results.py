"""Outcome of a best-effort side effect (email, notification, user creation).

A failed side effect is recorded here and logged; it never fails the payment
transition it follows.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class SideEffectResult:
    name: str
    ok: bool
    error: str | None = None
    detail: str | None = None

    @classmethod
    def success(cls, name: str, detail: str | None = None) -> "SideEffectResult":
        return cls(name=name, ok=True, detail=detail)

    @classmethod
    def failure(cls, name: str, error: str) -> "SideEffectResult":
        return cls(name=name, ok=False, error=error)
