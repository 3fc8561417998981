"""Typed models for publish read-back verification."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VerificationCheck:
    """One read-back check result row."""

    check_id: str
    passed: bool
    details: str


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of comparing a published artifact with its source table."""

    object_key: str
    checks: tuple[VerificationCheck, ...]

    @property
    def success(self) -> bool:
        """Whether every check passed."""
        return all(check.passed for check in self.checks)

    @property
    def failed_checks(self) -> tuple[VerificationCheck, ...]:
        """Checks that did not pass."""
        return tuple(check for check in self.checks if not check.passed)
