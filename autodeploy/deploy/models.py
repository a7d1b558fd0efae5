"""Deployment invocation models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    INVOCATION_ERROR = "invocation_error"
    IN_PROGRESS = "in_progress"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Outcome.SUCCESS: "SUCCESS",
    Outcome.FAILED: "FAILED",
    Outcome.TIMEOUT: "TIMEOUT",
    Outcome.INVOCATION_ERROR: "ERROR",
    Outcome.IN_PROGRESS: "IN PROGRESS",
}


@dataclass(frozen=True)
class InvocationResult:
    tag: str
    outcome: Outcome
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    command: list[str] = field(default_factory=list)
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS
