"""
scenarios/steps.py - Declarative scenario steps and results.

A step is data: who acts, which Operation, what outcome is expected,
and which state to re-read afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.constants import ErrorCode, ExecutionMode
from core.exceptions import ScenarioFailedError
from core.models import Operation, OperationOutcome


@dataclass(frozen=True)
class Expect:
    """
    Expected outcome annotation.

    success=None records the outcome without asserting on it.
    """
    success: Optional[bool]
    status_contains: Optional[str] = None

    @classmethod
    def ok(cls) -> "Expect":
        return cls(success=True)

    @classmethod
    def failure(cls, status_contains: Optional[str] = None) -> "Expect":
        return cls(success=False, status_contains=status_contains)

    @classmethod
    def any(cls) -> "Expect":
        return cls(success=None)

    @property
    def asserted(self) -> bool:
        return self.success is not None

    def status_matches(self, status: Optional[str]) -> bool:
        if self.status_contains is None:
            return True
        return bool(status) and self.status_contains.lower() in status.lower()

    def describe(self) -> str:
        if self.success is None:
            return "any"
        if self.success:
            return "success"
        if self.status_contains:
            return f"failure ({self.status_contains})"
        return "failure"


@dataclass
class Step:
    """
    One scripted operation.

    expect=None derives the expectation from the compliance model.
    mode=None uses the runner's default mode.
    """
    name: str
    actor: str
    operation: Operation
    expect: Optional[Expect] = None
    mode: Optional[ExecutionMode] = None
    check_balances: List[str] = field(default_factory=list)
    check_roles: bool = False


class StepStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"


@dataclass
class StepResult:
    """Outcome of running one step."""
    step: str
    actor: str
    function_id: str
    mode: ExecutionMode
    expected: str
    status: StepStatus
    outcome: Optional[OperationOutcome] = None
    error: Optional[str] = None
    failure_code: Optional[ErrorCode] = None
    message: str = ""
    mismatches: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "actor": self.actor,
            "function_id": self.function_id,
            "mode": self.mode.value,
            "expected": self.expected,
            "status": self.status.value,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "error": self.error,
            "failure_code": self.failure_code.value if self.failure_code else None,
            "message": self.message,
            "mismatches": list(self.mismatches),
        }


@dataclass
class ScenarioReport:
    """All step results of one run."""
    scenario: str
    results: List[StepResult] = field(default_factory=list)
    final_state: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> List[StepResult]:
        return [r for r in self.results if not r.passed]

    def raise_for_failures(self) -> None:
        if self.failures:
            names = ", ".join(r.step for r in self.failures)
            raise ScenarioFailedError(
                f"Scenario '{self.scenario}' failed {len(self.failures)} step(s): {names}",
                report=self,
                details={"failed_steps": [r.step for r in self.failures]},
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario,
            "passed": self.passed,
            "steps_total": len(self.results),
            "steps_failed": len(self.failures),
            "results": [r.to_dict() for r in self.results],
            "final_state": self.final_state,
        }
