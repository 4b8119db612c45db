"""
scenarios/ - Declarative scenario runner.

Modules:
- steps: Step, Expect, StepResult, ScenarioReport
- runner: ScenarioRunner (predict, execute, compare, re-read)
- library: built-in scenarios (compliance, access, dry-run)
"""

from scenarios.library import SCENARIOS, SIMULATABLE, build_scenario
from scenarios.runner import ScenarioRunner
from scenarios.steps import Expect, ScenarioReport, Step, StepResult, StepStatus

__all__ = [
    "Expect",
    "SCENARIOS",
    "SIMULATABLE",
    "ScenarioReport",
    "ScenarioRunner",
    "Step",
    "StepResult",
    "StepStatus",
    "build_scenario",
]
