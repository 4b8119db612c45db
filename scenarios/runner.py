"""
scenarios/runner.py - Scenario runner.

RUNNER CONTRACT:
================
For each step, strictly in order:
  1. Predict the outcome with the compliance model
  2. Reconcile with the step's annotation (disagreement is reported)
  3. Execute through the actor's orchestrator
  4. Compare outcome with the expectation
       expected failure + success=false                 -> pass
       expected failure + TransactionRejectedError      -> pass (status must match)
       expected failure + success=true                  -> FAIL, logged at ERROR
       expected success + success=false                 -> FAIL
       InfraError                                       -> re-raised, never a pass
       Expect.any()                                     -> outcome recorded, pass
  5. After a committed success: settle delay, advance the model
  6. Re-read requested balances / roles and compare with the model

Simulated steps never advance the model.
================
"""

import asyncio
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from compliance.model import ComplianceState, Prediction
from core.constants import DEFAULT_SETTLE_DELAY_SECONDS, ErrorCode, ExecutionMode, OperationKind
from core.exceptions import ConfigError, TransactionRejectedError
from core.logging import get_logger, log_error
from core.models import OperationOutcome
from core.validators import normalize_address
from execution.orchestrator import TransactionOrchestrator
from execution.token_state import TokenStateReader
from scenarios.steps import Expect, ScenarioReport, Step, StepResult, StepStatus

logger = get_logger(__name__)


def _describe_prediction(prediction: Prediction) -> str:
    if prediction.allowed:
        return "success"
    return f"failure ({prediction.reason.value if prediction.reason else 'unknown'})"


class ScenarioRunner:
    """
    Runs declarative steps against the ledger and the compliance model.

    `orchestrators` maps actor labels to orchestrators bound to that
    actor's signer.
    """

    def __init__(
        self,
        orchestrators: Dict[str, TransactionOrchestrator],
        reader: TokenStateReader,
        state: Optional[ComplianceState] = None,
        settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS,
        fail_fast: bool = False,
        pause_blocks_transfer: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.orchestrators = orchestrators
        self.reader = reader
        self.state = state
        self.settle_delay_seconds = settle_delay_seconds
        self.fail_fast = fail_fast
        self.pause_blocks_transfer = pause_blocks_transfer
        self._sleep = sleep

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _orchestrator(self, actor: str) -> TransactionOrchestrator:
        try:
            return self.orchestrators[actor]
        except KeyError:
            raise ConfigError(
                f"Unknown actor '{actor}'",
                details={"known_actors": sorted(self.orchestrators)},
            ) from None

    def _tracked_addresses(self, steps: Iterable[Step]) -> List[str]:
        addresses: Set[str] = {normalize_address(o.sender) for o in self.orchestrators.values()}
        for step in steps:
            addresses.update(normalize_address(a) for a in step.check_balances)
            op = step.operation
            if op.kind == OperationKind.MINT:
                addresses.add(normalize_address(op.args[0]))
            elif op.kind == OperationKind.TRANSFER:
                addresses.add(normalize_address(op.args[1]))
        return sorted(addresses)

    async def load_state(self, steps: Iterable[Step]) -> ComplianceState:
        """Seed the model from current ledger state."""
        snapshot = await self.reader.snapshot(self._tracked_addresses(steps))
        balances = dict(snapshot.balances)
        if snapshot.roles.receiver not in balances:
            balances[snapshot.roles.receiver] = await self.reader.balance(snapshot.roles.receiver)

        if snapshot.deny_list is None:
            logger.warning(
                "Denylist not readable from module resources, assuming empty",
                extra={"context": {"token_address": await self.reader.token_address()}},
            )

        state = ComplianceState(
            roles=snapshot.roles,
            paused=bool(snapshot.paused),
            deny_list=snapshot.deny_list or (),
            balances=balances,
            pause_blocks_transfer=self.pause_blocks_transfer,
        )
        logger.info(
            "Loaded initial compliance state",
            extra={"context": {
                "roles": snapshot.roles.to_dict(),
                "paused": state.paused,
                "deny_list": sorted(state.deny_list),
            }},
        )
        return state

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self, steps: List[Step], scenario: str = "scenario") -> ScenarioReport:
        """
        Run every step in order.

        Raises:
            InfraError: infrastructure failure (never converted into a pass)
            ScenarioFailedError: first failed step when fail_fast is set
        """
        if self.state is None:
            self.state = await self.load_state(steps)

        report = ScenarioReport(scenario=scenario)
        for index, step in enumerate(steps, start=1):
            logger.info(
                f"Step {index}/{len(steps)}: {step.name}",
                extra={"context": {"actor": step.actor, "operation": step.operation.description}},
            )
            result = await self.run_step(step)
            report.results.append(result)

            if result.passed:
                logger.info(f"Step passed: {step.name}", extra={"context": {"expected": result.expected}})
            else:
                log_error(
                    logger,
                    result.failure_code.value if result.failure_code else ErrorCode.SCENARIO_FAILED.value,
                    f"Step failed: {step.name}: {result.message}",
                    step=step.name,
                    mismatches=result.mismatches,
                )
                if self.fail_fast:
                    report.final_state = self.state.to_dict()
                    report.raise_for_failures()

        report.final_state = self.state.to_dict()
        return report

    async def run_step(self, step: Step) -> StepResult:
        orchestrator = self._orchestrator(step.actor)
        mode = ExecutionMode(step.mode) if step.mode is not None else orchestrator.default_mode
        prediction = self.state.predict(orchestrator.sender, step.operation)

        mismatches: List[str] = []
        expect = step.expect
        if expect is None:
            if prediction.allowed is None:
                raise ConfigError(
                    f"Step '{step.name}': {step.operation.kind.value} is not modelled, annotate `expect`",
                )
            expect = Expect(success=prediction.allowed)
        elif expect.asserted and prediction.allowed is not None and prediction.allowed != expect.success:
            mismatches.append(
                f"model predicts {_describe_prediction(prediction)} but step expects {expect.describe()}"
            )

        result = StepResult(
            step=step.name,
            actor=step.actor,
            function_id=step.operation.function_id,
            mode=mode,
            expected=expect.describe(),
            status=StepStatus.PASSED,
            mismatches=mismatches,
        )

        try:
            outcome = await orchestrator.submit(step.operation, mode=mode)
        except TransactionRejectedError as e:
            # Only the expected-failure shape is a pass; anything else propagates
            if expect.success or not expect.status_matches(e.vm_status):
                raise
            logger.info(
                f"Rejected as expected: {step.name}",
                extra={"context": {"vm_status": e.vm_status, "function_id": e.function_id}},
            )
            result.error = str(e)
            # Nothing executed, so the ledger must still match the model
            await self._verify_state(step, result)
            return self._finish(result)

        result.outcome = outcome
        self._judge(result, expect, outcome)

        if mode == ExecutionMode.COMMIT and outcome.success:
            await self._sleep(self.settle_delay_seconds)
            if prediction.allowed:
                self.state = prediction.next_state

        await self._verify_state(step, result)
        return self._finish(result)

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _judge(self, result: StepResult, expect: Expect, outcome: OperationOutcome) -> None:
        if not expect.asserted:
            logger.info(
                f"Recorded outcome: {result.step}",
                extra={"context": {"success": outcome.success, "vm_status": outcome.vm_status}},
            )
            return
        if outcome.success and not expect.success:
            result.status = StepStatus.FAILED
            result.failure_code = ErrorCode.SCENARIO_UNEXPECTED_SUCCESS
            result.message = "operation succeeded but was expected to fail"
            logger.error(
                f"UNEXPECTED SUCCESS: {result.step}",
                extra={"context": {"function_id": outcome.function_id, "tx_hash": outcome.tx_hash}},
            )
        elif not outcome.success and expect.success:
            result.status = StepStatus.FAILED
            result.failure_code = ErrorCode.SCENARIO_UNEXPECTED_FAILURE
            result.message = f"operation failed: {outcome.failure_status}"
        elif not outcome.success and not expect.status_matches(outcome.vm_status):
            result.status = StepStatus.FAILED
            result.failure_code = ErrorCode.SCENARIO_STATUS_MISMATCH
            result.message = (
                f"status {outcome.vm_status!r} does not contain {expect.status_contains!r}"
            )

    async def _verify_state(self, step: Step, result: StepResult) -> None:
        """Compare re-read ledger state with the model; resync on divergence."""
        resync_balances = {}
        for address in step.check_balances:
            address = normalize_address(address)
            actual = await self.reader.balance(address)
            expected = self.state.balance_of(address)
            if actual != expected:
                result.mismatches.append(f"balance of {address}: ledger={actual} model={expected}")
                resync_balances[address] = actual

        if step.check_roles:
            actual_roles = await self.reader.roles()
            if actual_roles != self.state.roles:
                result.mismatches.append(
                    f"roles: ledger={actual_roles.to_dict()} model={self.state.roles.to_dict()}"
                )
                self.state = self._resynced(roles=actual_roles)

        if resync_balances:
            self.state = self._resynced(balances={**self.state.balances, **resync_balances})

    def _resynced(self, **changes) -> ComplianceState:
        # Divergence is already reported; continue from what the ledger says
        return replace(self.state, **changes)

    def _finish(self, result: StepResult) -> StepResult:
        if result.mismatches and result.status == StepStatus.PASSED:
            result.status = StepStatus.FAILED
            if any(m.startswith("model predicts") for m in result.mismatches):
                result.failure_code = ErrorCode.SCENARIO_ASSERTION_MISMATCH
            else:
                result.failure_code = ErrorCode.SCENARIO_STATE_MISMATCH
            result.message = "; ".join(result.mismatches)
        return result
