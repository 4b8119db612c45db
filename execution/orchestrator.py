# PATH: execution/orchestrator.py
"""
Transaction orchestrator.

ORCHESTRATION CONTRACT:
=======================

Interface:
  execute(function_id, type_args, args, mode) → OperationOutcome
  submit(operation, mode)                     → OperationOutcome

Modes:
  SIMULATE - build + simulate, no ledger-visible side effect
  COMMIT   - build + sign + submit + wait for finality

Mode resolution:
  explicit `mode` argument > active mode_override() > default_mode

Errors:
  Gateway errors are tagged with the attempted function_id and re-raised
  with their original type. Any other exception leaves the lifecycle
  ERRORED and is wrapped in a tagged InfraError (original as __cause__).
  An aborted transaction is returned as OperationOutcome(success=False),
  never raised.

=======================
"""

from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

from chains.gateway import LedgerGateway
from core.constants import ExecutionMode
from core.exceptions import HarnessError, InfraError
from core.logging import get_logger, log_outcome
from core.models import Operation, OperationOutcome, SigningCapability
from execution.state_machine import TxLifecycle, TxState

logger = get_logger(__name__)


class TransactionOrchestrator:
    """
    Dual-mode executor for one sender.

    Issues one operation at a time; callers await each outcome before
    submitting a dependent operation.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        signer: SigningCapability,
        default_mode: ExecutionMode = ExecutionMode.COMMIT,
        history_limit: int = 200,
    ):
        self.gateway = gateway
        self.signer = signer
        self._default_mode = ExecutionMode(default_mode)
        self._history_limit = history_limit
        self.history: List[TxLifecycle] = []

    @property
    def sender(self) -> str:
        return self.signer.address

    @property
    def default_mode(self) -> ExecutionMode:
        return self._default_mode

    @contextmanager
    def mode_override(self, mode: ExecutionMode) -> Iterator["TransactionOrchestrator"]:
        """
        Temporarily replace the default mode.

        The previous default is restored on exit, including when the
        body raises.
        """
        previous = self._default_mode
        self._default_mode = ExecutionMode(mode)
        try:
            yield self
        finally:
            self._default_mode = previous

    def _record(self, lifecycle: TxLifecycle) -> None:
        self.history.append(lifecycle)
        if len(self.history) > self._history_limit:
            del self.history[: len(self.history) - self._history_limit]

    async def submit(self, operation: Operation, mode: Optional[ExecutionMode] = None) -> OperationOutcome:
        return await self.execute(operation.function_id, operation.type_args, operation.args, mode=mode)

    async def execute(
        self,
        function_id: str,
        type_args: Sequence[str] = (),
        args: Sequence[Any] = (),
        mode: Optional[ExecutionMode] = None,
    ) -> OperationOutcome:
        """
        Build and run one entry-function call.

        Raises:
            HarnessError: Gateway failure, tagged with function_id
            InfraError: any other failure, wrapped and tagged
        """
        mode = ExecutionMode(mode) if mode is not None else self._default_mode
        lifecycle = TxLifecycle(function_id=function_id, mode=mode.value)
        self._record(lifecycle)

        try:
            tx = await self.gateway.build_operation(
                self.sender, function_id, list(type_args), list(args)
            )

            if mode == ExecutionMode.SIMULATE:
                lifecycle.transition_to(TxState.SIMULATING)
                outcome = await self.gateway.simulate(tx, self.signer.public_key())
                lifecycle.transition_to(TxState.SIMULATED, reason=outcome.vm_status or "")
                log_outcome(
                    logger,
                    function_id,
                    outcome.success,
                    simulated=True,
                    vm_status=outcome.vm_status,
                    gas_used=outcome.gas_used,
                    sender=self.sender,
                )
                return outcome

            lifecycle.transition_to(TxState.SIGNING)
            signed = await self.gateway.sign(tx, self.signer)
            handle = await self.gateway.submit(signed)
            lifecycle.tx_hash = handle.tx_hash
            lifecycle.transition_to(TxState.SUBMITTED)

            logger.info(
                f"Transaction submitted: {function_id.rsplit('::', 1)[-1]}",
                extra={
                    "context": {
                        "stage": "submitted",
                        "function_id": function_id,
                        "tx_hash": handle.tx_hash,
                        "sender": self.sender,
                        "explorer": self.gateway.explorer_link(handle.tx_hash),
                    }
                },
            )

            outcome = await self.gateway.wait(handle)
            lifecycle.transition_to(
                TxState.FINALIZED if outcome.success else TxState.ABORTED,
                reason=outcome.vm_status or "",
            )
            log_outcome(
                logger,
                function_id,
                outcome.success,
                simulated=False,
                vm_status=outcome.vm_status,
                gas_used=outcome.gas_used,
                tx_hash=outcome.tx_hash,
                version=outcome.version,
                sender=self.sender,
            )
            return outcome

        except HarnessError as e:
            lifecycle.fail(reason=str(e))
            e.tag(function_id=function_id, mode=mode.value, sender=self.sender)
            logger.warning(
                f"Failed to execute {function_id.rsplit('::', 1)[-1]}",
                extra={"context": {"function_id": function_id, "error_code": e.code.value}},
            )
            raise

        except Exception as e:
            # Signing and transport failures outside the harness hierarchy
            lifecycle.fail(reason=f"{type(e).__name__}: {e}")
            logger.error(
                f"Unexpected error executing {function_id.rsplit('::', 1)[-1]}",
                extra={"context": {"function_id": function_id, "error_type": type(e).__name__}},
                exc_info=True,
            )
            raise InfraError(
                f"Unexpected {type(e).__name__}: {e}",
                details={"function_id": function_id, "mode": mode.value, "sender": self.sender},
            ) from e
