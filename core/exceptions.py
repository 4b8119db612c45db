# PATH: core/exceptions.py
"""
Typed exceptions for the XBTC harness.

Three families, kept apart on purpose:
- InfraError: connectivity, timeouts, decoding. Always re-raised.
- TransactionRejectedError: the node refused the transaction at admission
  and reported a VM status. Carries `vm_status` explicitly.
- ScenarioFailedError: an expectation did not hold.

A finalized-but-aborted transaction is NOT an exception; it is an
OperationOutcome with success=False.
"""

from typing import Any, Optional

from core.constants import ErrorCode


class HarnessError(Exception):
    """Base exception for the harness."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    @property
    def function_id(self) -> Optional[str]:
        """Entry function that was being attempted, if tagged."""
        return self.details.get("function_id")

    def tag(self, **fields: Any) -> "HarnessError":
        """Attach context fields without changing the error type."""
        self.details.update(fields)
        return self

    def __str__(self):
        base = f"[{self.code.value}] {self.message}"
        if self.function_id:
            base += f" (function={self.function_id})"
        return base


class InfraError(HarnessError):
    """Infrastructure-related errors (RPC, timeouts, decoding)."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INFRA_RPC_ERROR,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class RPCError(InfraError):
    """REST call failed on every endpoint."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_RPC_ERROR, details)


class RPCTimeoutError(InfraError):
    """Request or finality wait timed out."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_TIMEOUT, details)


class DecodeError(InfraError):
    """Ledger response could not be decoded."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_DECODE_ERROR, details)


class SerializationError(InfraError):
    """Operation arguments could not be encoded for the ledger."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_SERIALIZATION_ERROR, details)


class TransactionRejectedError(HarnessError):
    """
    Node refused a transaction and reported a VM status.

    Raised for admission failures (HTTP 4xx with vm_error_code), e.g. a
    sequence number or signature problem, or a view that aborted.
    """

    def __init__(
        self,
        message: str,
        vm_status: str,
        details: Optional[dict] = None,
    ):
        super().__init__(message, ErrorCode.TX_REJECTED, details)
        self.vm_status = vm_status


class ValidationError(HarnessError):
    """Input failed validation (addresses, amounts, balances)."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_INVALID_ADDRESS,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class UnauthorizedError(HarnessError):
    """Caller does not hold the role an operation requires."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.UNAUTHORIZED, details)


class ConfigError(HarnessError):
    """Configuration missing or invalid."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class ScenarioFailedError(HarnessError):
    """One or more scenario steps did not behave as expected."""

    def __init__(self, message: str, report: Any = None, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.SCENARIO_FAILED, details)
        self.report = report
