"""
core - Core utilities and models for the XBTC harness.

This package contains:
- models.py: Data models (Operation, OperationOutcome, Roles, ledger tx types)
- constants.py: Enums and constants
- exceptions.py: Typed exceptions with error codes
- validators.py: Address / amount validation
- logging.py: Structured JSON logging
"""

from core.constants import (
    ErrorCode,
    ExecutionMode,
    ONE_XBTC,
    OperationKind,
    RejectReason,
    RoleName,
)
from core.exceptions import (
    ConfigError,
    DecodeError,
    HarnessError,
    InfraError,
    RPCError,
    RPCTimeoutError,
    ScenarioFailedError,
    SerializationError,
    TransactionRejectedError,
    UnauthorizedError,
    ValidationError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    Operation,
    OperationOutcome,
    PendingHandle,
    Resource,
    ResourceSet,
    Roles,
    SignedTx,
    UnsignedTx,
)

__all__ = [
    # Constants
    "ErrorCode",
    "ExecutionMode",
    "ONE_XBTC",
    "OperationKind",
    "RejectReason",
    "RoleName",
    # Exceptions
    "ConfigError",
    "DecodeError",
    "HarnessError",
    "InfraError",
    "RPCError",
    "RPCTimeoutError",
    "ScenarioFailedError",
    "SerializationError",
    "TransactionRejectedError",
    "UnauthorizedError",
    "ValidationError",
    # Models
    "Operation",
    "OperationOutcome",
    "PendingHandle",
    "Resource",
    "ResourceSet",
    "Roles",
    "SignedTx",
    "UnsignedTx",
    # Logging
    "get_logger",
    "setup_logging",
]
