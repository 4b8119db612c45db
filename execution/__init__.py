# PATH: execution/__init__.py
"""
Execution layer.

This module contains the execution layer components:
- state_machine: Per-call transaction lifecycle
- orchestrator: Simulate / commit executor with scoped mode override
- operations: xbtc Operation builders
- token_state: Token state reads (roles, balances, pause flag)
"""

from execution.state_machine import (
    TxState,
    TxLifecycle,
    StateTransition,
    InvalidTransitionError,
    VALID_TRANSITIONS,
)
from execution.orchestrator import (
    TransactionOrchestrator,
)
from execution.operations import (
    TokenOperations,
    format_amount,
)
from execution.token_state import (
    TokenSnapshot,
    TokenStateReader,
)

__all__ = [
    # State machine
    "TxState",
    "TxLifecycle",
    "StateTransition",
    "InvalidTransitionError",
    "VALID_TRANSITIONS",
    # Orchestrator
    "TransactionOrchestrator",
    # Operations
    "TokenOperations",
    "format_amount",
    # Reads
    "TokenSnapshot",
    "TokenStateReader",
]
