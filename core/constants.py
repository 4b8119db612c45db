# PATH: core/constants.py
"""
Constants for the XBTC compliance harness.

Contains enums, defaults, and ledger constants.

NAMING:
- Function names mirror the on-chain `xbtc` Move module entry functions
- Amounts are in base units (8 decimals, 1 XBTC = 100_000_000)
"""

from enum import Enum
from typing import Final

# =============================================================================
# TOKEN
# =============================================================================

XBTC_DECIMALS: Final[int] = 8
ONE_XBTC: Final[int] = 10 ** XBTC_DECIMALS

# Smallest scenario amount whose hundredth is still a whole base unit
MIN_SCENARIO_AMOUNT: Final[int] = 100

DEFAULT_MODULE_NAME: Final[str] = "xbtc"

# Framework entry points used for fungible-asset reads and transfers
FA_TRANSFER_FUNCTION: Final[str] = "0x1::primary_fungible_store::transfer"
FA_BALANCE_FUNCTION: Final[str] = "0x1::primary_fungible_store::balance"
FA_METADATA_TYPE: Final[str] = "0x1::fungible_asset::Metadata"
OBJECT_CORE_TYPE: Final[str] = "0x1::object::ObjectCore"

# =============================================================================
# LEDGER DEFAULTS
# =============================================================================

DEFAULT_MAX_GAS_AMOUNT = 200_000
DEFAULT_TX_TTL_SECONDS = 60

DEFAULT_REQUEST_TIMEOUT_SECONDS = 10
DEFAULT_WAIT_TIMEOUT_SECONDS = 30
DEFAULT_POLL_INTERVAL_SECONDS = 0.5
DEFAULT_SETTLE_DELAY_SECONDS = 2.0

# Ed25519 sizes in bytes
ED25519_PUBLIC_KEY_LENGTH = 32
ED25519_SIGNATURE_LENGTH = 64

# Authentication key scheme byte appended to the public key
ED25519_SCHEME = b"\x00"

ADDRESS_HEX_LENGTH = 64

VM_STATUS_EXECUTED = "Executed successfully"


class ExecutionMode(str, Enum):
    """How the orchestrator handles an operation."""
    SIMULATE = "SIMULATE"
    COMMIT = "COMMIT"


class OperationKind(str, Enum):
    """Token operations the harness knows how to build."""
    MINT = "mint"
    BURN = "burn"
    TRANSFER = "transfer"
    SET_PAUSE = "set_pause"
    ADD_TO_DENY_LIST = "add_to_deny_list"
    REMOVE_FROM_DENY_LIST = "remove_from_deny_list"
    BATCH_ADD_TO_DENY_LIST = "batch_add_to_deny_list"
    BATCH_REMOVE_FROM_DENY_LIST = "batch_remove_from_deny_list"
    SET_RECEIVER = "set_receiver"
    TRANSFER_MINTER_ROLE = "transfer_minter_role"
    TRANSFER_DENYLISTER_ROLE = "transfer_denylister_role"
    TRANSFER_FUNGIBLE_STORE = "transfer_fungible_store"


class RoleName(str, Enum):
    """Role fields held by the on-chain Roles resource."""
    MINTER = "minter"
    DENYLISTER = "denylister"
    RECEIVER = "receiver"


class ErrorCode(str, Enum):
    """
    Error codes for typed exceptions.

    INFRA_* codes are infrastructure failures and are never treated
    as expected on-chain rejections.
    """
    # Infrastructure
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"
    INFRA_HTTP_STATUS = "INFRA_HTTP_STATUS"
    INFRA_DECODE_ERROR = "INFRA_DECODE_ERROR"
    INFRA_SERIALIZATION_ERROR = "INFRA_SERIALIZATION_ERROR"
    INFRA_NO_ENDPOINTS = "INFRA_NO_ENDPOINTS"

    # Ledger admission
    TX_REJECTED = "TX_REJECTED"

    # Model / input validation
    VALIDATION_INVALID_ADDRESS = "VALIDATION_INVALID_ADDRESS"
    VALIDATION_INVALID_AMOUNT = "VALIDATION_INVALID_AMOUNT"
    VALIDATION_NEGATIVE_BALANCE = "VALIDATION_NEGATIVE_BALANCE"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Configuration
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Scenario assertions
    SCENARIO_UNEXPECTED_SUCCESS = "SCENARIO_UNEXPECTED_SUCCESS"
    SCENARIO_UNEXPECTED_FAILURE = "SCENARIO_UNEXPECTED_FAILURE"
    SCENARIO_STATUS_MISMATCH = "SCENARIO_STATUS_MISMATCH"
    SCENARIO_STATE_MISMATCH = "SCENARIO_STATE_MISMATCH"
    SCENARIO_ASSERTION_MISMATCH = "SCENARIO_ASSERTION_MISMATCH"
    SCENARIO_FAILED = "SCENARIO_FAILED"

    UNKNOWN = "UNKNOWN"


class RejectReason(str, Enum):
    """
    Reasons the compliance model predicts a rejection.

    These are model-side labels; the ledger reports its own vm_status.
    """
    NOT_MINTER = "NOT_MINTER"
    NOT_DENYLISTER = "NOT_DENYLISTER"
    NOT_ROLE_HOLDER = "NOT_ROLE_HOLDER"
    PAUSED = "PAUSED"
    SENDER_DENYLISTED = "SENDER_DENYLISTED"
    RECIPIENT_DENYLISTED = "RECIPIENT_DENYLISTED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
