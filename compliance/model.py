"""
compliance/model.py - Access-control model of the xbtc token.

Pure functions, no I/O. Used to compute the expected outcome of an
operation before asserting against what the ledger actually did.

STATE:
  (Active | Paused) x denylist membership x (minter, denylister, receiver)

RULES:
  mint / burn         caller == minter AND not paused
  set_receiver        caller == minter
  set_pause(v)        caller == denylister (any current state, idempotent)
  denylist add/remove caller == denylister (batch == repeated single, idempotent)
  transfer(a -> b)    a, b not denylisted AND (not paused, if pause_blocks_transfer)
  transfer_*_role     caller == current holder of that role

Burn debits the Receiver's primary store. Balances never go negative:
a burn or transfer larger than the balance is predicted as rejected.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, NamedTuple, Optional

from core.constants import ErrorCode, OperationKind, RejectReason, RoleName
from core.exceptions import UnauthorizedError, ValidationError
from core.models import Operation, Roles
from core.validators import normalize_address, normalize_addresses


# =============================================================================
# PREDICATES
# =============================================================================

def can_mint_or_burn(caller: str, roles: Roles) -> bool:
    return normalize_address(caller) == roles.minter


def can_administer(caller: str, roles: Roles) -> bool:
    """Pause/unpause and denylist mutations."""
    return normalize_address(caller) == roles.denylister


def can_burn_now(paused: bool) -> bool:
    return not paused


def can_transfer(
    sender: str,
    recipient: str,
    deny_list: Iterable[str],
    paused: bool,
    pause_blocks_transfer: bool = True,
) -> bool:
    """Neither endpoint denylisted and, unless decoupled, not paused."""
    if paused and pause_blocks_transfer:
        return False
    denied = set(normalize_addresses(deny_list))
    return normalize_address(sender) not in denied and normalize_address(recipient) not in denied


# =============================================================================
# TRANSITIONS
# =============================================================================

def transfer_role(roles: Roles, which: RoleName, new_holder: str, caller: str) -> Roles:
    """
    Hand a role to `new_holder`.

    Only the current holder may do this; other fields are untouched.
    Reassigning to the current holder is a no-op success.

    Raises:
        UnauthorizedError: caller is not the current holder
    """
    which = RoleName(which)
    if normalize_address(caller) != roles.holder(which):
        raise UnauthorizedError(
            f"{caller} does not hold the {which.value} role",
            details={"role": which.value, "holder": roles.holder(which)},
        )
    return roles.with_holder(which, new_holder)


def add_to_deny_list(deny_list: Iterable[str], addresses: Iterable[str]) -> FrozenSet[str]:
    return frozenset(normalize_addresses(deny_list)) | frozenset(normalize_addresses(addresses))


def remove_from_deny_list(deny_list: Iterable[str], addresses: Iterable[str]) -> FrozenSet[str]:
    return frozenset(normalize_addresses(deny_list)) - frozenset(normalize_addresses(addresses))


# =============================================================================
# STATE + PREDICTION
# =============================================================================

class Prediction(NamedTuple):
    """Expected outcome of one operation."""
    allowed: Optional[bool]  # None: operation not modelled
    reason: Optional[RejectReason] = None
    next_state: Optional["ComplianceState"] = None


@dataclass(frozen=True)
class ComplianceState:
    """Immutable snapshot of the token's access-control state."""
    roles: Roles
    paused: bool = False
    deny_list: FrozenSet[str] = frozenset()
    balances: Dict[str, int] = field(default_factory=dict)
    pause_blocks_transfer: bool = True

    def __post_init__(self):
        object.__setattr__(self, "deny_list", frozenset(normalize_addresses(self.deny_list)))
        normalized = {}
        for address, amount in self.balances.items():
            if amount < 0:
                raise ValidationError(
                    f"Negative balance for {address}: {amount}",
                    code=ErrorCode.VALIDATION_NEGATIVE_BALANCE,
                )
            normalized[normalize_address(address)] = amount
        object.__setattr__(self, "balances", normalized)

    def balance_of(self, address: str) -> int:
        return self.balances.get(normalize_address(address), 0)

    def is_denied(self, address: str) -> bool:
        return normalize_address(address) in self.deny_list

    def _with_balance_delta(self, deltas: Dict[str, int]) -> "ComplianceState":
        balances = dict(self.balances)
        for address, delta in deltas.items():
            address = normalize_address(address)
            updated = balances.get(address, 0) + delta
            if updated < 0:
                raise ValidationError(
                    f"Balance of {address} would become negative ({updated})",
                    code=ErrorCode.VALIDATION_NEGATIVE_BALANCE,
                )
            balances[address] = updated
        return replace(self, balances=balances)

    def predict(self, caller: str, operation: Operation) -> Prediction:
        """
        Expected outcome of `caller` submitting `operation`.

        `next_state` is the state after the transition if allowed, else self.
        """
        caller = normalize_address(caller)
        kind = operation.kind
        args = operation.args

        def reject(reason: RejectReason) -> Prediction:
            return Prediction(False, reason, self)

        def accept(state: "ComplianceState") -> Prediction:
            return Prediction(True, None, state)

        if kind == OperationKind.MINT:
            recipient, amount = args[0], int(args[1])
            if not can_mint_or_burn(caller, self.roles):
                return reject(RejectReason.NOT_MINTER)
            if self.paused:
                return reject(RejectReason.PAUSED)
            return accept(self._with_balance_delta({recipient: amount}))

        if kind == OperationKind.BURN:
            amount = int(args[0])
            if not can_mint_or_burn(caller, self.roles):
                return reject(RejectReason.NOT_MINTER)
            if not can_burn_now(self.paused):
                return reject(RejectReason.PAUSED)
            if self.balance_of(self.roles.receiver) < amount:
                return reject(RejectReason.INSUFFICIENT_BALANCE)
            return accept(self._with_balance_delta({self.roles.receiver: -amount}))

        if kind == OperationKind.TRANSFER:
            recipient, amount = normalize_address(args[1]), int(args[2])
            if self.paused and self.pause_blocks_transfer:
                return reject(RejectReason.PAUSED)
            if self.is_denied(caller):
                return reject(RejectReason.SENDER_DENYLISTED)
            if self.is_denied(recipient):
                return reject(RejectReason.RECIPIENT_DENYLISTED)
            if self.balance_of(caller) < amount:
                return reject(RejectReason.INSUFFICIENT_BALANCE)
            if recipient == caller:
                return accept(self)
            return accept(self._with_balance_delta({caller: -amount, recipient: amount}))

        if kind == OperationKind.SET_PAUSE:
            if not can_administer(caller, self.roles):
                return reject(RejectReason.NOT_DENYLISTER)
            return accept(replace(self, paused=bool(args[0])))

        if kind in (OperationKind.ADD_TO_DENY_LIST, OperationKind.BATCH_ADD_TO_DENY_LIST):
            if not can_administer(caller, self.roles):
                return reject(RejectReason.NOT_DENYLISTER)
            return accept(replace(self, deny_list=add_to_deny_list(self.deny_list, _as_batch(args[0]))))

        if kind in (OperationKind.REMOVE_FROM_DENY_LIST, OperationKind.BATCH_REMOVE_FROM_DENY_LIST):
            if not can_administer(caller, self.roles):
                return reject(RejectReason.NOT_DENYLISTER)
            return accept(replace(self, deny_list=remove_from_deny_list(self.deny_list, _as_batch(args[0]))))

        if kind == OperationKind.SET_RECEIVER:
            if not can_mint_or_burn(caller, self.roles):
                return reject(RejectReason.NOT_MINTER)
            return accept(replace(self, roles=self.roles.with_holder(RoleName.RECEIVER, args[0])))

        if kind in (OperationKind.TRANSFER_MINTER_ROLE, OperationKind.TRANSFER_DENYLISTER_ROLE):
            which = RoleName.MINTER if kind == OperationKind.TRANSFER_MINTER_ROLE else RoleName.DENYLISTER
            try:
                roles = transfer_role(self.roles, which, args[0], caller)
            except UnauthorizedError:
                return reject(RejectReason.NOT_ROLE_HOLDER)
            return accept(replace(self, roles=roles))

        return Prediction(None, None, self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roles": self.roles.to_dict(),
            "paused": self.paused,
            "deny_list": sorted(self.deny_list),
            "balances": dict(self.balances),
            "pause_blocks_transfer": self.pause_blocks_transfer,
        }


def _as_batch(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple, set, frozenset)) else [value]
