"""
compliance/ - Access-control model of the token contract.

Modules:
- model: predicates, role/denylist transitions, ComplianceState.predict
"""

from compliance.model import (
    ComplianceState,
    Prediction,
    add_to_deny_list,
    can_administer,
    can_burn_now,
    can_mint_or_burn,
    can_transfer,
    remove_from_deny_list,
    transfer_role,
)

__all__ = [
    "ComplianceState",
    "Prediction",
    "add_to_deny_list",
    "can_administer",
    "can_burn_now",
    "can_mint_or_burn",
    "can_transfer",
    "remove_from_deny_list",
    "transfer_role",
]
