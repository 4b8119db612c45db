"""
scenarios/library.py - Built-in scenarios.

Each builder returns a list of Steps. Actors:
  admin     - holds Minter and Denylister at the start
  account2  - second funded account with no roles

`amount` is the base mint size; every other amount in a scenario is a
fraction of it.

Builders expect `ops.metadata_address` to be resolved when the scenario
contains transfers (TokenStateReader.token_address()).
"""

from typing import Callable, Dict, FrozenSet, List

from core.constants import MIN_SCENARIO_AMOUNT, ONE_XBTC, ExecutionMode
from core.exceptions import ConfigError
from execution.operations import TokenOperations
from scenarios.steps import Expect, Step

ADMIN = "admin"
ACCOUNT2 = "account2"


def compliance_scenario(ops: TokenOperations, admin: str, account2: str, amount: int = ONE_XBTC) -> List[Step]:
    """
    Full walk through the compliance rules, ending with roles handed to
    account2 and back so the deployment is left as it was found.

    Later steps depend on the committed effects of earlier ones.
    """
    tenth = amount // 10
    hundredth = amount // 100
    both = [admin, account2]

    return [
        Step("set receiver", ADMIN, ops.set_receiver(admin), check_roles=True),
        Step("mint", ADMIN, ops.mint(admin, amount), check_balances=[admin]),
        Step("transfer a tenth to account2", ADMIN, ops.transfer(account2, tenth), check_balances=both),
        Step("burn half", ADMIN, ops.burn(amount // 2), check_balances=[admin]),
        Step("pause", ADMIN, ops.set_pause(True)),
        Step("burn while paused", ADMIN, ops.burn(tenth), expect=Expect.failure()),
        Step("mint while paused", ADMIN, ops.mint(admin, tenth), expect=Expect.failure()),
        Step("unpause", ADMIN, ops.set_pause(False)),
        Step("burn after unpause", ADMIN, ops.burn(tenth), expect=Expect.ok(), check_balances=[admin]),
        Step("denylist account2", ADMIN, ops.add_to_deny_list(account2)),
        Step(
            "transfer from denylisted account2",
            ACCOUNT2,
            ops.transfer(admin, hundredth),
            expect=Expect.failure(),
            check_balances=both,
        ),
        Step("transfer to denylisted account2", ADMIN, ops.transfer(account2, hundredth), expect=Expect.failure()),
        Step("remove account2 from denylist", ADMIN, ops.remove_from_deny_list(account2)),
        Step(
            "transfer from account2 after removal",
            ACCOUNT2,
            ops.transfer(admin, hundredth),
            expect=Expect.ok(),
            check_balances=both,
        ),
        Step("batch denylist", ADMIN, ops.batch_add_to_deny_list([account2])),
        Step("batch denylist again", ADMIN, ops.batch_add_to_deny_list([account2])),
        Step("batch remove from denylist", ADMIN, ops.batch_remove_from_deny_list([account2])),
        Step("hand minter role to account2", ADMIN, ops.transfer_minter_role(account2), check_roles=True),
        Step("hand denylister role to account2", ADMIN, ops.transfer_denylister_role(account2), check_roles=True),
        Step("old minter can no longer mint", ADMIN, ops.mint(admin, tenth), expect=Expect.failure()),
        Step("return minter role", ACCOUNT2, ops.transfer_minter_role(admin), check_roles=True),
        Step("return denylister role", ACCOUNT2, ops.transfer_denylister_role(admin), check_roles=True),
    ]


def access_scenario(ops: TokenOperations, admin: str, account2: str, amount: int = ONE_XBTC) -> List[Step]:
    """Every privileged call from an account holding no role must be rejected."""
    return [
        Step("non-minter mint", ACCOUNT2, ops.mint(account2, amount), expect=Expect.failure()),
        Step("non-minter burn", ACCOUNT2, ops.burn(amount // 10), expect=Expect.failure()),
        Step("non-minter set receiver", ACCOUNT2, ops.set_receiver(account2), expect=Expect.failure()),
        Step("non-denylister pause", ACCOUNT2, ops.set_pause(True), expect=Expect.failure()),
        Step("non-denylister denylist", ACCOUNT2, ops.add_to_deny_list(admin), expect=Expect.failure()),
        Step(
            "non-holder takes minter role",
            ACCOUNT2,
            ops.transfer_minter_role(account2),
            expect=Expect.failure(),
            check_roles=True,
        ),
        Step(
            "non-holder takes denylister role",
            ACCOUNT2,
            ops.transfer_denylister_role(account2),
            expect=Expect.failure(),
            check_roles=True,
        ),
    ]


def dry_run_scenario(ops: TokenOperations, admin: str, account2: str, amount: int = ONE_XBTC) -> List[Step]:
    """
    Simulate-only steps. Balances and roles are re-read after each one to
    show nothing changed on the ledger.
    """
    sim = ExecutionMode.SIMULATE
    return [
        Step("simulate mint", ADMIN, ops.mint(admin, amount), mode=sim, check_balances=[admin]),
        Step("simulate pause", ADMIN, ops.set_pause(True), mode=sim),
        Step("simulate denylist", ADMIN, ops.add_to_deny_list(account2), mode=sim),
        Step(
            "simulate mint by non-minter",
            ACCOUNT2,
            ops.mint(account2, amount),
            expect=Expect.failure(),
            mode=sim,
            check_balances=[account2],
        ),
        # Outcome depends on the deployment's store rules; recorded only
        Step(
            "simulate transfer_fungible_store",
            ADMIN,
            ops.transfer_fungible_store(account2),
            expect=Expect.any(),
            mode=sim,
        ),
        Step(
            "simulate minter role handover",
            ADMIN,
            ops.transfer_minter_role(account2),
            mode=sim,
            check_roles=True,
        ),
    ]


ScenarioBuilder = Callable[[TokenOperations, str, str, int], List[Step]]

SCENARIOS: Dict[str, ScenarioBuilder] = {
    "compliance": compliance_scenario,
    "access": access_scenario,
    "dry-run": dry_run_scenario,
}

# Scenarios whose steps do not depend on each other's committed effects,
# so they still hold when every step is only simulated
SIMULATABLE: FrozenSet[str] = frozenset({"access", "dry-run"})


def build_scenario(
    name: str,
    ops: TokenOperations,
    admin: str,
    account2: str,
    amount: int = ONE_XBTC,
) -> List[Step]:
    try:
        builder = SCENARIOS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown scenario '{name}'",
            details={"available": sorted(SCENARIOS)},
        ) from None
    if amount < MIN_SCENARIO_AMOUNT:
        raise ConfigError(
            f"Scenario amount must be at least {MIN_SCENARIO_AMOUNT} base units",
            details={"amount": amount},
        )
    return builder(ops, admin, account2, amount)
