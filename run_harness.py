#!/usr/bin/env python3
"""
run_harness.py - CLI entrypoint for the xbtc compliance harness.

Usage:
    python run_harness.py run --scenario compliance
    python run_harness.py run --scenario access --simulate
    python run_harness.py roles
    python run_harness.py balances 0x1234... 0x5678...
    python run_harness.py inspect
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import click

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from chains.gateway import LedgerGateway
from chains.providers import AptosRestProvider
from chains.signer import Ed25519Signer
from config import PRIVATE_KEY_2_ENV, PRIVATE_KEY_ENV, HarnessConfig, get_private_key, load_harness_config
from core.constants import ExecutionMode
from core.exceptions import ConfigError, HarnessError, ScenarioFailedError
from core.logging import get_logger, set_global_context, setup_logging
from execution.operations import TokenOperations, format_amount
from execution.orchestrator import TransactionOrchestrator
from execution.token_state import TokenStateReader
from scenarios.library import ACCOUNT2, ADMIN, SCENARIOS, SIMULATABLE, build_scenario
from scenarios.runner import ScenarioRunner
from scenarios.steps import ScenarioReport

logger = get_logger("xbtc.harness")


class HarnessSession:
    """Gateway, operations and reader for one network."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        provider = AptosRestProvider(
            network=config.network,
            base_urls=config.rest_urls,
            timeout_seconds=config.request_timeout_seconds,
        )
        self.gateway = LedgerGateway(
            provider,
            max_gas_amount=config.max_gas_amount,
            gas_unit_price=config.gas_unit_price,
            tx_ttl_seconds=config.tx_ttl_seconds,
            wait_timeout_seconds=config.wait_timeout_seconds,
            poll_interval_seconds=config.poll_interval_seconds,
            explorer_url_template=config.explorer_url,
        )
        self.ops = TokenOperations(config.contract_address, config.module_name)
        self.reader = TokenStateReader(self.gateway, self.ops)

    async def close(self) -> None:
        await self.gateway.close()


def _run(config: HarnessConfig, job: Callable[[HarnessSession], Awaitable[Any]]) -> Any:
    """Run `job` against a fresh session; HarnessError ends the process with status 1."""

    async def runner() -> Any:
        session = HarnessSession(config)
        try:
            return await job(session)
        finally:
            await session.close()

    try:
        return asyncio.run(runner())
    except ScenarioFailedError as e:
        logger.error(str(e), extra={"context": {"error_code": e.code.value, **e.details}})
        sys.exit(1)
    except HarnessError as e:
        logger.error(
            f"Harness error: {e}",
            extra={"context": {"error_code": e.code.value, "details": e.details}},
            exc_info=True,
        )
        sys.exit(1)


def _print_report(report: ScenarioReport) -> None:
    click.echo("\n" + "=" * 60)
    click.echo(f"SCENARIO: {report.scenario}")
    click.echo("=" * 60)
    for index, result in enumerate(report.results, start=1):
        marker = "ok  " if result.passed else "FAIL"
        line = f"{index:>2}. [{marker}] {result.step} (expected {result.expected}, {result.mode.value})"
        if result.outcome and result.outcome.tx_hash:
            line += f" tx={result.outcome.tx_hash}"
        click.echo(line)
        if not result.passed:
            click.echo(f"      {result.message}")
    click.echo("=" * 60)
    click.echo(f"{len(report.results) - len(report.failures)}/{len(report.results)} steps passed")


@click.group()
@click.option("--network", "-n", default=None, help="Network from config/networks.yaml (default: harness.yaml)")
@click.option(
    "--log-level",
    "-l",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON log format",
)
@click.pass_context
def cli(ctx: click.Context, network: Optional[str], log_level: str, json_logs: bool) -> None:
    """xbtc compliance harness."""
    setup_logging(level=log_level, json_output=json_logs)
    try:
        config = load_harness_config(network)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    set_global_context(service="xbtc-harness", network=config.network)
    ctx.obj = config


@cli.command()
@click.option(
    "--scenario",
    "-s",
    default="compliance",
    type=click.Choice(sorted(SCENARIOS)),
    help="Scenario to run",
)
@click.option(
    "--simulate",
    is_flag=True,
    help=f"Simulate every step instead of committing ({', '.join(sorted(SIMULATABLE))} only)",
)
@click.option("--fail-fast", is_flag=True, help="Stop at the first failed step")
@click.option("--report-file", default=None, help="Write the JSON report to this path")
@click.pass_obj
def run(
    config: HarnessConfig,
    scenario: str,
    simulate: bool,
    fail_fast: bool,
    report_file: Optional[str],
) -> None:
    """Run a scenario against the deployed contract."""
    if simulate and scenario not in SIMULATABLE:
        raise click.UsageError(
            f"--simulate cannot run '{scenario}': its steps depend on committed effects "
            f"of earlier steps (simulatable: {', '.join(sorted(SIMULATABLE))})"
        )
    try:
        admin = Ed25519Signer.from_hex(get_private_key(PRIVATE_KEY_ENV))
        account2 = Ed25519Signer.from_hex(get_private_key(PRIVATE_KEY_2_ENV))
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    mode = ExecutionMode.SIMULATE if simulate else ExecutionMode.COMMIT

    logger.info(
        "Starting scenario",
        extra={
            "context": {
                "scenario": scenario,
                "mode": mode.value,
                "admin": admin.address,
                "account2": account2.address,
                "contract": config.contract_address,
            }
        },
    )

    async def job(session: HarnessSession) -> ScenarioReport:
        await session.reader.token_address()
        steps = build_scenario(scenario, session.ops, admin.address, account2.address, amount=config.mint_amount)
        orchestrators = {
            ADMIN: TransactionOrchestrator(session.gateway, admin, default_mode=mode),
            ACCOUNT2: TransactionOrchestrator(session.gateway, account2, default_mode=mode),
        }
        runner = ScenarioRunner(
            orchestrators,
            session.reader,
            settle_delay_seconds=config.settle_delay_seconds,
            fail_fast=fail_fast,
            pause_blocks_transfer=config.pause_blocks_transfer,
        )
        report = await runner.run(steps, scenario=scenario)
        _print_report(report)
        if report_file:
            Path(report_file).write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        report.raise_for_failures()
        return report

    _run(config, job)


@cli.command()
@click.pass_obj
def roles(config: HarnessConfig) -> None:
    """Show the current role holders (and which ones TEST_PRIVATE_KEY holds)."""
    try:
        address: Optional[str] = Ed25519Signer.from_hex(get_private_key(PRIVATE_KEY_ENV)).address
    except ConfigError:
        address = None

    async def job(session: HarnessSession) -> Dict[str, Any]:
        if address:
            return await session.reader.describe_access(address)
        return {"roles": (await session.reader.roles()).to_dict()}

    info = _run(config, job)
    for role, holder in info["roles"].items():
        click.echo(f"{role:<11} {holder}")
    if address:
        click.echo(f"\nYour account {address}:")
        click.echo(f"  minter:     {'yes' if info['is_minter'] else 'no'}")
        click.echo(f"  denylister: {'yes' if info['is_denylister'] else 'no'}")
        click.echo(f"  receiver:   {'yes' if info['is_receiver'] else 'no'}")


@cli.command()
@click.argument("addresses", nargs=-1)
@click.pass_obj
def balances(config: HarnessConfig, addresses: tuple) -> None:
    """Show xbtc balances (default: configured recipient and account2)."""
    targets = list(addresses) or [a for a in (config.recipient, config.account2) if a]
    if not targets:
        raise click.UsageError("No addresses given and none configured")

    async def job(session: HarnessSession) -> Dict[str, int]:
        return await session.reader.balances(targets)

    for address, amount in _run(config, job).items():
        click.echo(f"{address}  {format_amount(amount)}")


@cli.command()
@click.pass_obj
def inspect(config: HarnessConfig) -> None:
    """Show modules, resources and owner of the contract object."""

    async def job(session: HarnessSession) -> Dict[str, Any]:
        return await session.reader.contract_info()

    click.echo(json.dumps(_run(config, job), indent=2, default=str))


if __name__ == "__main__":
    cli()
