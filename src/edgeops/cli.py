"""edgeops command line.

Usage:
    edgeops validate-dns [--fix]              # Reconcile every declared DNS record
    edgeops validate-infrastructure [--fix]   # Strict infrastructure verdict
    edgeops deployment-check production       # Read-only readiness gate
    edgeops deployment-report staging         # Scored readiness report
    edgeops prepare-deployment production     # Ensure hosting, validate DNS
    edgeops health                            # Per-component health
    edgeops status                            # Resource inventory

Exit status is 0 on success and 1 on any failure; there is no separate
partial-success code.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click

from .client import CloudflareClient, ProviderError, ResourceStateClient
from .config import DEFAULT_TOPOLOGY_PATH, Config, ConfigurationError
from .dns_reconciler import DNSReconciler, DNSReconcileResult
from .health import (
    ComponentReport,
    ComponentValidator,
    InfrastructureReport,
    InfrastructureValidator,
    Inventory,
    inventory,
)
from .main import setup_logging
from .models import Environment, Topology
from .preparation import EnvironmentPreparer, PreparationResult, PrepareOptions
from .readiness import ReadinessReport, ReadinessScorer, ReadinessStatus
from .spec_loader import SpecLoadError, load_topology
from .status import ComponentStatus

T = TypeVar("T")

ENVIRONMENT_CHOICE = click.Choice([env.value for env in Environment])

STATUS_COLORS = {
    ComponentStatus.HEALTHY: "green",
    ComponentStatus.DEGRADED: "yellow",
    ComponentStatus.UNHEALTHY: "red",
}


@dataclass(frozen=True)
class CliState:
    """Global options shared by every command."""

    topology_path: Path
    as_json: bool
    dry_run: bool

    def config(self) -> Config:
        config = Config.from_env()
        return dataclasses.replace(
            config,
            dry_run=config.dry_run or self.dry_run,
            topology_path=self.topology_path,
        )


def execute(
    state: CliState,
    operation: Callable[[ResourceStateClient, Config, Topology | None], Awaitable[T]],
    *,
    needs_topology: bool = True,
) -> T:
    """Load configuration and topology, then run one async operation.

    Configuration, topology and provider failures become a one-line error and
    exit status 1.
    """
    try:
        config = state.config()
        topology = load_topology(state.topology_path) if needs_topology else None
        return asyncio.run(_with_client(config, topology, operation))
    except (ConfigurationError, SpecLoadError, ProviderError, ValueError) as e:
        raise click.ClickException(str(e)) from e


async def _with_client(
    config: Config,
    topology: Topology | None,
    operation: Callable[[ResourceStateClient, Config, Topology | None], Awaitable[T]],
) -> T:
    async with CloudflareClient(config) as client:
        return await operation(client, config, topology)


def emit(state: CliState, payload: dict[str, Any], render: Callable[[], None]) -> None:
    """Print the JSON payload or the human summary."""
    if state.as_json:
        click.echo(json.dumps(payload, indent=2))
    else:
        render()


def finish(ok: bool) -> None:
    """Exit the current command with 0 on success, 1 otherwise."""
    click.get_current_context().exit(0 if ok else 1)


def _mark(ok: bool) -> str:
    return click.style("✓", fg="green") if ok else click.style("✗", fg="red")


def _render_dns(result: DNSReconcileResult) -> None:
    if result.valid:
        click.secho("✓ All DNS records match", fg="green")
        return

    for issue in result.issues:
        click.echo(
            f"  {issue.kind.value:<10} {issue.name} ({issue.record_type}) -> {issue.action.value}"
        )
    if result.fixed:
        failed = len(result.failed_writes)
        click.secho(
            f"Attempted fixes for {len(result.issues)} issue(s), {failed} write(s) failed",
            fg="yellow" if failed else "green",
        )
    else:
        click.secho(f"✗ {len(result.issues)} DNS issue(s) found", fg="red")


def _render_preparation(result: PreparationResult) -> None:
    click.echo(f"Environment: {result.environment.value}")
    click.echo(f"  {_mark(result.hosting_exists)} hosting project")
    click.echo(f"  {_mark(result.compute_complete)} compute deployments")
    click.echo(f"  {_mark(result.dns_valid)} DNS records")
    for issue in result.issues:
        click.secho(f"  issue: {issue}", fg="red")
    for warning in result.warnings:
        click.secho(f"  warning: {warning}", fg="yellow")
    if result.ready:
        click.secho("✓ Ready for deployment", fg="green")
    else:
        click.secho("✗ Not ready for deployment", fg="red")


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="edgeops")
@click.option(
    "--topology",
    "topology_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="EDGEOPS_TOPOLOGY",
    default=DEFAULT_TOPOLOGY_PATH,
    show_default=True,
    help="Topology YAML declaring the expected resources.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result payload as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--dry-run", is_flag=True, help="Log writes instead of sending them.")
@click.pass_context
def cli(
    ctx: click.Context, topology_path: Path, as_json: bool, verbose: bool, dry_run: bool
) -> None:
    """edgeops: DNS reconciliation, health and deployment readiness.

    \b
    Credentials come from the environment:
        CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_ZONE_ID,
        CLOUDFLARE_API_TOKEN (or CLOUDFLARE_API_KEY + CLOUDFLARE_EMAIL)
    """
    setup_logging(verbose)
    ctx.obj = CliState(topology_path=topology_path, as_json=as_json, dry_run=dry_run)


# =============================================================================
# DNS and Infrastructure
# =============================================================================


@cli.command("validate-dns")
@click.option("--fix", is_flag=True, help="Create or update records that deviate.")
@click.pass_obj
def validate_dns(state: CliState, fix: bool) -> None:
    """Reconcile every declared DNS record against the zone."""

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> DNSReconcileResult:
        assert topology is not None
        return await DNSReconciler(client, config).validate_zone(
            topology.all_records(), auto_fix=fix
        )

    result = execute(state, operation)
    emit(state, result.to_payload(), lambda: _render_dns(result))
    finish(result.valid or result.fixed)


@cli.command("validate-infrastructure")
@click.option("--fix", is_flag=True, help="Apply DNS fixes while validating.")
@click.pass_obj
def validate_infrastructure(state: CliState, fix: bool) -> None:
    """Strict validation of DNS, hosting, compute and certificates."""

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> InfrastructureReport:
        assert topology is not None
        return await InfrastructureValidator(client, config, topology).validate(auto_fix=fix)

    report = execute(state, operation)

    def render() -> None:
        _render_dns(report.dns)
        domains = len(report.pages_domains)
        click.echo(f"  {_mark(report.pages_valid)} hosting project ({domains} domains)")
        click.echo(f"  {_mark(report.workers_valid)} compute deployments")
        click.echo(f"  {_mark(report.ssl_valid)} certificates ({report.certificates})")
        click.secho(f"Overall: {report.overall.value}", fg=STATUS_COLORS[report.overall])

    emit(state, report.to_payload(), render)
    finish(report.overall != ComponentStatus.UNHEALTHY)


# =============================================================================
# Deployment
# =============================================================================


@cli.command("deployment-check")
@click.argument("environment", type=ENVIRONMENT_CHOICE)
@click.pass_obj
def deployment_check(state: CliState, environment: str) -> None:
    """Read-only readiness gate for ENVIRONMENT."""
    target = Environment(environment)
    options = PrepareOptions(validate_dns=True, auto_fix_dns=False, ensure_hosting=False)

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> PreparationResult:
        assert topology is not None
        return await EnvironmentPreparer(client, config, topology).prepare(target, options)

    result = execute(state, operation)
    emit(state, result.to_payload(), lambda: _render_preparation(result))
    finish(result.ready)


@cli.command("prepare-deployment")
@click.argument("environment", type=ENVIRONMENT_CHOICE)
@click.option("--fix", is_flag=True, help="Apply DNS fixes.")
@click.pass_obj
def prepare_deployment(state: CliState, environment: str, fix: bool) -> None:
    """Ensure the hosting project exists and validate ENVIRONMENT."""
    target = Environment(environment)
    options = PrepareOptions(validate_dns=True, auto_fix_dns=fix, ensure_hosting=True)

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> PreparationResult:
        assert topology is not None
        return await EnvironmentPreparer(client, config, topology).prepare(target, options)

    result = execute(state, operation)
    emit(state, result.to_payload(), lambda: _render_preparation(result))
    finish(result.ready)


@cli.command("deployment-report")
@click.argument("environment", type=ENVIRONMENT_CHOICE)
@click.pass_obj
def deployment_report(state: CliState, environment: str) -> None:
    """Scored readiness report for ENVIRONMENT."""
    target = Environment(environment)

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> ReadinessReport:
        assert topology is not None
        return await ReadinessScorer(client, config, topology).score(target)

    report = execute(state, operation)

    def render() -> None:
        color = {
            ReadinessStatus.READY: "green",
            ReadinessStatus.ISSUES: "yellow",
            ReadinessStatus.FAILED: "red",
        }[report.status]
        click.secho(
            f"{target.value}: {report.score.percent}% ({report.status.value})", fg=color
        )
        for recommendation in report.score.recommendations:
            click.echo(f"  - {recommendation}")

    emit(state, report.to_payload(), render)
    finish(report.status == ReadinessStatus.READY)


# =============================================================================
# Health
# =============================================================================


@cli.command()
@click.pass_obj
def health(state: CliState) -> None:
    """Per-component health of DNS, hosting, compute and certificates."""

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> ComponentReport:
        assert topology is not None
        return await ComponentValidator(client, config, topology).check_all()

    report = execute(state, operation)

    def render() -> None:
        for name, result in report.components.items():
            click.secho(
                f"  {name:<8} {result.status.value:<10} ({result.count})",
                fg=STATUS_COLORS[result.status],
            )
        click.secho(f"Overall: {report.overall.value}", fg=STATUS_COLORS[report.overall])

    emit(state, report.to_payload(), render)
    finish(report.overall != ComponentStatus.UNHEALTHY)


@cli.command()
@click.pass_obj
def status(state: CliState) -> None:
    """Count zones, hosting projects, compute deployments and certificates."""

    async def operation(
        client: ResourceStateClient, config: Config, topology: Topology | None
    ) -> Inventory:
        return await inventory(client)

    counts = execute(state, operation, needs_topology=False)

    def render() -> None:
        for name, count in counts.to_payload()["resources"].items():
            click.echo(f"  {name:<14} {count}")

    emit(state, counts.to_payload(), render)
