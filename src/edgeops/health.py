"""Component health checks over live provider state.

ComponentValidator issues its reads concurrently through gather_probes:

- fail-hard: zone list, hosting-project list, compute-deployment list
- fail-soft: certificate list, DNS record list (empty on failure)

Each component is scored from the size of its read alone; the overall verdict
uses the precedence fold in ``status.aggregate``.

InfrastructureValidator is the stricter infrastructure-wide check. It runs DNS
reconciliation against the full topology alongside the same reads and applies
``status.aggregate_infrastructure``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .client import ResourceStateClient
from .config import Config
from .dns_reconciler import DNSReconciler, DNSReconcileResult
from .gather import Probe, gather_probes
from .models import Certificate, ComputeDeployment, Environment, HostingProject, Topology
from .status import (
    ComponentResult,
    ComponentStatus,
    aggregate,
    aggregate_infrastructure,
)

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _find_project(projects: list[HostingProject], name: str) -> HostingProject | None:
    return next((p for p in projects if p.name == name), None)


def _missing_compute(deployments: list[ComputeDeployment], expected: list[str]) -> list[str]:
    deployed = {d.name for d in deployments}
    return [name for name in expected if name not in deployed]


@dataclass(frozen=True)
class EnvironmentPresence:
    """Whether an environment's frontend and API are deployed.

    Informational only; never feeds the component statuses.
    """

    frontend: bool
    api: bool

    def to_payload(self) -> dict[str, bool]:
        return {"frontend": self.frontend, "api": self.api}


@dataclass(frozen=True)
class ComponentReport:
    """Per-component results of one health check."""

    dns: ComponentResult
    pages: ComponentResult
    workers: ComponentResult
    ssl: ComponentResult
    environments: dict[Environment, EnvironmentPresence] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def components(self) -> dict[str, ComponentResult]:
        return {"dns": self.dns, "pages": self.pages, "workers": self.workers, "ssl": self.ssl}

    @property
    def overall(self) -> ComponentStatus:
        return aggregate(result.status for result in self.components.values())

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": self.overall.value,
            "timestamp": self.timestamp,
            "components": {name: result.to_payload() for name, result in self.components.items()},
            "environments": {env.value: p.to_payload() for env, p in self.environments.items()},
        }


@dataclass(frozen=True)
class Inventory:
    """Resource counts across the account and zone."""

    zones: int
    hosting_projects: int
    compute_deployments: int
    certificates: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "resources": {
                "zones": self.zones,
                "pagesProjects": self.hosting_projects,
                "workers": self.compute_deployments,
                "certificates": self.certificates,
            }
        }


async def inventory(client: ResourceStateClient) -> Inventory:
    """Count resources of each kind. Certificates are fail-soft."""
    results = await gather_probes(
        [
            Probe("zones", client.list_zones),
            Probe("pages", client.list_hosting_projects),
            Probe("workers", client.list_compute_deployments),
            Probe("ssl", client.list_certificates, required=False),
        ]
    )
    return Inventory(
        zones=len(results["zones"]),
        hosting_projects=len(results["pages"]),
        compute_deployments=len(results["workers"]),
        certificates=len(results["ssl"]),
    )


class ComponentValidator:
    """Concurrent per-component health check."""

    def __init__(self, client: ResourceStateClient, config: Config, topology: Topology) -> None:
        self._client = client
        self._config = config
        self._topology = topology

    async def check_all(self) -> ComponentReport:
        """Probe every component once and score each independently.

        Raises:
            ProviderError: If a fail-hard read fails. No partial report is built.
        """
        results = await gather_probes(
            [
                Probe("zones", self._client.list_zones),
                Probe("pages", self._client.list_hosting_projects),
                Probe("workers", self._client.list_compute_deployments),
                Probe("ssl", self._client.list_certificates, required=False),
                Probe("dns", self._client.list_records, required=False),
            ]
        )

        projects: list[HostingProject] = results["pages"]
        deployments: list[ComputeDeployment] = results["workers"]
        certificates: list[Certificate] = results["ssl"]

        report = ComponentReport(
            dns=ComponentResult.from_count(len(results["dns"]), absent=ComponentStatus.UNHEALTHY),
            pages=ComponentResult.from_count(len(projects), absent=ComponentStatus.UNHEALTHY),
            workers=ComponentResult.from_count(
                len(deployments), absent=ComponentStatus.UNHEALTHY
            ),
            ssl=ComponentResult.from_count(len(certificates), absent=ComponentStatus.DEGRADED),
            environments=self._presence(projects, deployments),
        )

        logger.info(
            "Health check complete",
            extra={
                "overall": report.overall.value,
                "zones": len(results["zones"]),
                **{name: r.status.value for name, r in report.components.items()},
            },
        )
        return report

    def _presence(
        self, projects: list[HostingProject], deployments: list[ComputeDeployment]
    ) -> dict[Environment, EnvironmentPresence]:
        frontend = _find_project(projects, self._topology.hosting_project) is not None
        return {
            env: EnvironmentPresence(
                frontend=frontend,
                api=not _missing_compute(deployments, spec.compute),
            )
            for env, spec in self._topology.environments.items()
        }


@dataclass(frozen=True)
class InfrastructureReport:
    """Result of the strict infrastructure-wide validation."""

    dns: DNSReconcileResult
    pages_valid: bool
    pages_domains: list[str]
    workers_valid: bool
    workers: list[str]
    missing_workers: list[str]
    ssl_valid: bool
    certificates: int
    overall: ComponentStatus

    def to_payload(self) -> dict[str, Any]:
        return {
            "dns": {
                "valid": self.dns.valid,
                "issues": [issue.to_payload() for issue in self.dns.issues],
                "fixed": self.dns.fixed,
            },
            "pages": {"valid": self.pages_valid, "domains": self.pages_domains},
            "workers": {
                "valid": self.workers_valid,
                "workers": self.workers,
                "missing": self.missing_workers,
            },
            "ssl": {"valid": self.ssl_valid, "certificates": self.certificates},
            "overall": self.overall.value,
        }


class InfrastructureValidator:
    """Strict validation of the whole topology."""

    def __init__(self, client: ResourceStateClient, config: Config, topology: Topology) -> None:
        self._client = client
        self._config = config
        self._topology = topology
        self._reconciler = DNSReconciler(client, config)

    async def validate(self, auto_fix: bool = False) -> InfrastructureReport:
        """Reconcile DNS and check hosting, compute and certificates.

        Args:
            auto_fix: Apply corrective DNS writes while validating.

        Raises:
            ProviderError: If DNS reconciliation or a fail-hard read fails.
        """
        desired = self._topology.all_records()
        expected_compute = self._topology.all_compute()

        results = await gather_probes(
            [
                Probe("dns", lambda: self._reconciler.validate_zone(desired, auto_fix=auto_fix)),
                Probe("pages", self._client.list_hosting_projects),
                Probe("workers", self._client.list_compute_deployments),
                Probe("ssl", self._client.list_certificates, required=False),
            ]
        )

        dns: DNSReconcileResult = results["dns"]
        project = _find_project(results["pages"], self._topology.hosting_project)
        deployments: list[ComputeDeployment] = results["workers"]
        certificates: list[Certificate] = results["ssl"]

        pages_valid = project is not None and len(project.domains) > 0
        missing = _missing_compute(deployments, expected_compute)
        workers_valid = not missing
        ssl_valid = len(certificates) > 0

        overall = aggregate_infrastructure(
            dns_valid=dns.valid,
            dns_issue_count=len(dns.issues),
            pages_valid=pages_valid,
            workers_valid=workers_valid,
            ssl_valid=ssl_valid,
        )

        logger.info(
            "Infrastructure validation complete",
            extra={
                "overall": overall.value,
                "dns_valid": dns.valid,
                "dns_issues": len(dns.issues),
                "pages_valid": pages_valid,
                "workers_valid": workers_valid,
                "ssl_valid": ssl_valid,
            },
        )

        return InfrastructureReport(
            dns=dns,
            pages_valid=pages_valid,
            pages_domains=list(project.domains) if project else [],
            workers_valid=workers_valid,
            workers=[d.name for d in deployments],
            missing_workers=missing,
            ssl_valid=ssl_valid,
            certificates=len(certificates),
            overall=overall,
        )
