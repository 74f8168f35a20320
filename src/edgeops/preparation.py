"""Environment preparation ahead of a deployment.

Three steps run sequentially and independently; a failure in one is recorded
as an issue and the next step still runs:

1. Hosting project: fetch it, optionally create it when absent.
2. Compute deployments: every expected name should be listed.
3. DNS (optional): reconcile the environment's records, optionally fixing.

There is no rollback. A hosting project created in step 1 stays even if a
later step fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .client import NotFoundError, ProviderError, ResourceStateClient
from .config import Config, ConfigurationError
from .dns_reconciler import DNSReconciler, DNSReconcileResult
from .models import DesiredRecord, Environment, Topology

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrepareOptions:
    """Which steps run and whether they may write."""

    validate_dns: bool = True
    auto_fix_dns: bool = False
    ensure_hosting: bool = False


@dataclass
class PreparationResult:
    """Outcome of preparing one environment."""

    environment: Environment
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    hosting_exists: bool = False
    hosting_domains: list[str] = field(default_factory=list)
    compute_listed: bool = False
    compute_names: list[str] = field(default_factory=list)
    missing_compute: list[str] = field(default_factory=list)
    dns: DNSReconcileResult | None = None
    ready: bool = False

    @property
    def dns_valid(self) -> bool:
        return self.dns is not None and self.dns.valid

    @property
    def compute_complete(self) -> bool:
        return self.compute_listed and not self.missing_compute

    def to_payload(self) -> dict[str, Any]:
        dns_issues = [issue.to_payload() for issue in self.dns.issues] if self.dns else []
        return {
            "ready": self.ready,
            "environment": self.environment.value,
            "issues": self.issues,
            "warnings": self.warnings,
            "resources": {
                "pages": {"exists": self.hosting_exists, "domains": self.hosting_domains},
                "workers": {"exists": self.compute_complete, "names": self.compute_names},
                "dns": {
                    "valid": self.dns_valid,
                    "issues": dns_issues,
                },
            },
        }


class EnvironmentPreparer:
    """Checks, and optionally provisions, what an environment needs before deploy."""

    def __init__(self, client: ResourceStateClient, config: Config, topology: Topology) -> None:
        self._client = client
        self._config = config
        self._topology = topology
        self._reconciler = DNSReconciler(client, config)

    async def prepare(
        self, environment: Environment, options: PrepareOptions | None = None
    ) -> PreparationResult:
        """Run the preparation steps for one environment.

        ``ready`` holds when no step recorded an issue and, if DNS validation
        was requested, the DNS snapshot had no issues.

        Raises:
            ValueError: If the topology does not declare the environment.
        """
        options = options or PrepareOptions()
        spec = self._topology.environment(environment)
        result = PreparationResult(environment=environment)

        logger.info(
            "Preparing environment",
            extra={
                "environment": environment.value,
                "validate_dns": options.validate_dns,
                "auto_fix_dns": options.auto_fix_dns,
                "ensure_hosting": options.ensure_hosting,
            },
        )

        await self._check_hosting(result, options)
        await self._check_compute(result, spec.compute)
        if options.validate_dns:
            await self._check_dns(result, spec.records, options)

        result.ready = not result.issues and (result.dns_valid if options.validate_dns else True)

        logger.info(
            "Environment preparation complete",
            extra={
                "environment": environment.value,
                "ready": result.ready,
                "issue_count": len(result.issues),
                "warning_count": len(result.warnings),
            },
        )
        return result

    async def _check_hosting(self, result: PreparationResult, options: PrepareOptions) -> None:
        name = self._topology.hosting_project
        try:
            project = await self._client.get_hosting_project(name)
        except NotFoundError:
            if not options.ensure_hosting:
                result.issues.append(f"Hosting project '{name}' does not exist")
                return
            try:
                project = await self._client.create_hosting_project(name)
            except ProviderError as e:
                result.issues.append(f"Failed to create hosting project '{name}': {e}")
                return
            logger.info("Created hosting project", extra={"project": name})
        except ProviderError as e:
            result.issues.append(f"Failed to fetch hosting project '{name}': {e}")
            return

        result.hosting_exists = True
        result.hosting_domains = list(project.domains)

    async def _check_compute(self, result: PreparationResult, expected: list[str]) -> None:
        try:
            deployments = await self._client.list_compute_deployments()
        except ProviderError as e:
            result.issues.append(f"Failed to list compute deployments: {e}")
            return

        deployed = {d.name for d in deployments}
        result.compute_listed = True
        result.compute_names = [d.name for d in deployments]
        result.missing_compute = [name for name in expected if name not in deployed]

        if result.missing_compute:
            result.warnings.append(
                f"Missing compute deployments: {', '.join(result.missing_compute)}"
            )

    async def _check_dns(
        self, result: PreparationResult, records: list[DesiredRecord], options: PrepareOptions
    ) -> None:
        try:
            dns = await self._reconciler.validate_zone(records, auto_fix=options.auto_fix_dns)
        except (ProviderError, ConfigurationError) as e:
            result.issues.append(f"DNS validation failed: {e}")
            return

        result.dns = dns
        if not dns.valid and not options.auto_fix_dns:
            result.warnings.append(
                f"DNS issues found (use --fix to auto-repair): {len(dns.issues)} issues"
            )
