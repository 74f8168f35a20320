"""Deployment readiness scoring.

Four equally weighted checks, in this order: DNS validity, hosting project
existence, compute completeness, certificate health. The score is the rounded
share of passing checks; fixed thresholds map it onto ready/issues/failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .client import ResourceStateClient
from .config import Config
from .health import ComponentReport, ComponentValidator, utc_timestamp
from .models import Environment, Topology
from .preparation import EnvironmentPreparer, PrepareOptions
from .status import ComponentStatus

logger = logging.getLogger(__name__)

# Score thresholds (percent)
READY_THRESHOLD = 100
ISSUES_THRESHOLD = 75

# One remediation hint per failing check
DNS_RECOMMENDATION = "Run DNS validation with auto-fix: edgeops validate-dns --fix"
HOSTING_RECOMMENDATION = "Ensure the static hosting project exists before deployment"
COMPUTE_RECOMMENDATION = (
    "Deploy compute functions before static hosting to guarantee API availability"
)
CERTIFICATE_RECOMMENDATION = "Check TLS certificate status and renew if necessary"


class ReadinessStatus(str, Enum):
    """Ternary deployment verdict."""

    READY = "ready"
    ISSUES = "issues"
    FAILED = "failed"


@dataclass(frozen=True)
class ReadinessChecks:
    """Pass/fail inputs to the readiness score."""

    dns_valid: bool
    hosting_exists: bool
    compute_complete: bool
    certificates_healthy: bool

    def ordered(self) -> list[tuple[bool, str]]:
        """Checks in scoring order, each with its recommendation."""
        return [
            (self.dns_valid, DNS_RECOMMENDATION),
            (self.hosting_exists, HOSTING_RECOMMENDATION),
            (self.compute_complete, COMPUTE_RECOMMENDATION),
            (self.certificates_healthy, CERTIFICATE_RECOMMENDATION),
        ]

    def to_payload(self) -> dict[str, bool]:
        return {
            "dns": self.dns_valid,
            "pages": self.hosting_exists,
            "workers": self.compute_complete,
            "ssl": self.certificates_healthy,
        }


@dataclass(frozen=True)
class ReadinessScore:
    percent: int
    status: ReadinessStatus
    recommendations: list[str]


def score_checks(checks: ReadinessChecks) -> ReadinessScore:
    """Score a set of checks. Pure.

    Passing an additional check never lowers the percentage or the verdict.
    """
    ordered = checks.ordered()
    passed = sum(1 for ok, _ in ordered if ok)
    percent = round(passed / len(ordered) * 100)

    if percent >= READY_THRESHOLD:
        status = ReadinessStatus.READY
    elif percent >= ISSUES_THRESHOLD:
        status = ReadinessStatus.ISSUES
    else:
        status = ReadinessStatus.FAILED

    return ReadinessScore(
        percent=percent,
        status=status,
        recommendations=[hint for ok, hint in ordered if not ok],
    )


@dataclass(frozen=True)
class ReadinessReport:
    """Readiness of one environment for deployment."""

    environment: Environment
    checks: ReadinessChecks
    score: ReadinessScore
    components: ComponentReport
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def status(self) -> ReadinessStatus:
        return self.score.status

    def to_payload(self) -> dict[str, Any]:
        return {
            "environment": self.environment.value,
            "timestamp": self.timestamp,
            "readinessPercent": self.score.percent,
            "status": self.score.status.value,
            "checks": self.checks.to_payload(),
            "issues": self.issues,
            "warnings": self.warnings,
            "recommendations": self.score.recommendations,
            "components": self.components.to_payload(),
        }


class ReadinessScorer:
    """Builds a readiness report from a read-only preparation pass and a health check."""

    def __init__(self, client: ResourceStateClient, config: Config, topology: Topology) -> None:
        self._preparer = EnvironmentPreparer(client, config, topology)
        self._validator = ComponentValidator(client, config, topology)

    async def score(self, environment: Environment) -> ReadinessReport:
        """Score an environment without writing anything.

        Raises:
            ValueError: If the topology does not declare the environment.
            ProviderError: If a fail-hard health read fails.
        """
        preparation = await self._preparer.prepare(
            environment,
            PrepareOptions(validate_dns=True, auto_fix_dns=False, ensure_hosting=False),
        )
        components = await self._validator.check_all()

        checks = ReadinessChecks(
            dns_valid=preparation.dns_valid,
            hosting_exists=preparation.hosting_exists,
            compute_complete=preparation.compute_complete,
            certificates_healthy=components.ssl.status == ComponentStatus.HEALTHY,
        )
        score = score_checks(checks)

        logger.info(
            "Readiness scored",
            extra={
                "environment": environment.value,
                "readiness_percent": score.percent,
                "status": score.status.value,
            },
        )

        return ReadinessReport(
            environment=environment,
            checks=checks,
            score=score,
            components=components,
            issues=list(preparation.issues),
            warnings=list(preparation.warnings),
        )
