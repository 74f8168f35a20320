"""Composite status policy.

Two fixed precedence rules fold independent checks into one verdict:

- ``aggregate``: unhealthy dominates degraded dominates healthy, regardless
  of which component produced it or in what order.
- ``aggregate_infrastructure``: the stricter infrastructure-wide rule. Small
  DNS drift (at most DNS_DRIFT_TOLERANCE issues) and missing certificates on
  an otherwise passing stack are tolerated as degraded; anything else that
  fails is unhealthy.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

# Largest number of DNS issues still considered "degraded" by the strict rule
DNS_DRIFT_TOLERANCE = 2


class ComponentStatus(str, Enum):
    """Ternary health verdict."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class ComponentResult:
    """Health of one subsystem derived from a single read."""

    status: ComponentStatus
    count: int

    @classmethod
    def from_count(cls, count: int, *, absent: ComponentStatus) -> ComponentResult:
        """Healthy when anything was observed, otherwise ``absent``."""
        return cls(status=ComponentStatus.HEALTHY if count > 0 else absent, count=count)

    def to_payload(self) -> dict[str, Any]:
        return {"status": self.status.value, "count": self.count}


def aggregate(statuses: Iterable[ComponentStatus]) -> ComponentStatus:
    """Fold component statuses with unhealthy > degraded > healthy precedence."""
    degraded = False
    for status in statuses:
        match status:
            case ComponentStatus.UNHEALTHY:
                return ComponentStatus.UNHEALTHY
            case ComponentStatus.DEGRADED:
                degraded = True
            case ComponentStatus.HEALTHY:
                pass
    return ComponentStatus.DEGRADED if degraded else ComponentStatus.HEALTHY


def aggregate_infrastructure(
    *,
    dns_valid: bool,
    dns_issue_count: int,
    pages_valid: bool,
    workers_valid: bool,
    ssl_valid: bool,
) -> ComponentStatus:
    """Strict infrastructure verdict.

    Args:
        dns_valid: DNS reconciliation found no issues.
        dns_issue_count: Number of DNS issues found.
        pages_valid: Hosting project exists with at least one domain.
        workers_valid: Every expected compute deployment exists.
        ssl_valid: At least one certificate is present.
    """
    if dns_valid and pages_valid and workers_valid and ssl_valid:
        return ComponentStatus.HEALTHY

    small_dns_drift = not dns_valid and dns_issue_count <= DNS_DRIFT_TOLERANCE
    only_ssl_missing = not ssl_valid and dns_valid and pages_valid and workers_valid
    if small_dns_drift or only_ssl_missing:
        return ComponentStatus.DEGRADED

    return ComponentStatus.UNHEALTHY
