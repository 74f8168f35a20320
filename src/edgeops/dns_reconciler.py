"""DNS reconciliation: diff desired records against live zone state.

Classification of each desired record, evaluated in order:
1. No observed record with the same (name, type) -> MISSING
2. Matched, but content, proxied, or a declared ttl differ -> INCORRECT
3. Otherwise no issue

Observed records absent from the desired set are never flagged. EXTRA exists
in the taxonomy but this algorithm does not raise it, so untracked records
are left alone.

With auto-fix, corrective writes are issued strictly sequentially with a
flat pacing delay after each one. A failed write is logged and skipped; the
returned issue list is always the pre-fix classification and ``fixed`` only
means a fix was attempted.

No locking: two concurrent reconciliations of one zone can race on stale
snapshots. Callers serialize per zone.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .client import ProviderError, ResourceStateClient
from .config import Config
from .models import DesiredRecord, ObservedRecord

logger = logging.getLogger(__name__)


class IssueKind(str, Enum):
    """Discrepancy classes between desired and observed records."""

    MISSING = "missing"
    INCORRECT = "incorrect"
    EXTRA = "extra"


class IssueAction(str, Enum):
    """Corrective action attached to an issue."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    REQUIRES_CREATION = "REQUIRES_CREATION"
    REQUIRES_UPDATE = "REQUIRES_UPDATE"


@dataclass(frozen=True)
class Issue:
    """One discrepancy found in a single reconciliation pass."""

    kind: IssueKind
    action: IssueAction
    expected: DesiredRecord | None = None
    observed: ObservedRecord | None = None

    @property
    def name(self) -> str:
        source = self.expected or self.observed
        return source.name if source else ""

    @property
    def record_type(self) -> str:
        source = self.expected or self.observed
        return source.type if source else ""

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind.value,
            "action": self.action.value,
            "name": self.name,
            "type": self.record_type,
        }
        if self.expected is not None:
            payload["expected"] = self.expected.model_dump(exclude_none=True)
        if self.observed is not None:
            payload["observed"] = self.observed.model_dump()
        return payload


@dataclass(frozen=True)
class WriteOutcome:
    """Result of one attempted corrective write."""

    record: DesiredRecord
    action: IssueAction
    success: bool
    record_id: str | None = None
    error: str | None = None


@dataclass
class DNSReconcileResult:
    """Result of a single reconciliation pass."""

    issues: list[Issue] = field(default_factory=list)
    fixed: bool = False
    writes: list[WriteOutcome] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        """True when the pre-fix snapshot had no issues."""
        return not self.issues

    @property
    def failed_writes(self) -> list[WriteOutcome]:
        return [w for w in self.writes if not w.success]

    def to_payload(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": [issue.to_payload() for issue in self.issues],
            "fixed": self.fixed,
        }


def find_match(record: DesiredRecord, observed: Sequence[ObservedRecord]) -> ObservedRecord | None:
    """First observed record with the same (name, type), in provider order."""
    return next((o for o in observed if o.key == record.key), None)


def needs_update(record: DesiredRecord, match: ObservedRecord) -> bool:
    """Whether a matched record deviates from the desired values.

    An unset ``proxied`` means not proxied. An unset ``ttl`` is not compared.
    """
    if match.content != record.content:
        return True
    if match.proxied != bool(record.proxied):
        return True
    return record.ttl is not None and match.ttl != record.ttl


def plan(
    desired: Sequence[DesiredRecord],
    observed: Sequence[ObservedRecord],
    auto_fix: bool = False,
) -> list[Issue]:
    """Classify every desired record. Pure; no I/O.

    Each desired record yields at most one issue.
    """
    issues: list[Issue] = []

    for record in desired:
        match = find_match(record, observed)

        if match is None:
            issues.append(
                Issue(
                    kind=IssueKind.MISSING,
                    action=IssueAction.CREATE if auto_fix else IssueAction.REQUIRES_CREATION,
                    expected=record,
                )
            )
        elif needs_update(record, match):
            issues.append(
                Issue(
                    kind=IssueKind.INCORRECT,
                    action=IssueAction.UPDATE if auto_fix else IssueAction.REQUIRES_UPDATE,
                    expected=record,
                    observed=match,
                )
            )

    return issues


class DNSReconciler:
    """Computes and optionally applies corrective DNS writes for one zone."""

    def __init__(self, client: ResourceStateClient, config: Config) -> None:
        self._client = client
        self._config = config

    async def validate_zone(
        self,
        desired: Sequence[DesiredRecord],
        auto_fix: bool = False,
        zone_id: str | None = None,
    ) -> DNSReconcileResult:
        """Fetch the zone's live records and reconcile against them.

        Raises:
            ProviderError: If the record listing fails. Nothing is classified
                from a failed read.
        """
        logger.info(
            "Validating DNS records",
            extra={"zone_id": zone_id or self._config.zone_id, "desired_count": len(desired)},
        )
        observed = await self._client.list_records(zone_id)
        return await self.reconcile(desired, observed, auto_fix=auto_fix, zone_id=zone_id)

    async def reconcile(
        self,
        desired: Sequence[DesiredRecord],
        observed: Sequence[ObservedRecord],
        auto_fix: bool = False,
        zone_id: str | None = None,
    ) -> DNSReconcileResult:
        """Diff desired against observed and optionally apply fixes.

        Args:
            desired: Declared records.
            observed: Live records fetched for this call.
            auto_fix: Issue create/update writes for each issue.
            zone_id: Zone for writes (defaults to the configured zone).

        Returns:
            DNSReconcileResult whose issues reflect the pre-fix snapshot.
        """
        issues = plan(desired, observed, auto_fix=auto_fix)
        result = DNSReconcileResult(issues=issues, fixed=auto_fix and len(issues) > 0)

        if auto_fix:
            result.writes = await self._apply(issues, zone_id)

        logger.info(
            "DNS validation complete",
            extra={
                "valid": result.valid,
                "issue_count": len(issues),
                "fixed": result.fixed,
                "failed_writes": len(result.failed_writes),
            },
        )
        return result

    async def bulk_create(
        self, records: Sequence[DesiredRecord], zone_id: str | None = None
    ) -> list[WriteOutcome]:
        """Create records one by one with pacing, continuing past failures."""
        outcomes: list[WriteOutcome] = []
        for record in records:
            outcomes.append(
                await self._write(
                    record,
                    IssueAction.CREATE,
                    lambda r=record: self._client.create_record(r, zone_id),
                )
            )

        logger.info(
            "Bulk record creation complete",
            extra={
                "requested": len(records),
                "created": sum(1 for o in outcomes if o.success),
            },
        )
        return outcomes

    async def _apply(self, issues: Sequence[Issue], zone_id: str | None) -> list[WriteOutcome]:
        outcomes: list[WriteOutcome] = []

        for issue in issues:
            # SAFETY: plan() always sets expected; observed is set for INCORRECT
            assert issue.expected is not None
            record = issue.expected

            match issue.kind:
                case IssueKind.MISSING:
                    outcome = await self._write(
                        record,
                        IssueAction.CREATE,
                        lambda r=record: self._client.create_record(r, zone_id),
                    )
                case IssueKind.INCORRECT:
                    assert issue.observed is not None
                    record_id = issue.observed.id
                    outcome = await self._write(
                        record,
                        IssueAction.UPDATE,
                        lambda r=record, rid=record_id: self._client.update_record(
                            rid, r, zone_id
                        ),
                    )
                case IssueKind.EXTRA:
                    continue

            outcomes.append(outcome)

        return outcomes

    async def _write(
        self,
        record: DesiredRecord,
        action: IssueAction,
        call: Callable[[], Awaitable[ObservedRecord]],
    ) -> WriteOutcome:
        """Attempt one write, capture its outcome, then pace."""
        try:
            written = await call()
            outcome = WriteOutcome(
                record=record, action=action, success=True, record_id=written.id
            )
            logger.info(
                "DNS record written",
                extra={"action": action.value, "name": record.name, "type": record.type},
            )
        except ProviderError as e:
            outcome = WriteOutcome(record=record, action=action, success=False, error=str(e))
            logger.error(
                "DNS record write failed",
                extra={
                    "action": action.value,
                    "name": record.name,
                    "type": record.type,
                    "error": str(e),
                },
            )

        await asyncio.sleep(self._config.write_pacing_seconds)
        return outcome
