"""In-memory provider state for the edge mock."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from edgeops.models import (
    Certificate,
    ComputeDeployment,
    DesiredRecord,
    HostingProject,
    ObservedRecord,
    Zone,
)

DEFAULT_ZONE_ID = "0123456789abcdef0123456789abcdef"


@dataclass
class MockEdgeState:
    """Live resources as the provider would report them.

    Records keep insertion order, which is the order list_records returns.
    """

    zones: list[Zone] = field(
        default_factory=lambda: [Zone(id=DEFAULT_ZONE_ID, name="example.com", status="active")]
    )
    records: list[ObservedRecord] = field(default_factory=list)
    projects: dict[str, HostingProject] = field(default_factory=dict)
    deployments: list[ComputeDeployment] = field(default_factory=list)
    certificates: list[Certificate] = field(default_factory=list)

    def add_record(self, record: DesiredRecord, record_id: str | None = None) -> ObservedRecord:
        """Insert a record as the provider would store it."""
        observed = ObservedRecord(id=record_id or uuid.uuid4().hex, **record.to_write_payload())
        self.records.append(observed)
        return observed

    def replace_record(self, record_id: str, record: DesiredRecord) -> ObservedRecord:
        """Overwrite an existing record in place.

        Raises:
            KeyError: If no record has the id.
        """
        for index, existing in enumerate(self.records):
            if existing.id == record_id:
                data = record.to_write_payload()
                updated = ObservedRecord(id=record_id, **data)
                self.records[index] = updated
                return updated
        raise KeyError(record_id)

    def add_project(self, name: str, domains: list[str] | None = None) -> HostingProject:
        project = HostingProject(name=name, domains=domains or [])
        self.projects[name] = project
        return project

    def add_deployment(self, name: str) -> ComputeDeployment:
        deployment = ComputeDeployment(name=name)
        self.deployments.append(deployment)
        return deployment

    def add_certificate(self, hosts: list[str] | None = None) -> Certificate:
        certificate = Certificate(
            id=uuid.uuid4().hex, type="universal", status="active", hosts=hosts or []
        )
        self.certificates.append(certificate)
        return certificate
