"""Tests for component and infrastructure health checks."""

import dataclasses

import pytest
from edge_mock import MockEdgeClient, MockEdgeState

from edgeops.client import AuthenticationError, TransportError
from edgeops.config import Config
from edgeops.health import ComponentValidator, InfrastructureValidator, inventory
from edgeops.models import DesiredRecord, Environment, Topology
from edgeops.status import ComponentStatus


class TestComponentValidator:
    """Tests for ComponentValidator.check_all."""

    @pytest.mark.asyncio
    async def test_all_healthy(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        validator = ComponentValidator(MockEdgeClient(healthy_state), config, topology)
        report = await validator.check_all()

        assert report.overall == ComponentStatus.HEALTHY
        assert report.dns.count == 5
        assert report.environments[Environment.PRODUCTION].frontend is True
        assert report.environments[Environment.STAGING].api is True

    @pytest.mark.asyncio
    async def test_no_certificates_is_degraded(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        healthy_state.certificates.clear()

        validator = ComponentValidator(MockEdgeClient(healthy_state), config, topology)
        report = await validator.check_all()

        assert report.ssl.status == ComponentStatus.DEGRADED
        assert report.ssl.count == 0
        assert report.overall == ComponentStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_no_compute_is_unhealthy(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        healthy_state.deployments.clear()

        validator = ComponentValidator(MockEdgeClient(healthy_state), config, topology)
        report = await validator.check_all()

        assert report.workers.status == ComponentStatus.UNHEALTHY
        assert report.overall == ComponentStatus.UNHEALTHY
        assert report.environments[Environment.PRODUCTION].api is False

    @pytest.mark.asyncio
    async def test_required_read_failure_propagates(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        """A failing hosting-project list fails the whole check."""
        client = MockEdgeClient(healthy_state)
        client.fail("list_hosting_projects", TransportError("connection reset"))

        with pytest.raises(TransportError):
            await ComponentValidator(client, config, topology).check_all()

    @pytest.mark.asyncio
    async def test_optional_read_failure_is_soft(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        """A failing certificate list still yields a full report."""
        client = MockEdgeClient(healthy_state)
        client.fail("list_certificates", AuthenticationError("missing SSL scope", 403))

        report = await ComponentValidator(client, config, topology).check_all()

        assert report.ssl.count == 0
        assert report.ssl.status == ComponentStatus.DEGRADED
        assert report.pages.status == ComponentStatus.HEALTHY
        assert set(report.components) == {"dns", "pages", "workers", "ssl"}

    @pytest.mark.asyncio
    async def test_dns_read_failure_is_soft(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        client = MockEdgeClient(healthy_state)
        client.fail("list_records", TransportError("timeout"))

        report = await ComponentValidator(client, config, topology).check_all()

        assert report.dns.status == ComponentStatus.UNHEALTHY
        assert report.dns.count == 0

    @pytest.mark.asyncio
    async def test_payload(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        validator = ComponentValidator(MockEdgeClient(healthy_state), config, topology)
        report = await validator.check_all()

        payload = report.to_payload()

        assert payload["status"] == "healthy"
        assert payload["components"]["ssl"] == {"status": "healthy", "count": 1}
        assert payload["environments"]["production"] == {"frontend": True, "api": True}
        assert payload["timestamp"].endswith("Z")


class TestInventory:
    """Tests for inventory."""

    @pytest.mark.asyncio
    async def test_counts(self, healthy_state: MockEdgeState) -> None:
        counts = await inventory(MockEdgeClient(healthy_state))

        assert counts.to_payload() == {
            "resources": {"zones": 1, "pagesProjects": 1, "workers": 2, "certificates": 1}
        }

    @pytest.mark.asyncio
    async def test_certificate_failure_counts_zero(self, healthy_state: MockEdgeState) -> None:
        client = MockEdgeClient(healthy_state)
        client.fail("list_certificates", TransportError("down"))

        counts = await inventory(client)

        assert counts.certificates == 0
        assert counts.zones == 1


class TestInfrastructureValidator:
    """Tests for the strict infrastructure validation."""

    @pytest.mark.asyncio
    async def test_healthy(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        report = await InfrastructureValidator(
            MockEdgeClient(healthy_state), config, topology
        ).validate()

        assert report.overall == ComponentStatus.HEALTHY
        assert report.to_payload()["pages"] == {
            "valid": True,
            "domains": ["example.com", "www.example.com"],
        }

    @pytest.mark.asyncio
    async def test_small_dns_drift_degraded(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        healthy_state.records.pop()

        report = await InfrastructureValidator(
            MockEdgeClient(healthy_state), config, topology
        ).validate()

        assert report.dns.valid is False
        assert len(report.dns.issues) == 1
        assert report.overall == ComponentStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_project_without_domains_unhealthy(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        healthy_state.add_project(topology.hosting_project, [])

        report = await InfrastructureValidator(
            MockEdgeClient(healthy_state), config, topology
        ).validate()

        assert report.pages_valid is False
        assert report.overall == ComponentStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_missing_worker_reported(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        healthy_state.deployments.pop()

        report = await InfrastructureValidator(
            MockEdgeClient(healthy_state), config, topology
        ).validate()

        assert report.workers_valid is False
        assert report.missing_workers == ["app-api-staging"]
        assert report.overall == ComponentStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_only_certificates_missing_degraded(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        client = MockEdgeClient(healthy_state)
        client.fail("list_certificates", TransportError("down"))

        report = await InfrastructureValidator(client, config, topology).validate()

        assert report.ssl_valid is False
        assert report.overall == ComponentStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_auto_fix_repairs_dns(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        healthy_state.records.clear()
        healthy_state.add_record(
            DesiredRecord(name="stray.example.com", type="A", content="192.0.2.1")
        )
        client = MockEdgeClient(healthy_state)

        report = await InfrastructureValidator(client, config, topology).validate(auto_fix=True)

        assert len(report.dns.issues) == 5
        assert report.dns.fixed is True
        assert report.overall == ComponentStatus.UNHEALTHY
        assert client.call_count("create_record") == 5
        assert len(healthy_state.records) == 6

    @pytest.mark.asyncio
    async def test_required_read_failure_lets_dns_writes_finish(
        self, config: Config, topology: Topology, healthy_state: MockEdgeState
    ) -> None:
        """A failing hosting list does not cut the DNS write loop short."""
        healthy_state.records.clear()
        client = MockEdgeClient(healthy_state)
        client.fail("list_hosting_projects", TransportError("connection reset"))
        paced = dataclasses.replace(config, write_pacing_seconds=0.01)

        with pytest.raises(TransportError):
            await InfrastructureValidator(client, paced, topology).validate(auto_fix=True)

        assert client.call_count("create_record") == 5
        assert len(healthy_state.records) == 5
