"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for edge_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

import pytest  # noqa: E402
from edge_mock import DEFAULT_ZONE_ID, MockEdgeClient, MockEdgeState  # noqa: E402

from edgeops.config import Config  # noqa: E402
from edgeops.models import Topology  # noqa: E402

TEST_ACCOUNT_ID = "fedcba9876543210fedcba9876543210"

TOPOLOGY_DATA = {
    "zone": "example.com",
    "hostingProject": "app",
    "environments": {
        "production": {
            "compute": ["app-api"],
            "records": [
                {
                    "name": "example.com",
                    "type": "CNAME",
                    "content": "app.pages.dev",
                    "proxied": True,
                    "ttl": 1,
                },
                {
                    "name": "www.example.com",
                    "type": "CNAME",
                    "content": "app.pages.dev",
                    "proxied": True,
                    "ttl": 1,
                },
                {
                    "name": "api.example.com",
                    "type": "CNAME",
                    "content": "app-api.workers.dev",
                    "proxied": True,
                    "ttl": 1,
                },
            ],
        },
        "staging": {
            "compute": ["app-api-staging"],
            "records": [
                {
                    "name": "staging.example.com",
                    "type": "CNAME",
                    "content": "staging.app.pages.dev",
                    "proxied": True,
                    "ttl": 1,
                },
                {
                    "name": "api-staging.example.com",
                    "type": "CNAME",
                    "content": "app-api-staging.workers.dev",
                    "proxied": True,
                    "ttl": 1,
                },
            ],
        },
    },
}


@pytest.fixture
def config() -> Config:
    """Valid configuration with write pacing disabled."""
    return Config(
        account_id=TEST_ACCOUNT_ID,
        api_token="test-token",
        zone_id=DEFAULT_ZONE_ID,
        write_pacing_seconds=0,
    )


@pytest.fixture
def topology() -> Topology:
    return Topology.model_validate(TOPOLOGY_DATA)


@pytest.fixture
def state() -> MockEdgeState:
    return MockEdgeState()


@pytest.fixture
def healthy_state(topology: Topology) -> MockEdgeState:
    """Provider state matching the topology exactly."""
    state = MockEdgeState()
    for record in topology.all_records():
        state.add_record(record)
    state.add_project(topology.hosting_project, ["example.com", "www.example.com"])
    for name in topology.all_compute():
        state.add_deployment(name)
    state.add_certificate(["example.com", "*.example.com"])
    return state


@pytest.fixture
def client(state: MockEdgeState) -> MockEdgeClient:
    return MockEdgeClient(state)
