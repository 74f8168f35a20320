"""Edge provider mock for integration testing.

In-memory stand-in for the provider API so reconciliation, health and
readiness flows run without network access.

Key Features:
- In-memory state for zones, DNS records, hosting projects, compute and certificates
- Call recording in issue order
- Error injection per method or per DNS record

Usage:
    from edge_mock import MockEdgeClient, MockEdgeState

    state = MockEdgeState()
    state.add_project("app", ["app.example.com"])
    client = MockEdgeClient(state)
    result = await DNSReconciler(client, config).validate_zone(desired, auto_fix=True)
    assert client.call_count("create_record") == len(desired)
"""

from .client import MockEdgeClient
from .context import MockEdgeContext
from .state import DEFAULT_ZONE_ID, MockEdgeState

__all__ = [
    "DEFAULT_ZONE_ID",
    "MockEdgeClient",
    "MockEdgeContext",
    "MockEdgeState",
]
