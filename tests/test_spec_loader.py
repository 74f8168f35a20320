"""Tests for topology file loading."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from conftest import TOPOLOGY_DATA

from edgeops.models import Environment
from edgeops.spec_loader import SpecLoadError, load_topology


class TestLoadTopology:
    """Tests for load_topology."""

    def test_flat_file(self, tmp_path: Path) -> None:
        path = tmp_path / "topology.yaml"
        path.write_text(yaml.safe_dump(TOPOLOGY_DATA))

        topology = load_topology(path)

        assert topology.hosting_project == "app"
        assert set(topology.environments) == {Environment.PRODUCTION, Environment.STAGING}

    def test_wrapped_file(self, tmp_path: Path) -> None:
        """Test the apiVersion/kind/spec wrapper."""
        path = tmp_path / "topology.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "apiVersion": "edgeops/v1",
                    "kind": "Topology",
                    "metadata": {"name": "app"},
                    "spec": TOPOLOGY_DATA,
                }
            )
        )

        topology = load_topology(path)

        assert topology.zone == "example.com"
        assert len(topology.all_records()) == 5

    def test_example_file_loads(self) -> None:
        """The shipped example must stay valid."""
        path = Path(__file__).parent.parent / "topology.example.yaml"

        topology = load_topology(path)

        assert topology.compute_for(Environment.PRODUCTION) == ["example-app-api"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecLoadError) as exc_info:
            load_topology(tmp_path / "absent.yaml")

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "topology.yaml"
        path.write_text("environments: [unclosed")

        with pytest.raises(SpecLoadError) as exc_info:
            load_topology(path)

        assert "Invalid YAML" in str(exc_info.value)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "topology.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(SpecLoadError) as exc_info:
            load_topology(path)

        assert "mapping" in str(exc_info.value)

    def test_validation_errors_listed(self, tmp_path: Path) -> None:
        """Test that each validation error gets its own line with its location."""
        path = tmp_path / "topology.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "environments": {
                        "production": {"records": [{"name": "a", "type": "BOGUS", "content": "x"}]}
                    }
                }
            )
        )

        with pytest.raises(SpecLoadError) as exc_info:
            load_topology(path)

        message = str(exc_info.value)
        assert "  - hostingProject:" in message
        assert "environments.production.records.0.type" in message

    def test_size_limit(self, tmp_path: Path) -> None:
        path = tmp_path / "topology.yaml"
        path.write_text(yaml.safe_dump(TOPOLOGY_DATA))

        with patch("edgeops.spec_loader.MAX_TOPOLOGY_FILE_SIZE_BYTES", 10):
            with pytest.raises(SpecLoadError) as exc_info:
                load_topology(path)

        assert "maximum size" in str(exc_info.value)
