"""Topology file loading with validation.

All file operations enforce size limits. Input validation is performed at
the boundary so the reconciler only ever sees well-formed desired state.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import MAX_TOPOLOGY_FILE_SIZE_BYTES
from .models import Topology

logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """Raised when topology loading or validation fails."""

    pass


def load_topology(path: Path) -> Topology:
    """Load and validate the topology YAML.

    Both a flat mapping and a Kubernetes-style wrapper
    (``apiVersion``/``kind``/``spec``) are accepted.

    Args:
        path: Topology file.

    Returns:
        Validated topology.

    Raises:
        SpecLoadError: If the file cannot be read or fails validation.
    """
    if not path.exists():
        raise SpecLoadError(f"Topology file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat topology file {path}: {e}") from e

    if file_size > MAX_TOPOLOGY_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Topology file exceeds maximum size of {MAX_TOPOLOGY_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read topology file {path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Topology file must contain a YAML mapping: {path}")

    if "apiVersion" in raw_data and "spec" in raw_data:
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {path}")
    else:
        spec_data = raw_data

    try:
        topology = Topology.model_validate(spec_data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise SpecLoadError(f"Validation failed for {path}:\n{error_list}") from e

    logger.info(
        "Loaded topology",
        extra={
            "path": str(path),
            "environments": [env.value for env in topology.environments],
            "record_count": len(topology.all_records()),
        },
    )
    return topology
