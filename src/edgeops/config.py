"""Configuration management with validation.

Credentials and account/zone scope are loaded once into a frozen Config and
passed explicitly to every component. Nothing here is process-global.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"

DEFAULT_TIMEOUT_SECONDS = 30
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 300

# Flat delay after every remote write in a sequential write loop.
# Not adaptive: applied regardless of latency or errors.
DEFAULT_WRITE_PACING_SECONDS = 0.1
MAX_WRITE_PACING_SECONDS = 5.0

DEFAULT_TOPOLOGY_PATH = "topology.yaml"

# Bounds on remote and local inputs
MAX_TOPOLOGY_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max topology file
MAX_RECORDS_PER_PAGE = 100
MAX_RECORD_PAGES = 100  # 10k records per zone before we refuse to continue

# Input validation patterns
VALID_ACCOUNT_ID_PATTERN = r"^[0-9a-f]{32}$"
VALID_ZONE_ID_PATTERN = r"^[0-9a-f]{32}$"


@dataclass(frozen=True)
class Config:
    """Provider configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.

    Authentication accepts either a scoped API token or the legacy
    global API key + account email pair.
    """

    # Required fields
    account_id: str

    # Authentication (one of the two forms)
    api_token: str | None = None
    api_key: str | None = None
    email: str | None = None

    # Scope
    zone_id: str | None = None

    # Transport
    base_url: str = DEFAULT_API_BASE_URL
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    # Behavior
    write_pacing_seconds: float = DEFAULT_WRITE_PACING_SECONDS
    dry_run: bool = False

    topology_path: Path = field(default_factory=lambda: Path(DEFAULT_TOPOLOGY_PATH))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.account_id:
            errors.append("CLOUDFLARE_ACCOUNT_ID is required")
        elif not re.match(VALID_ACCOUNT_ID_PATTERN, self.account_id.lower()):
            errors.append(f"CLOUDFLARE_ACCOUNT_ID must be 32 hex characters: {self.account_id}")

        if self.zone_id and not re.match(VALID_ZONE_ID_PATTERN, self.zone_id.lower()):
            errors.append(f"CLOUDFLARE_ZONE_ID must be 32 hex characters: {self.zone_id}")

        if not self.api_token:
            if not self.api_key or not self.email:
                errors.append(
                    "CLOUDFLARE_API_TOKEN, or both CLOUDFLARE_API_KEY and CLOUDFLARE_EMAIL, "
                    "must be provided"
                )
        elif self.api_key:
            errors.append("Set either CLOUDFLARE_API_TOKEN or CLOUDFLARE_API_KEY, not both")

        if not self.base_url.startswith("https://"):
            errors.append(f"CLOUDFLARE_API_BASE_URL must use https: {self.base_url}")

        # Timing validation
        if not (MIN_TIMEOUT_SECONDS <= self.timeout_seconds <= MAX_TIMEOUT_SECONDS):
            errors.append(
                f"EDGEOPS_TIMEOUT must be between {MIN_TIMEOUT_SECONDS} "
                f"and {MAX_TIMEOUT_SECONDS} seconds"
            )

        if not (0 <= self.write_pacing_seconds <= MAX_WRITE_PACING_SECONDS):
            errors.append(
                f"EDGEOPS_WRITE_PACING_MS must be between 0 and "
                f"{int(MAX_WRITE_PACING_SECONDS * 1000)}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def auth_headers(self) -> dict[str, str]:
        """HTTP headers carrying the configured credentials."""
        if self.api_token:
            return {"Authorization": f"Bearer {self.api_token}"}
        # SAFETY: __post_init__ guarantees api_key and email when no token is set
        return {"X-Auth-Email": self.email or "", "X-Auth-Key": self.api_key or ""}

    def require_zone(self, zone_id: str | None = None) -> str:
        """Resolve the zone for a zone-scoped call.

        Raises:
            ConfigurationError: If neither an explicit zone nor CLOUDFLARE_ZONE_ID is set.
        """
        zone = zone_id or self.zone_id
        if not zone:
            raise ConfigurationError("CLOUDFLARE_ZONE_ID is required for zone-scoped operations")
        return zone

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            CLOUDFLARE_ACCOUNT_ID: Account owning hosting projects and compute
            CLOUDFLARE_API_TOKEN: Scoped API token (preferred)
            CLOUDFLARE_API_KEY: Legacy global API key (requires CLOUDFLARE_EMAIL)
            CLOUDFLARE_EMAIL: Account email for the legacy key
            CLOUDFLARE_ZONE_ID: Zone for DNS and certificate operations
            CLOUDFLARE_API_BASE_URL: API root (default: public v4 endpoint)
            EDGEOPS_TIMEOUT: Per-request timeout in seconds (default: 30)
            EDGEOPS_WRITE_PACING_MS: Delay after each remote write (default: 100)
            EDGEOPS_DRY_RUN: If "true", log writes instead of sending them
            EDGEOPS_TOPOLOGY: Path to the topology YAML (default: ./topology.yaml)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            account_id=os.environ.get("CLOUDFLARE_ACCOUNT_ID", ""),
            api_token=os.environ.get("CLOUDFLARE_API_TOKEN") or None,
            api_key=os.environ.get("CLOUDFLARE_API_KEY") or None,
            email=os.environ.get("CLOUDFLARE_EMAIL") or None,
            zone_id=os.environ.get("CLOUDFLARE_ZONE_ID") or None,
            base_url=os.environ.get("CLOUDFLARE_API_BASE_URL", DEFAULT_API_BASE_URL),
            timeout_seconds=get_int("EDGEOPS_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            write_pacing_seconds=get_int(
                "EDGEOPS_WRITE_PACING_MS", int(DEFAULT_WRITE_PACING_SECONDS * 1000)
            )
            / 1000,
            dry_run=get_bool("EDGEOPS_DRY_RUN", False),
            topology_path=Path(os.environ.get("EDGEOPS_TOPOLOGY", DEFAULT_TOPOLOGY_PATH)),
        )
