"""Pydantic models for provider resources and the desired topology.

These models provide:
1. Type-safe parsing of provider API payloads (unknown fields ignored)
2. Validation of the topology file at the boundary (fail fast, fail loudly)
3. Clean transformation of desired records into write payloads
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

# DNS record types the reconciler is prepared to manage
VALID_RECORD_TYPES = frozenset({"A", "AAAA", "CNAME", "MX", "TXT", "NS", "SRV", "CAA", "PTR"})

# TTL of 1 is the provider's "automatic" value (required for proxied records)
AUTOMATIC_TTL = 1


class Environment(str, Enum):
    """Deployment targets with distinct expected resources."""

    PRODUCTION = "production"
    STAGING = "staging"


# =============================================================================
# DNS Records
# =============================================================================


class DesiredRecord(BaseModel):
    """Declared intent for one DNS entry.

    Immutable; supplied by the caller per invocation.
    """

    model_config = {"extra": "ignore", "frozen": True}

    name: Annotated[str, Field(min_length=1, max_length=255)]
    type: str
    content: Annotated[str, Field(min_length=1)]
    proxied: bool | None = None
    ttl: Annotated[int, Field(ge=AUTOMATIC_TTL)] | None = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_RECORD_TYPES:
            raise ValueError(f"type must be one of {sorted(VALID_RECORD_TYPES)}")
        return v

    @property
    def key(self) -> tuple[str, str]:
        """Matching key against observed records."""
        return (self.name, self.type)

    def to_write_payload(self) -> dict[str, Any]:
        """Body for a create or update call. Unset optional fields are omitted."""
        return self.model_dump(
            include={"name", "type", "content", "proxied", "ttl"}, exclude_none=True
        )


class ObservedRecord(BaseModel):
    """Live remote state of one DNS entry, fetched fresh per call."""

    model_config = {"extra": "ignore"}

    id: str
    name: str
    type: str
    content: str
    proxied: bool = False
    ttl: int = AUTOMATIC_TTL

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.type)


# =============================================================================
# Provider Resources
# =============================================================================


class Zone(BaseModel):
    """DNS zone."""

    model_config = {"extra": "ignore"}

    id: str
    name: str
    status: str | None = None


class HostingProject(BaseModel):
    """Static hosting project with its attached custom domains."""

    model_config = {"extra": "ignore"}

    name: str
    domains: list[str] = Field(default_factory=list)

    @field_validator("domains", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v if v is not None else []


class ComputeDeployment(BaseModel):
    """Edge compute deployment (script).

    The provider's list endpoint reports the script name under ``id``.
    """

    model_config = {"extra": "ignore"}

    name: str = Field(validation_alias=AliasChoices("name", "id"))


class Certificate(BaseModel):
    """TLS certificate pack."""

    model_config = {"extra": "ignore"}

    id: str
    type: str | None = None
    status: str | None = None
    hosts: list[str] = Field(default_factory=list)


# =============================================================================
# Topology (desired state)
# =============================================================================


class EnvironmentSpec(BaseModel):
    """Expected resources for one deployment target."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    records: list[DesiredRecord] = Field(default_factory=list)
    compute: list[Annotated[str, Field(min_length=1)]] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_records(self) -> EnvironmentSpec:
        seen: set[tuple[str, str]] = set()
        for record in self.records:
            if record.key in seen:
                raise ValueError(f"duplicate record {record.name} ({record.type})")
            seen.add(record.key)
        return self


class Topology(BaseModel):
    """Desired infrastructure layout for the application.

    Example:
        zone: example.com
        hostingProject: app
        environments:
          production:
            compute: [app-api]
            records:
              - {name: example.com, type: CNAME, content: app.pages.dev, proxied: true, ttl: 1}
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    zone: str | None = None
    hosting_project: Annotated[str, Field(min_length=1, alias="hostingProject")]
    environments: dict[Environment, EnvironmentSpec]

    @field_validator("environments")
    @classmethod
    def validate_environments(
        cls, v: dict[Environment, EnvironmentSpec]
    ) -> dict[Environment, EnvironmentSpec]:
        if not v:
            raise ValueError("at least one environment must be declared")
        return v

    def environment(self, environment: Environment) -> EnvironmentSpec:
        """Expected resources for a target.

        Raises:
            ValueError: If the topology does not declare the environment.
        """
        spec = self.environments.get(environment)
        if spec is None:
            declared = [env.value for env in self.environments]
            raise ValueError(
                f"Environment '{environment.value}' is not declared in topology: {declared}"
            )
        return spec

    def records_for(self, environment: Environment) -> list[DesiredRecord]:
        return list(self.environment(environment).records)

    def compute_for(self, environment: Environment) -> list[str]:
        return list(self.environment(environment).compute)

    def all_records(self) -> list[DesiredRecord]:
        """Union of every environment's records, first declaration wins."""
        seen: set[tuple[str, str]] = set()
        records: list[DesiredRecord] = []
        for spec in self.environments.values():
            for record in spec.records:
                if record.key not in seen:
                    seen.add(record.key)
                    records.append(record)
        return records

    def all_compute(self) -> list[str]:
        names: list[str] = []
        for spec in self.environments.values():
            for name in spec.compute:
                if name not in names:
                    names.append(name)
        return names
