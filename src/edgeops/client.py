"""Provider gateway: the read/write capability set the core consumes.

The core depends only on the ResourceStateClient protocol. CloudflareClient
is the thin httpx implementation used by the command surface; it maps the
provider's ``{success, errors, result}`` envelope and HTTP failures onto the
ProviderError family and never retries.

Every request carries its own timeout (httpx.Timeout from Config). There is
no cancellation propagation across calls.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import MAX_RECORD_PAGES, MAX_RECORDS_PER_PAGE, Config
from .models import (
    Certificate,
    ComputeDeployment,
    DesiredRecord,
    HostingProject,
    ObservedRecord,
    Zone,
)

logger = logging.getLogger(__name__)

# Identifier returned for writes skipped in dry-run mode
DRY_RUN_ID = "dry-run"

USER_AGENT = "edgeops/0.1.0"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ProviderError(Exception):
    """Raised when the provider rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ProviderError):
    """Raised when credentials are missing, invalid, or lack permission."""

    pass


class NotFoundError(ProviderError):
    """Raised when the requested resource does not exist."""

    pass


class TransportError(ProviderError):
    """Raised on network failure or timeout before a response was received."""

    pass


class ResourceStateClient(Protocol):
    """Read/write gateway to the remote provider."""

    async def list_zones(self) -> list[Zone]: ...

    async def list_records(self, zone_id: str | None = None) -> list[ObservedRecord]: ...

    async def create_record(
        self, record: DesiredRecord, zone_id: str | None = None
    ) -> ObservedRecord: ...

    async def update_record(
        self, record_id: str, record: DesiredRecord, zone_id: str | None = None
    ) -> ObservedRecord: ...

    async def list_hosting_projects(self) -> list[HostingProject]: ...

    async def get_hosting_project(self, name: str) -> HostingProject: ...

    async def create_hosting_project(self, name: str) -> HostingProject: ...

    async def list_compute_deployments(self) -> list[ComputeDeployment]: ...

    async def list_certificates(self, zone_id: str | None = None) -> list[Certificate]: ...


def build_http_client(
    config: Config,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` bound to the provider API.

    Args:
        config: Validated configuration (credentials, base URL, timeout).
        transport: Optional transport override (tests use httpx.MockTransport).
    """
    headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        **config.auth_headers,
    }
    return httpx.AsyncClient(
        base_url=config.base_url,
        headers=headers,
        timeout=httpx.Timeout(config.timeout_seconds),
        transport=transport,
    )


def _parse_result(model: type[ModelT], body: dict[str, Any], request: str) -> ModelT:
    """Validate the envelope's ``result`` as ``model``.

    Raises:
        ProviderError: If the result is missing or malformed.
    """
    try:
        return model.model_validate(body["result"])
    except (KeyError, ValidationError) as e:
        raise ProviderError(f"{request} returned a malformed result: {e}") from e


class CloudflareClient:
    """ResourceStateClient backed by the Cloudflare v4 REST API.

    Usage:
        async with CloudflareClient(config) as client:
            records = await client.list_records()
    """

    def __init__(self, config: Config, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http_client or build_http_client(config)

    async def __aenter__(self) -> CloudflareClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def _account_path(self) -> str:
        return f"/accounts/{self._config.account_id}"

    # =========================================================================
    # Zones and DNS
    # =========================================================================

    async def list_zones(self) -> list[Zone]:
        body = await self._request("GET", "/zones")
        return [Zone.model_validate(item) for item in body.get("result") or []]

    async def list_records(self, zone_id: str | None = None) -> list[ObservedRecord]:
        """List every DNS record in the zone, following pagination."""
        zone = self._config.require_zone(zone_id)
        records: list[ObservedRecord] = []
        page = 1

        while True:
            body = await self._request(
                "GET",
                f"/zones/{zone}/dns_records",
                params={"page": page, "per_page": MAX_RECORDS_PER_PAGE},
            )
            records.extend(ObservedRecord.model_validate(item) for item in body.get("result") or [])

            total_pages = (body.get("result_info") or {}).get("total_pages") or 1
            if page >= total_pages:
                break
            if page >= MAX_RECORD_PAGES:
                raise ProviderError(
                    f"Zone {zone} has more than {MAX_RECORD_PAGES} pages of DNS records"
                )
            page += 1

        logger.debug("Listed DNS records", extra={"zone_id": zone, "count": len(records)})
        return records

    async def create_record(
        self, record: DesiredRecord, zone_id: str | None = None
    ) -> ObservedRecord:
        zone = self._config.require_zone(zone_id)
        body = await self._request(
            "POST", f"/zones/{zone}/dns_records", json=record.to_write_payload()
        )
        if self._config.dry_run:
            return ObservedRecord(id=DRY_RUN_ID, **record.to_write_payload())
        return _parse_result(ObservedRecord, body, "POST dns_records")

    async def update_record(
        self, record_id: str, record: DesiredRecord, zone_id: str | None = None
    ) -> ObservedRecord:
        zone = self._config.require_zone(zone_id)
        body = await self._request(
            "PUT",
            f"/zones/{zone}/dns_records/{record_id}",
            json=record.to_write_payload(),
        )
        if self._config.dry_run:
            return ObservedRecord(id=record_id, **record.to_write_payload())
        return _parse_result(ObservedRecord, body, f"PUT dns_records/{record_id}")

    # =========================================================================
    # Hosting projects
    # =========================================================================

    async def list_hosting_projects(self) -> list[HostingProject]:
        body = await self._request("GET", f"{self._account_path}/pages/projects")
        return [HostingProject.model_validate(item) for item in body.get("result") or []]

    async def get_hosting_project(self, name: str) -> HostingProject:
        """Fetch one project.

        Raises:
            NotFoundError: If the project does not exist.
        """
        body = await self._request("GET", f"{self._account_path}/pages/projects/{name}")
        return _parse_result(HostingProject, body, f"GET pages/projects/{name}")

    async def create_hosting_project(self, name: str) -> HostingProject:
        body = await self._request(
            "POST",
            f"{self._account_path}/pages/projects",
            json={"name": name, "production_branch": "main"},
        )
        if self._config.dry_run:
            return HostingProject(name=name)
        return _parse_result(HostingProject, body, "POST pages/projects")

    # =========================================================================
    # Compute and certificates
    # =========================================================================

    async def list_compute_deployments(self) -> list[ComputeDeployment]:
        body = await self._request("GET", f"{self._account_path}/workers/scripts")
        return [ComputeDeployment.model_validate(item) for item in body.get("result") or []]

    async def list_certificates(self, zone_id: str | None = None) -> list[Certificate]:
        zone = self._config.require_zone(zone_id)
        body = await self._request("GET", f"/zones/{zone}/ssl/certificate_packs")
        return [Certificate.model_validate(item) for item in body.get("result") or []]

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request and unwrap the response envelope.

        Raises:
            TransportError: On network failure or timeout.
            AuthenticationError: On 401/403.
            NotFoundError: On 404.
            ProviderError: On any other unsuccessful response.
        """
        if self._config.dry_run and method != "GET":
            logger.info("Dry-run, write not sent", extra={"method": method, "path": path})
            return {"success": True, "result": None}

        logger.debug("Provider request", extra={"method": method, "path": path})

        try:
            response = await self._http.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"{method} {path} timed out after {self._config.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(
                f"{method} {path} rejected: {self._error_text(response)}", status_code=status
            )
        if status == 404:
            raise NotFoundError(f"{method} {path}: not found", status_code=status)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{method} {path} returned non-JSON response", status_code=status
            ) from e

        if status >= 400 or not isinstance(body, dict) or not body.get("success"):
            raise ProviderError(
                f"{method} {path} failed: {self._error_text(response)}", status_code=status
            )

        return body

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        """Join the provider's error messages, falling back to the status line."""
        try:
            errors = response.json().get("errors") or []
        except (ValueError, AttributeError):
            errors = []
        messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
        return ", ".join(messages) or f"HTTP {response.status_code}"
