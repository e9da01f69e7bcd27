"""Identity provider client for organization and membership data.

The reconciliation engine and the membership mutators depend on the narrow
:class:`IdentityProvider` interface only. :class:`ClerkClient` implements it
over the Clerk Backend REST API; tests substitute an in-memory fake.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from collections.abc import Mapping
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from threadhub.core.settings import settings

logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_SERVER_ERROR = 500

ADMIN_ROLE = "org:admin"

T = TypeVar("T")


class IdentityProviderError(RuntimeError):
    """Base exception raised for identity provider failures.

    ``status_code`` is None when no HTTP response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        """True if retrying the same call may succeed."""
        if self.status_code is None:
            return True
        return (
            self.status_code == HTTP_TOO_MANY_REQUESTS
            or self.status_code >= HTTP_INTERNAL_SERVER_ERROR
        )


class IdentityProviderDisabledError(IdentityProviderError):
    """Raised when provider calls are attempted without credentials."""

    @property
    def transient(self) -> bool:
        return False


class OrganizationNotFoundError(IdentityProviderError):
    """Raised when the provider has no organization with the requested ID."""

    def __init__(self, organization_id: str) -> None:
        super().__init__(f"Organization {organization_id} not found", HTTP_NOT_FOUND)
        self.organization_id = organization_id


@dataclass(frozen=True)
class ExternalOrganization:
    """Organization details as reported by the provider."""

    id: str
    name: str
    slug: str | None
    image_url: str | None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ExternalOrganization:
        return cls(
            id=str(payload["id"]),
            name=payload.get("name") or "",
            slug=payload.get("slug"),
            image_url=payload.get("image_url") or payload.get("logo_url"),
        )


@dataclass(frozen=True)
class ExternalMembership:
    """A user's membership in an organization."""

    organization: ExternalOrganization
    role: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ExternalMembership:
        return cls(
            organization=ExternalOrganization.from_payload(payload["organization"]),
            role=payload.get("role", ""),
        )


class IdentityProvider(abc.ABC):
    """Operations the application needs from the identity provider."""

    @abc.abstractmethod
    async def list_memberships(self, user_id: str) -> list[ExternalMembership]:
        """Return every organization membership of ``user_id``."""

    @abc.abstractmethod
    async def get_organization(self, organization_id: str) -> ExternalOrganization:
        """Return organization details or raise :class:`OrganizationNotFoundError`."""

    @abc.abstractmethod
    async def create_organization(
        self, name: str, slug: str, created_by: str
    ) -> ExternalOrganization:
        """Create an organization owned by ``created_by``."""

    @abc.abstractmethod
    async def create_membership(
        self, organization_id: str, user_id: str, role: str = ADMIN_ROLE
    ) -> ExternalMembership:
        """Add ``user_id`` to an organization with the given role."""

    async def close(self) -> None:
        """Release any underlying resources."""


@dataclass(frozen=True)
class ClerkConfig:
    """Immutable configuration for Clerk Backend API calls."""

    secret_key: str | None
    base_url: str
    timeout_seconds: float
    page_size: int

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)


def load_clerk_config() -> ClerkConfig:
    """Build configuration object from global settings."""

    return ClerkConfig(
        secret_key=settings.clerk_secret_key,
        base_url=settings.clerk_api_url.rstrip("/"),
        timeout_seconds=float(settings.clerk_http_timeout_seconds),
        page_size=max(1, settings.clerk_page_size),
    )


class ClerkClient(IdentityProvider):
    """HTTP client wrapper for the Clerk Backend API."""

    def __init__(
        self,
        config: ClerkConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_clerk_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise IdentityProviderDisabledError("Clerk secret key is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers={"Authorization": f"Bearer {self.config.secret_key}"},
                    transport=self._transport,
                )

        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, json=json_data, params=params)
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Clerk request failed: {exc}") from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            raise IdentityProviderError(
                f"Clerk responded with {response.status_code} for {method} {path}",
                response.status_code,
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Decode a JSON body with ``parse``; malformed bodies become provider errors."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise IdentityProviderError(
                f"Invalid response format from Clerk: {exc!r}",
                response.status_code,
            ) from exc

    async def list_memberships(self, user_id: str) -> list[ExternalMembership]:
        memberships: list[ExternalMembership] = []
        offset = 0
        while True:
            response = await self._request(
                "GET",
                f"/users/{user_id}/organization_memberships",
                params={"limit": self.config.page_size, "offset": offset},
            )
            page, total = self._parse(response, lambda body: _membership_page(body, offset))
            memberships.extend(page)
            offset += len(page)
            if not page or offset >= total:
                break
        logger.debug("Clerk reported %d memberships for %s", len(memberships), user_id)
        return memberships

    async def get_organization(self, organization_id: str) -> ExternalOrganization:
        try:
            response = await self._request("GET", f"/organizations/{organization_id}")
        except IdentityProviderError as exc:
            if exc.status_code == HTTP_NOT_FOUND:
                raise OrganizationNotFoundError(organization_id) from exc
            raise
        return self._parse(response, ExternalOrganization.from_payload)

    async def create_organization(
        self, name: str, slug: str, created_by: str
    ) -> ExternalOrganization:
        response = await self._request(
            "POST",
            "/organizations",
            json_data={"name": name, "slug": slug, "created_by": created_by},
        )
        return self._parse(response, ExternalOrganization.from_payload)

    async def create_membership(
        self, organization_id: str, user_id: str, role: str = ADMIN_ROLE
    ) -> ExternalMembership:
        response = await self._request(
            "POST",
            f"/organizations/{organization_id}/memberships",
            json_data={"user_id": user_id, "role": role},
        )
        return self._parse(response, ExternalMembership.from_payload)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def _membership_page(
    payload: Mapping[str, Any], offset: int
) -> tuple[list[ExternalMembership], int]:
    page = payload.get("data")
    if not isinstance(page, list):
        raise TypeError("membership list is not an array")
    memberships = [ExternalMembership.from_payload(item) for item in page]
    return memberships, int(payload.get("total_count", offset + len(memberships)))


class _IdentityProviderSingleton:
    """Singleton wrapper for the process-wide Clerk client."""

    _instance: ClerkClient | None = None

    @classmethod
    def get_instance(cls) -> ClerkClient:
        """Get or create the singleton ClerkClient instance."""
        if cls._instance is None:
            cls._instance = ClerkClient()
        return cls._instance


def get_identity_provider() -> IdentityProvider:
    """Return the shared identity provider client."""
    return _IdentityProviderSingleton.get_instance()
