"""Platform contacts API client."""

import logging
from typing import Any

import httpx

from contactbridge.config import Settings
from contactbridge.exceptions import PlatformAPIError
from contactbridge.models import (
    BulkCreateResult,
    BulkResult,
    ContactRecord,
    Identifier,
    PropertyDefinition,
    SyncResult,
)

logger = logging.getLogger(__name__)


class PlatformClient:
    """Async client for the platform's contact and property endpoints.

    Every call is authenticated with the integration token of the scope it
    acts on, so one client serves every installed scope.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.platform_base_url,
                timeout=self.settings.platform_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        token: str,
        json: Any = None,
    ) -> Any:
        """Make authenticated API request."""
        client = await self._get_client()

        try:
            response = await client.request(
                method,
                endpoint,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise PlatformAPIError(None, f"request failed: {e}") from e

        if response.status_code >= 400:
            raise PlatformAPIError(response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return {"success": True}
        return response.json()

    async def validate_token(self, token: str) -> bool:
        data = await self._request("POST", "/api/integrationtokens/validate", token)
        return bool(data.get("success"))

    async def create_contact(self, contact: ContactRecord, token: str) -> SyncResult:
        data = await self._request("POST", "/api/contacts", token, json=contact)
        return SyncResult.model_validate(data)

    async def create_contacts(self, contacts: list[ContactRecord], token: str) -> BulkCreateResult:
        """Create several contacts in one call.

        The platform answers with one entry per submitted contact, in
        submission order. Callers rely on that positional correspondence.
        """
        data = await self._request("POST", "/api/contacts", token, json=contacts)
        result = BulkCreateResult.model_validate(data)
        if result.success and len(result.contacts) != len(contacts):
            logger.warning(
                f"Bulk create returned {len(result.contacts)} entries for {len(contacts)} contacts"
            )
        return result

    async def update_contact(self, contact: ContactRecord, token: str) -> SyncResult:
        contact_id = contact.get("id")
        if contact_id is None:
            return SyncResult(success=False, error="missing contact id")
        data = await self._request("PATCH", f"/api/contacts/{contact_id}", token, json=contact)
        return SyncResult.model_validate(data)

    async def delete_contact(self, contact_id: Identifier, token: str) -> SyncResult:
        data = await self._request("DELETE", f"/api/contacts/{contact_id}", token)
        return SyncResult.model_validate(data)

    async def create_property(self, prop: PropertyDefinition, token: str) -> SyncResult:
        data = await self._request("POST", "/api/properties", token, json=prop.model_dump())
        return SyncResult.model_validate(data)

    async def create_properties(self, props: list[PropertyDefinition], token: str) -> BulkResult:
        data = await self._request(
            "POST",
            "/api/properties",
            token,
            json=[prop.model_dump() for prop in props],
        )
        error = data.get("error")
        if error is None:
            errors = []
        elif isinstance(error, list):
            errors = error
        else:
            errors = [error]
        return BulkResult(success=bool(data.get("success")), error=errors)
