"""Contact synchronization between the platform and an external system."""

import logging
from collections.abc import Awaitable

from contactbridge.exceptions import IdentityStoreError, RemoteCallError
from contactbridge.external.consumer import ExternalAPIConsumer
from contactbridge.mapping import IDENTITY_FIELD, FieldMapper
from contactbridge.models import (
    BulkCreateResult,
    BulkResult,
    ContactRecord,
    Identifier,
    SyncResult,
)
from contactbridge.platform_api.client import PlatformClient
from contactbridge.platform_api.schema import build_property_definitions
from contactbridge.store.base import IdentityStore

NO_DATA = "no data"
EXTERNAL_NOT_FOUND = "external contact not found"
NOT_FOUND = "Not found"

DEFAULT_PAGE_SIZE = 30


class ContactSyncer:
    """Applies contact changes from one side to the other.

    Platform events (create/update/delete) are pushed to the external
    system; external changes are pushed to the platform. Every operation is
    scoped by the integration token and keeps the identity store in step.

    Identity store writes that follow a successful remote call are logged
    when they fail but never change the reported result: the remote system
    is authoritative.
    """

    def __init__(
        self,
        consumer: ExternalAPIConsumer,
        mapper: FieldMapper,
        key_store: IdentityStore,
        platform: PlatformClient,
        logger: logging.Logger | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.consumer = consumer
        self.mapper = mapper
        self.key_store = key_store
        self.platform = platform
        self.page_size = page_size
        self.logger = logger or logging.getLogger(__name__)

    async def _remote(self, call: Awaitable[SyncResult]) -> SyncResult:
        """Await a remote call, turning a raised failure into a failed result."""
        try:
            return await call
        except RemoteCallError as e:
            self.logger.error(f"Remote call failed: {e}")
            return SyncResult(success=False, error=str(e))

    async def _lookup(
        self, call: Awaitable[Identifier | None]
    ) -> tuple[Identifier | None, SyncResult | None]:
        """Await an identity lookup. A store failure comes back as a failed result."""
        try:
            return await call, None
        except IdentityStoreError as e:
            self.logger.error(f"Identity lookup failed: {e}")
            return None, SyncResult(success=False, error=str(e))

    async def _save_ids(self, scope: str, platform_id: Identifier, external_id: Identifier) -> None:
        try:
            saved = await self.key_store.save_ids(scope, platform_id, external_id)
        except IdentityStoreError as e:
            self.logger.error(f"Failed to map platform {platform_id} with ext {external_id}: {e}")
            return
        if saved:
            self.logger.debug(f"Mapped ext {external_id} with platform {platform_id}")
        else:
            self.logger.error(f"Identity store refused pair platform {platform_id} / ext {external_id}")

    async def _delete_ids(
        self, scope: str, platform_id: Identifier, external_id: Identifier | None
    ) -> None:
        try:
            deleted = await self.key_store.delete_ids(scope, platform_id, external_id)
        except IdentityStoreError as e:
            self.logger.error(f"Failed to unmap platform {platform_id}: {e}")
            return
        self.logger.debug(f"Deleted ids platform {platform_id} / ext {external_id}: {deleted}")

    # === Install / uninstall ===

    async def install_properties(self, scope: str) -> BulkResult:
        """Create one platform property per mapped field."""
        properties = build_property_definitions(self.mapper.mappings)
        self.logger.debug(f"Installing properties: {[p.name for p in properties]}")
        try:
            return await self.platform.create_properties(properties, scope)
        except RemoteCallError as e:
            return BulkResult(success=False, error=[str(e)])

    async def install(self, scope: str, import_contacts: bool = False) -> SyncResult | BulkResult:
        """Install properties, then optionally import every external contact.

        A property failure stops the install before any import.
        """
        installed = await self.install_properties(scope)
        self.logger.debug(f"Created properties? {installed.success}")

        if not installed.success:
            self.logger.error(f"Failed to install properties: {installed.error}")
            return installed

        if import_contacts:
            imported = await self.import_contacts(scope)
            if not imported.success:
                self.logger.warning(f"Install completed but import reported errors: {imported.error}")

        return SyncResult(success=True)

    async def uninstall(self, scope: str) -> SyncResult:
        """Forget every identity pair of the scope. Always acknowledged."""
        try:
            await self.key_store.delete_all_ids(scope)
        except IdentityStoreError as e:
            self.logger.error(f"Failed to delete ids on uninstall: {e}")
        return SyncResult(success=True)

    # === Platform -> external ===

    async def on_contact_created(self, scope: str, contact: ContactRecord | None) -> SyncResult:
        if not contact:
            return SyncResult(success=False, error=NO_DATA)

        ext_contact = self.mapper.to_external(contact)
        # The external system issues its own identifier
        ext_contact.pop(self.mapper.get_ext_id_key(), None)
        self.logger.debug(f"Mapped {ext_contact}")

        result = await self._remote(self.consumer.create_contact(ext_contact))

        if result.success:
            platform_id = contact.get(IDENTITY_FIELD)
            if platform_id is None or result.id is None:
                self.logger.warning(f"Cannot map ids: platform {platform_id} / ext {result.id}")
            else:
                await self._save_ids(scope, platform_id, result.id)
        return result

    async def on_contact_updated(self, scope: str, contact: ContactRecord | None) -> SyncResult:
        if not contact:
            return SyncResult(success=False, error=NO_DATA)

        platform_id = contact.get(IDENTITY_FIELD)
        ext_id, failure = await self._lookup(self.key_store.get_ext_id(scope, platform_id))
        if failure:
            return failure
        self.logger.debug(f"platform id: {platform_id} | ext id: {ext_id}")

        if ext_id is None:
            return SyncResult(success=False, error=EXTERNAL_NOT_FOUND)

        ext_contact = self.mapper.to_external(contact)
        ext_contact[self.mapper.get_ext_id_key()] = ext_id
        self.logger.debug(f"Mapped {ext_contact}")

        return await self._remote(self.consumer.update_contact(ext_contact))

    async def on_contact_deleted(self, scope: str, contact_id: Identifier | None) -> SyncResult:
        if contact_id is None or contact_id == "":
            return SyncResult(success=False, error=NO_DATA)

        ext_id, failure = await self._lookup(self.key_store.get_ext_id(scope, contact_id))
        if failure:
            return failure
        self.logger.debug(f"platform id: {contact_id} | ext id: {ext_id}")

        if ext_id is None:
            return SyncResult(success=False, error=EXTERNAL_NOT_FOUND)

        result = await self._remote(self.consumer.delete_contact(ext_id))
        await self._delete_ids(scope, contact_id, ext_id)
        return result

    # === External -> platform ===

    async def create_contact(self, ext_contact: ContactRecord, scope: str) -> SyncResult:
        """Create an external contact on the platform and map both ids."""
        contact = self.mapper.to_platform(ext_contact)
        contact.pop(IDENTITY_FIELD, None)

        result = await self._remote(self.platform.create_contact(contact, scope))

        if result.success:
            ext_id = ext_contact.get(self.mapper.get_ext_id_key())
            if ext_id is None or result.id is None:
                self.logger.warning(f"Cannot map ids: platform {result.id} / ext {ext_id}")
            else:
                await self._save_ids(scope, result.id, ext_id)
        return result

    async def update_contact(self, ext_contact: ContactRecord, scope: str) -> SyncResult:
        """Update the platform contact mapped to ``ext_contact``."""
        self.logger.debug(f"External contact updated: {ext_contact}")
        ext_id = ext_contact.get(self.mapper.get_ext_id_key())
        platform_id, failure = await self._lookup(self.key_store.get_platform_id(scope, ext_id))
        if failure:
            return failure

        if platform_id is None:
            return SyncResult(success=False, error=NOT_FOUND)

        contact = self.mapper.to_platform(ext_contact)
        contact[IDENTITY_FIELD] = platform_id
        return await self._remote(self.platform.update_contact(contact, scope))

    async def delete_contact(self, ext_id: Identifier, scope: str) -> SyncResult:
        """Delete the platform contact mapped to ``ext_id``."""
        platform_id, failure = await self._lookup(self.key_store.get_platform_id(scope, ext_id))
        if failure:
            return failure

        if platform_id is None:
            return SyncResult(success=False, error=NOT_FOUND)

        result = await self._remote(self.platform.delete_contact(platform_id, scope))

        # A failed delete leaves the platform contact in place, keep its mapping
        if result.success:
            await self._delete_ids(scope, platform_id, ext_id)
        return result

    # === Bulk import ===

    async def import_contacts(self, scope: str, page_size: int | None = None) -> BulkResult:
        """Import every external contact into the platform, page by page.

        Returns a BulkResult whose ``error`` holds one entry per failed page
        or record. Failures never stop the remaining pages.
        """
        size = page_size or self.page_size
        self.logger.info(f"Importing contacts {size} by {size}")

        async def import_page(contacts: list[ContactRecord]) -> BulkResult:
            return await self._import_page(scope, contacts)

        result = await self.consumer.list_all_contacts(size, import_page)
        self.logger.info(
            f"Import complete: success={result.success}, errors={len(result.error)}"
        )
        return result

    async def _import_page(self, scope: str, ext_contacts: list[ContactRecord]) -> BulkResult:
        contacts = []
        for ext_contact in ext_contacts:
            contact = self.mapper.to_platform(ext_contact)
            contact.pop(IDENTITY_FIELD, None)
            contacts.append(contact)

        try:
            imported = await self.platform.create_contacts(contacts, scope)
        except RemoteCallError as e:
            imported = BulkCreateResult(success=False, error=str(e))

        if not imported.success:
            self.logger.warning(f"Failed to import {len(contacts)} contacts: {imported.error}")
            return BulkResult(success=False, error=[imported.error])

        # Entry i of the response is the outcome of contact i of the page
        if len(imported.contacts) != len(ext_contacts):
            error = (
                f"Bulk create returned {len(imported.contacts)} results "
                f"for {len(ext_contacts)} contacts"
            )
            self.logger.error(error)
            return BulkResult(success=False, error=[error])

        page_result = BulkResult()
        ext_id_key = self.mapper.get_ext_id_key()
        for ext_contact, outcome in zip(ext_contacts, imported.contacts):
            if not outcome.success:
                page_result.add_error(outcome.error)
                continue
            ext_id = ext_contact.get(ext_id_key)
            if ext_id is None or outcome.id is None:
                self.logger.warning(f"Cannot map ids: platform {outcome.id} / ext {ext_id}")
                continue
            await self._save_ids(scope, outcome.id, ext_id)

        self.logger.debug(f"Imported {len(ext_contacts)} contacts")
        return page_result
