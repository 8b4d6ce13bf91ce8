"""Integration entry point wiring the syncer to platform events.

Example:
    bridge = ContactBridge(
        consumer=MyServiceConsumer(),   # an ExternalAPIConsumer
        mappings=MAPPINGS,              # list of FieldMapping
        key_store=RedisIdentityStore.from_url("redis://localhost:6379/0"),
    )
    response = await bridge.dispatch("contact_created", payload)
"""

import inspect
import logging
from collections.abc import Callable, Iterable
from typing import Any

from contactbridge.config import Settings, get_settings
from contactbridge.events import Event, EventDispatcher, Listener
from contactbridge.exceptions import ConfigurationError
from contactbridge.external.consumer import ExternalAPIConsumer
from contactbridge.mapping import FieldMapper
from contactbridge.models import (
    BulkResult,
    ContactRecord,
    EventPayload,
    EventResponse,
    FieldMapping,
    Identifier,
    PropertyDefinition,
    SyncResult,
)
from contactbridge.platform_api.client import PlatformClient
from contactbridge.store.base import IdentityStore
from contactbridge.sync import ContactSyncer

logger = logging.getLogger(__name__)

LifecycleCallback = Callable[[EventPayload], Any]


async def _run_callback(callback: LifecycleCallback | None, payload: EventPayload) -> None:
    if callback is None:
        return
    outcome = callback(payload)
    if inspect.isawaitable(outcome):
        await outcome


class ContactBridge:
    """Connects an external contact service to the platform.

    Requires an external API consumer, the field mappings and an identity
    store; everything else defaults from settings.
    """

    def __init__(
        self,
        consumer: ExternalAPIConsumer | None = None,
        mappings: Iterable[FieldMapping | dict] | None = None,
        key_store: IdentityStore | None = None,
        platform: PlatformClient | None = None,
        settings: Settings | None = None,
        log: logging.Logger | None = None,
    ):
        if consumer is None:
            raise ConfigurationError("consumer is required")
        if mappings is None:
            raise ConfigurationError("mappings is required")
        if key_store is None:
            raise ConfigurationError("key_store is required")

        self.settings = settings or get_settings()
        self.mapper = FieldMapper(mappings)
        self.key_store = key_store
        self.platform = platform or PlatformClient(self.settings)
        self.syncer = ContactSyncer(
            consumer,
            self.mapper,
            key_store,
            self.platform,
            logger=log,
            page_size=self.settings.import_page_size,
        )

        self.dispatcher = EventDispatcher()
        self.events = Event
        self.on_install()
        self.on_uninstall()
        self.dispatcher.on_event(Event.CONTACT_CREATED, self._on_contact_created)
        self.dispatcher.on_event(Event.CONTACT_UPDATED, self._on_contact_updated)
        self.dispatcher.on_event(Event.CONTACT_DELETED, self._on_contact_deleted)

    # === Lifecycle listeners ===

    def on_install(self, callback: LifecycleCallback | None = None) -> None:
        """Register ``callback`` to run on install, before properties are created."""

        async def listener(payload: EventPayload) -> EventResponse:
            logger.debug(f"Install: {payload.data}")
            await _run_callback(callback, payload)
            result = await self.syncer.install(
                payload.scope, import_contacts=self.settings.import_on_install
            )
            return EventResponse(data=result)

        self.dispatcher.on_install(listener)

    def on_uninstall(self, callback: LifecycleCallback | None = None) -> None:
        """Register ``callback`` to run on uninstall, before ids are forgotten."""

        async def listener(payload: EventPayload) -> EventResponse:
            logger.debug(f"Uninstall: {payload.data}")
            await _run_callback(callback, payload)
            return EventResponse(data=await self.syncer.uninstall(payload.scope))

        self.dispatcher.on_uninstall(listener)

    async def _on_contact_created(self, payload: EventPayload) -> EventResponse:
        contact = payload.data.get("data")
        return EventResponse(data=await self.syncer.on_contact_created(payload.scope, contact))

    async def _on_contact_updated(self, payload: EventPayload) -> EventResponse:
        contact = payload.data.get("data")
        return EventResponse(data=await self.syncer.on_contact_updated(payload.scope, contact))

    async def _on_contact_deleted(self, payload: EventPayload) -> EventResponse:
        contact_id = (payload.data.get("data") or {}).get("contact_id")
        return EventResponse(data=await self.syncer.on_contact_deleted(payload.scope, contact_id))

    def on_event(self, event: Event | str, listener: Listener) -> None:
        self.dispatcher.on_event(event, listener)

    on_action = on_event

    def on_settings_page(self, listener: Listener) -> None:
        self.dispatcher.on_settings_page(listener)

    def on_update_settings(self, listener: Listener) -> None:
        self.dispatcher.on_update_settings(listener)

    async def dispatch(self, event: Event | str, payload: EventPayload | dict) -> EventResponse:
        return await self.dispatcher.dispatch(event, payload)

    # === External -> platform operations ===

    async def create_contact(self, ext_contact: ContactRecord, token: str) -> SyncResult:
        return await self.syncer.create_contact(ext_contact, token)

    async def update_contact(self, ext_contact: ContactRecord, token: str) -> SyncResult:
        return await self.syncer.update_contact(ext_contact, token)

    async def delete_contact(self, ext_id: Identifier, token: str) -> SyncResult:
        return await self.syncer.delete_contact(ext_id, token)

    async def create_property(self, prop: PropertyDefinition, token: str) -> SyncResult:
        return await self.platform.create_property(prop, token)

    async def create_properties(self, props: list[PropertyDefinition], token: str) -> BulkResult:
        return await self.platform.create_properties(props, token)

    async def import_contacts(self, token: str, page_size: int | None = None) -> BulkResult:
        return await self.syncer.import_contacts(token, page_size)

    async def close(self) -> None:
        """Close the platform client and the identity store."""
        await self.platform.close()
        await self.key_store.close()
