"""Tests for ContactBridge wiring and event dispatch."""

from unittest.mock import AsyncMock

import pytest

from conftest import EXTERNAL_ID, MAPPINGS, PLATFORM_ID, TOKEN, make_ext_contact, make_platform_contact
from contactbridge.bridge import ContactBridge
from contactbridge.events import Event
from contactbridge.exceptions import ConfigurationError, IdentityStoreError
from contactbridge.models import BulkResult, EventResponse, PropertyDefinition, SyncResult


def payload(data=None, token=TOKEN):
    return {"auth": {"token": token, "client": "acme"}, "data": data or {}}


@pytest.fixture
def bridge(consumer, key_store, platform, settings):
    return ContactBridge(
        consumer=consumer,
        mappings=MAPPINGS,
        key_store=key_store,
        platform=platform,
        settings=settings,
    )


class TestInit:
    """Required collaborators are checked at construction."""

    def test_builds_with_required_collaborators(self, bridge):
        assert bridge.mapper.get_ext_id_key() == "id"
        assert bridge.events is Event
        assert bridge.dispatcher.has_listener(Event.INSTALL)
        assert not bridge.dispatcher.has_listener(Event.SETTINGS_PAGE)

    @pytest.mark.parametrize("missing", ["consumer", "mappings", "key_store"])
    def test_missing_collaborator_raises(self, missing, consumer, key_store, platform, settings):
        kwargs = {"consumer": consumer, "mappings": MAPPINGS, "key_store": key_store}
        kwargs[missing] = None

        with pytest.raises(ConfigurationError, match=f"{missing} is required"):
            ContactBridge(platform=platform, settings=settings, **kwargs)


class TestDispatch:
    """Tests for routing platform events."""

    @pytest.mark.asyncio
    async def test_contact_created_event(self, bridge, key_store):
        response = await bridge.dispatch("contact_created", payload({"data": make_platform_contact()}))

        assert response == EventResponse(data=SyncResult(success=True, id=EXTERNAL_ID))
        assert response.model_dump()["type"] == "data"
        assert await key_store.get_ext_id(TOKEN, PLATFORM_ID) == EXTERNAL_ID

    @pytest.mark.asyncio
    async def test_contact_created_without_data(self, bridge):
        response = await bridge.dispatch(Event.CONTACT_CREATED, payload())

        assert response.data == SyncResult(success=False, error="no data")

    @pytest.mark.asyncio
    async def test_contact_updated_event(self, bridge, key_store, consumer):
        await key_store.save_ids(TOKEN, PLATFORM_ID, EXTERNAL_ID)

        response = await bridge.dispatch(Event.CONTACT_UPDATED, payload({"data": make_platform_contact()}))

        assert response.data.success is True
        assert consumer.updated[0]["id"] == EXTERNAL_ID

    @pytest.mark.asyncio
    async def test_contact_deleted_event(self, bridge, key_store, consumer):
        await key_store.save_ids(TOKEN, PLATFORM_ID, EXTERNAL_ID)

        response = await bridge.dispatch(
            Event.CONTACT_DELETED, payload({"data": {"contact_id": PLATFORM_ID}})
        )

        assert response.data.success is True
        assert consumer.deleted == [EXTERNAL_ID]
        assert key_store.count(TOKEN) == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_answered_not_raised(self, bridge, key_store):
        key_store.get_ext_id = AsyncMock(side_effect=IdentityStoreError("redis down"))

        response = await bridge.dispatch(
            Event.CONTACT_DELETED, payload({"data": {"contact_id": PLATFORM_ID}})
        )

        assert response.data == SyncResult(success=False, error="redis down")

    @pytest.mark.asyncio
    async def test_contact_deleted_without_id(self, bridge):
        response = await bridge.dispatch(Event.CONTACT_DELETED, payload({"data": {}}))

        assert response.data.error == "no data"

    @pytest.mark.asyncio
    async def test_install_runs_callback_before_properties(self, bridge, platform):
        calls = []
        platform.create_properties.side_effect = lambda *a: calls.append("properties") or BulkResult()
        bridge.on_install(lambda p: calls.append(("callback", p.auth.token)))

        response = await bridge.dispatch(Event.INSTALL, payload())

        assert response.data.success is True
        assert calls == [("callback", TOKEN), "properties"]

    @pytest.mark.asyncio
    async def test_install_failure_is_reported(self, bridge, platform):
        platform.create_properties.return_value = BulkResult(success=False, error=["nope"])

        response = await bridge.dispatch(Event.INSTALL, payload())

        assert response.data == BulkResult(success=False, error=["nope"])

    @pytest.mark.asyncio
    async def test_import_on_install_setting(self, consumer, key_store, platform, settings):
        settings.import_on_install = True
        bridge = ContactBridge(
            consumer=consumer, mappings=MAPPINGS, key_store=key_store,
            platform=platform, settings=settings,
        )
        bridge.syncer.import_contacts = AsyncMock(return_value=BulkResult())

        await bridge.dispatch(Event.INSTALL, payload())

        bridge.syncer.import_contacts.assert_awaited_once_with(TOKEN)

    @pytest.mark.asyncio
    async def test_uninstall_runs_async_callback_and_clears_ids(self, bridge, key_store):
        await key_store.save_ids(TOKEN, PLATFORM_ID, EXTERNAL_ID)
        callback = AsyncMock()
        bridge.on_uninstall(callback)

        response = await bridge.dispatch(Event.UNINSTALL, payload())

        assert response.data.success is True
        callback.assert_awaited_once()
        assert key_store.count(TOKEN) == 0

    @pytest.mark.asyncio
    async def test_settings_listeners(self, bridge):
        page = AsyncMock(return_value=EventResponse(data={"html": "<form/>"}))
        bridge.on_settings_page(page)

        response = await bridge.dispatch("settings_page", payload())

        assert response.data == {"html": "<form/>"}

    @pytest.mark.asyncio
    async def test_custom_event_listener_replaces_default(self, bridge):
        listener = AsyncMock(return_value=EventResponse(data="custom"))
        bridge.on_event(Event.CONTACT_CREATED, listener)

        response = await bridge.dispatch(Event.CONTACT_CREATED, payload())

        assert response.data == "custom"

    @pytest.mark.asyncio
    async def test_unhandled_event(self, bridge):
        response = await bridge.dispatch("update_settings", payload())
        assert response.data == SyncResult(success=False, error="unhandled event")

        response = await bridge.dispatch("something_else", payload())
        assert response.data.success is False


class TestOperations:
    """Inbound operations exposed by the bridge."""

    @pytest.mark.asyncio
    async def test_create_update_delete_round(self, bridge, platform, key_store):
        created = await bridge.create_contact(make_ext_contact(), TOKEN)
        updated = await bridge.update_contact(make_ext_contact(nom="Martin"), TOKEN)
        deleted = await bridge.delete_contact(EXTERNAL_ID, TOKEN)

        assert created.success and updated.success and deleted.success
        assert key_store.count(TOKEN) == 0

    @pytest.mark.asyncio
    async def test_property_passthrough(self, bridge, platform):
        platform.create_property.return_value = SyncResult(success=True, id="p1")

        result = await bridge.create_property(PropertyDefinition(name="score", type="number"), TOKEN)

        assert result.id == "p1"

    @pytest.mark.asyncio
    async def test_close_closes_collaborators(self, bridge, platform, key_store):
        key_store.close = AsyncMock()

        await bridge.close()

        platform.close.assert_awaited_once()
        key_store.close.assert_awaited_once()
