"""Test configuration and fixtures."""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from contactbridge.config import Settings
from contactbridge.external.consumer import ExternalAPIConsumer
from contactbridge.mapping import FieldMapper
from contactbridge.models import (
    BulkCreateResult,
    BulkResult,
    ContactPage,
    FieldMapping,
    SyncResult,
)
from contactbridge.platform_api.client import PlatformClient
from contactbridge.store.memory import InMemoryIdentityStore
from contactbridge.sync import ContactSyncer

TOKEN = "integration-token"
PLATFORM_ID = "234"
EXTERNAL_ID = 19597


def ext_date_to_iso(value: str) -> str:
    """'2017-07-12 12:23:45' -> '2017-07-12T12:23:45.000Z'"""
    parsed = datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def iso_to_ext_date(value: str) -> str:
    """'2017-07-12T12:23:45.000Z' -> '2017-07-12 12:23:45'"""
    return value.replace("T", " ").split(".")[0]


def to_int(value):
    return int(value) if isinstance(value, str) else value


MAPPINGS = [
    FieldMapping(platform={"name": "id"}, external={"name": "id", "transform": to_int}),
    FieldMapping(platform={"name": "firstname"}, external={"name": "prenom"}),
    FieldMapping(platform={"name": "lastname"}, external={"name": "nom"}),
    FieldMapping(platform={"name": "email"}, external={"name": "email"}),
    FieldMapping(platform={"name": "phone"}, external={"name": "telephone"}),
    FieldMapping(
        platform={"name": "signup_date", "type": "date", "transform": ext_date_to_iso},
        external={"name": "date_inscription", "transform": iso_to_ext_date},
    ),
    FieldMapping(platform={"name": "validation", "type": "number"}, external={"name": "validation"}),
    FieldMapping(platform={"name": "account"}, external={"name": "compte"}),
]


def make_ext_contact(ext_id=EXTERNAL_ID, **overrides) -> dict:
    contact = {
        "id": ext_id,
        "prenom": "Giselle",
        "nom": "Maroin",
        "date_inscription": "2017-07-12 12:23:45",
        "email": "giselle.maroin@gmail.com",
        "telephone": "06 19 34 56 78",
        "validation": "1",
        "compte": "candidat",
    }
    contact.update(overrides)
    return contact


def make_platform_contact(platform_id=PLATFORM_ID, **overrides) -> dict:
    contact = {
        "id": platform_id,
        "firstname": "Giselle",
        "lastname": "Maroin",
        "email": "giselle.maroin@gmail.com",
        "phone": "06 34 56 78 90",
        "validation": "1",
        "signup_date": "2017-07-12T12:23:45.000Z",
        "account": "candidat",
    }
    contact.update(overrides)
    return contact


class FakeConsumer(ExternalAPIConsumer):
    """In-memory external service recording every call."""

    def __init__(self, pages: list[list[dict]] | None = None):
        self.pages = pages or []
        self.page_error: int | None = None
        self.create_result = SyncResult(success=True, id=EXTERNAL_ID)
        self.update_result = SyncResult(success=True)
        self.delete_result = SyncResult(success=True)
        self.created: list[dict] = []
        self.updated: list[dict] = []
        self.deleted: list = []
        self.listed_pages: list[tuple[int, int]] = []

    async def create_contact(self, contact):
        self.created.append(contact)
        return self.create_result

    async def update_contact(self, contact):
        self.updated.append(contact)
        return self.update_result

    async def delete_contact(self, contact_id):
        self.deleted.append(contact_id)
        return self.delete_result

    async def list_contacts(self, page, page_size):
        self.listed_pages.append((page, page_size))
        if page == self.page_error:
            return ContactPage(success=False, error="listing unavailable")
        if page <= len(self.pages):
            return ContactPage(contacts=self.pages[page - 1])
        return ContactPage(contacts=[])


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def mapper() -> FieldMapper:
    return FieldMapper(MAPPINGS)


@pytest.fixture
def key_store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore()


@pytest.fixture
def consumer() -> FakeConsumer:
    return FakeConsumer()


@pytest.fixture
def platform() -> AsyncMock:
    platform = AsyncMock(spec=PlatformClient)
    platform.create_contact.return_value = SyncResult(success=True, id=PLATFORM_ID)
    platform.update_contact.return_value = SyncResult(success=True)
    platform.delete_contact.return_value = SyncResult(success=True)
    platform.create_properties.return_value = BulkResult(success=True)
    platform.create_contacts.return_value = BulkCreateResult(success=True, contacts=[])
    return platform


@pytest.fixture
def syncer(consumer, mapper, key_store, platform) -> ContactSyncer:
    return ContactSyncer(consumer, mapper, key_store, platform)
