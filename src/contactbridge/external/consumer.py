"""External API consumer interface.

Each integration supplies a subclass talking to its own service. The base
class owns pagination: subclasses only list a single page.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable

from contactbridge.exceptions import RemoteCallError
from contactbridge.models import BulkResult, ContactPage, ContactRecord, Identifier, SyncResult

logger = logging.getLogger(__name__)

PageCallback = Callable[[list[ContactRecord]], Awaitable[BulkResult]]


class PageFetchError(RemoteCallError):
    """A page of contacts could not be listed."""

    def __init__(self, page: int, error: object):
        self.page = page
        self.error = error
        super().__init__(f"Failed to list page {page}: {error}")


class ExternalAPIConsumer(ABC):
    """Abstract interface to the external system's contacts."""

    @abstractmethod
    async def create_contact(self, contact: ContactRecord) -> SyncResult:
        """Create a contact, returning its external id on success."""
        ...

    @abstractmethod
    async def update_contact(self, contact: ContactRecord) -> SyncResult:
        """Update the contact identified by its identity field."""
        ...

    @abstractmethod
    async def delete_contact(self, contact_id: Identifier) -> SyncResult:
        ...

    @abstractmethod
    async def list_contacts(self, page: int, page_size: int) -> ContactPage:
        """List one page of contacts. Pages are numbered from 1."""
        ...

    async def iter_pages(self, page_size: int = 30) -> AsyncIterator[list[ContactRecord]]:
        """Yield non-empty pages until an empty one.

        Raises PageFetchError when a page cannot be listed. The sequence is
        lazy and cannot be restarted.
        """
        page = 1
        while True:
            try:
                result = await self.list_contacts(page, page_size)
            except RemoteCallError as e:
                raise PageFetchError(page, e) from e

            if not result.success:
                raise PageFetchError(page, result.error)
            if not result.contacts:
                logger.debug(f"Page {page} is empty, listing complete")
                return

            yield result.contacts
            page += 1

    async def list_all_contacts(self, page_size: int, callback: PageCallback) -> BulkResult:
        """Hand every page to ``callback`` and aggregate the results.

        A fetch error stops the listing and is recorded; pages already
        processed are kept.
        """
        results: list[BulkResult] = []
        try:
            async for contacts in self.iter_pages(page_size):
                results.append(await callback(contacts))
        except PageFetchError as e:
            logger.error(str(e))
            results.append(BulkResult(success=False, error=[str(e)]))

        total = BulkResult.aggregate(results)
        if not total.success:
            logger.error(f"Listing all contacts finished with {len(total.error)} error(s)")
        return total
