"""Transport-neutral routing of platform events to listeners.

Whatever receives platform events (a web framework route, a queue worker...)
builds an EventPayload and calls ``EventDispatcher.dispatch``. The returned
EventResponse is what goes back to the platform.
"""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from contactbridge.models import EventPayload, EventResponse, SyncResult

logger = logging.getLogger(__name__)

Listener = Callable[[EventPayload], Awaitable[EventResponse]]


class Event(str, Enum):
    """Platform event kinds."""

    INSTALL = "install"
    UNINSTALL = "uninstall"
    CONTACT_CREATED = "contact_created"
    CONTACT_UPDATED = "contact_updated"
    CONTACT_DELETED = "contact_deleted"
    SETTINGS_PAGE = "settings_page"
    UPDATE_SETTINGS = "update_settings"


class EventDispatcher:
    """Holds one listener per event kind. Registering again replaces it."""

    events = Event

    def __init__(self) -> None:
        self._listeners: dict[str, Listener] = {}

    def on_event(self, event: Event | str, listener: Listener) -> None:
        self._listeners[Event(event).value] = listener

    def on_install(self, listener: Listener) -> None:
        self.on_event(Event.INSTALL, listener)

    def on_uninstall(self, listener: Listener) -> None:
        self.on_event(Event.UNINSTALL, listener)

    def on_settings_page(self, listener: Listener) -> None:
        self.on_event(Event.SETTINGS_PAGE, listener)

    def on_update_settings(self, listener: Listener) -> None:
        self.on_event(Event.UPDATE_SETTINGS, listener)

    def has_listener(self, event: Event | str) -> bool:
        return Event(event).value in self._listeners

    async def dispatch(self, event: Event | str, payload: EventPayload | dict) -> EventResponse:
        """Run the listener registered for ``event``."""
        if not isinstance(payload, EventPayload):
            payload = EventPayload.model_validate(payload)

        try:
            key = Event(event).value
        except ValueError:
            key = str(event)

        listener = self._listeners.get(key)
        if listener is None:
            logger.warning(f"No listener for event {key}")
            return EventResponse(data=SyncResult(success=False, error="unhandled event"))

        logger.debug(f"Dispatching {key}")
        return await listener(payload)
