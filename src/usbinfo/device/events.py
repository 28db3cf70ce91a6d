"""
USB presence events and handler dispatch.

Events are delivered on whatever thread the event source uses; the
dispatcher only guards its handler lists.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from usbinfo.device.descriptors import DeviceInfo


logger = logging.getLogger(__name__)


class EventType(Enum):
    """USB presence event types."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    PRESENT = "present"

    @property
    def label(self) -> str:
        """Display label of the event type."""
        return self.value.capitalize()


@dataclass
class MonitorEvent:
    """Device presence event."""

    event_type: EventType
    device: DeviceInfo
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


DeviceHandler = Callable[[DeviceInfo], None]


class EventDispatcher:
    """
    Registry of device handlers per event type.

    Handlers are called in registration order on the dispatching thread.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[DeviceHandler]] = {}
        self._lock = threading.Lock()

    def register(self, event_type: EventType, handler: DeviceHandler) -> None:
        """
        Register a handler for an event type.

        Args:
            event_type: Type of event to handle
            handler: Function called with the device
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Registered handler for %s", event_type.value)

    def dispatch(self, event_type: EventType, device: DeviceInfo) -> int:
        """
        Dispatch a device to all handlers of an event type.

        Handler errors are logged and do not stop other handlers.

        Args:
            event_type: Type of event
            device: Device the event refers to

        Returns:
            Number of handlers that completed without error
        """
        with self._lock:
            handlers = list(self._handlers.get(event_type, []))

        completed = 0
        for handler in handlers:
            try:
                handler(device)
                completed += 1
            except Exception as e:
                logger.error("Handler error for %s: %s", event_type.value, e, exc_info=True)
        return completed
