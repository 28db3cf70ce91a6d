"""
Device presence monitor.

Reports devices already attached at start as "present", then forwards
connect/disconnect events until a stop signal arrives.
"""

from __future__ import annotations

import logging
import sys
import threading
from enum import Enum
from typing import Any, Callable, Protocol, TextIO

from usbinfo.device.descriptors import DeviceInfo
from usbinfo.device.events import DeviceHandler, EventType, MonitorEvent


logger = logging.getLogger(__name__)

EVENT_LABEL_WIDTH = 14

StopSignal = Callable[[], Any]


class DeviceSource(Protocol):
    """
    USB access layer consumed by the monitor.

    Handlers may be called on the source's own threads, concurrently with
    each other and with the initial enumeration. A source that delivers
    events before subscription returns can race with the "present" pass.
    """

    def enumerate_devices(self) -> list[DeviceInfo]:
        ...

    def subscribe_connected(self, handler: DeviceHandler) -> None:
        ...

    def subscribe_disconnected(self, handler: DeviceHandler) -> None:
        ...


class MonitorState(Enum):
    """Monitor lifecycle state."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class MonitorStateError(Exception):
    """Monitor used in an invalid state."""

    pass


def wait_for_line(stream: TextIO | None = None) -> StopSignal:
    """
    Stop signal that waits for a line of input.

    Args:
        stream: Input stream (defaults to stdin at call time)
    """

    def wait() -> str:
        return (stream if stream is not None else sys.stdin).readline()

    return wait


def event_signal(event: threading.Event) -> StopSignal:
    """Stop signal that waits for a threading.Event to be set."""
    return event.wait


def format_event(event: MonitorEvent) -> str:
    """
    Format an event as a single line.

    Example:
        "Connected:    VID: 0x046d, PID: 0xc534, ..."
    """
    label = f"{event.event_type.label}:"
    return f"{label:<{EVENT_LABEL_WIDTH}}{event.device.summary()}"


class PresenceMonitor:
    """
    Presence monitor over a device source.

    The monitor runs once: NOT_STARTED -> RUNNING -> STOPPED.
    """

    def __init__(self, source: DeviceSource, stop_signal: StopSignal | None = None) -> None:
        """
        Initialize monitor.

        Args:
            source: Device source providing enumeration and subscriptions
            stop_signal: Blocking callable that returns when monitoring
                should end (defaults to reading a line from stdin)
        """
        self.source = source
        self.stop_signal = stop_signal or wait_for_line()
        self._state = MonitorState.NOT_STARTED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> MonitorState:
        """Get current lifecycle state."""
        return self._state

    def _transition(self, expected: MonitorState, new: MonitorState) -> None:
        with self._state_lock:
            if self._state is not expected:
                raise MonitorStateError(
                    f"Monitor is {self._state.value}, expected {expected.value}"
                )
            self._state = new

    def start(
        self,
        on_connected: DeviceHandler,
        on_disconnected: DeviceHandler,
        on_present: DeviceHandler | None = None,
    ) -> None:
        """
        Subscribe, report present devices and block until stopped.

        Args:
            on_connected: Called for each connected device
            on_disconnected: Called for each disconnected device
            on_present: Called for each device attached at start
                (defaults to on_connected)

        Raises:
            MonitorStateError: If the monitor has already been started
        """
        self._transition(MonitorState.NOT_STARTED, MonitorState.RUNNING)
        try:
            self.source.subscribe_connected(on_connected)
            self.source.subscribe_disconnected(on_disconnected)

            present = on_present or on_connected
            devices = self.source.enumerate_devices()
            logger.info("Monitoring USB devices (%d present)", len(devices))
            for device in devices:
                present(device)

            self.stop_signal()
        finally:
            self._transition(MonitorState.RUNNING, MonitorState.STOPPED)
            logger.info("USB monitor stopped")

    def run(self, handler: Callable[[MonitorEvent], None]) -> None:
        """
        Monitor with a single handler receiving MonitorEvent objects.

        Args:
            handler: Called once per event, including present devices
        """

        def forward(event_type: EventType) -> DeviceHandler:
            return lambda device: handler(MonitorEvent(event_type, device))

        self.start(
            forward(EventType.CONNECTED),
            forward(EventType.DISCONNECTED),
            forward(EventType.PRESENT),
        )
