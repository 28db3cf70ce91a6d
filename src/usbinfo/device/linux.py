"""
Linux USB access layer.

Enumerates devices with PyUSB and delivers connect/disconnect events
from udev (pyudev) on a background observer thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import usb.core

from usbinfo.device.descriptors import DeviceInfo, extract_device_info
from usbinfo.device.events import DeviceHandler, EventDispatcher, EventType


logger = logging.getLogger(__name__)


class USBEnumerator:
    """
    USB device enumerator using PyUSB.

    Provides static enumeration of currently connected devices.
    """

    def __init__(self, backend: Any = None) -> None:
        self._backend = backend

    def enumerate_all(self) -> list[DeviceInfo]:
        """
        Enumerate all currently connected USB devices.

        Returns:
            List of DeviceInfo for each connected device.

        Raises:
            usb.core.NoBackendError: If no libusb backend is available.
        """
        devices = []
        try:
            for dev in usb.core.find(find_all=True, backend=self._backend):
                try:
                    devices.append(extract_device_info(dev))
                except usb.core.USBError as e:
                    logger.warning(
                        "Failed to read device %04x:%04x: %s",
                        dev.idVendor, dev.idProduct, e
                    )
        except usb.core.NoBackendError:
            logger.error("No USB backend available. Install libusb.")
            raise
        return devices

    def find_device(self, bus: int, address: int) -> DeviceInfo | None:
        """
        Find a specific device by bus and address.

        Args:
            bus: USB bus number
            address: Device address on bus

        Returns:
            DeviceInfo if found, None otherwise.
        """
        dev = usb.core.find(bus=bus, address=address, backend=self._backend)
        if dev is None:
            return None
        try:
            return extract_device_info(dev)
        except usb.core.USBError as e:
            logger.warning("Failed to read device at %d:%d: %s", bus, address, e)
            return None


def _hex_property(device: Any, name: str) -> int:
    value = device.get(name)
    try:
        return int(value, 16) if value else 0
    except ValueError:
        return 0


class UdevEventSource:
    """
    Device source with udev hotplug notifications.

    Connect and disconnect handlers run on the pyudev observer thread and
    may run concurrently with the caller's own enumeration.
    """

    def __init__(self, enumerator: USBEnumerator | None = None) -> None:
        self.enumerator = enumerator or USBEnumerator()
        self.dispatcher = EventDispatcher()
        self._known: dict[tuple[int, int], DeviceInfo] = {}
        self._known_lock = threading.Lock()
        self._observer: Any = None

    def __enter__(self) -> UdevEventSource:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        """Check if the udev observer is running."""
        return self._observer is not None

    def start(self) -> None:
        """Start the udev observer thread."""
        if self._observer is not None:
            return
        import pyudev

        context = pyudev.Context()
        monitor = pyudev.Monitor.from_netlink(context)
        monitor.filter_by(subsystem="usb", device_type="usb_device")
        self._observer = pyudev.MonitorObserver(
            monitor, callback=self._on_udev_event, name="usbinfo-udev"
        )
        self._observer.start()
        logger.info("Started udev observer")

    def stop(self) -> None:
        """Stop the udev observer thread."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer = None
        logger.info("Stopped udev observer")

    def enumerate_devices(self) -> list[DeviceInfo]:
        """Get all currently connected devices."""
        devices = self.enumerator.enumerate_all()
        with self._known_lock:
            for device in devices:
                self._remember(device)
        return devices

    def subscribe_connected(self, handler: DeviceHandler) -> None:
        """Register a handler for connected devices."""
        self.dispatcher.register(EventType.CONNECTED, handler)

    def subscribe_disconnected(self, handler: DeviceHandler) -> None:
        """Register a handler for disconnected devices."""
        self.dispatcher.register(EventType.DISCONNECTED, handler)

    def _remember(self, device: DeviceInfo) -> None:
        if device.bus is not None and device.address is not None:
            self._known[(device.bus, device.address)] = device

    def _device_from_udev(self, device: Any, bus: int, address: int) -> DeviceInfo:
        """Build a minimal device from udev properties."""
        return DeviceInfo(
            vendor_id=_hex_property(device, "ID_VENDOR_ID"),
            product_id=_hex_property(device, "ID_MODEL_ID"),
            manufacturer=device.get("ID_VENDOR"),
            product=device.get("ID_MODEL"),
            serial=device.get("ID_SERIAL_SHORT"),
            bus=bus,
            address=address,
        )

    def _on_udev_event(self, device: Any) -> None:
        """Translate a pyudev device event into a dispatched DeviceInfo."""
        action = device.action
        if action not in ("add", "remove"):
            return

        bus_num = device.get("BUSNUM")
        dev_num = device.get("DEVNUM")
        if bus_num is None or dev_num is None:
            logger.debug("Ignoring udev event without bus/address: %s", device.sys_path)
            return
        key = (int(bus_num), int(dev_num))

        if action == "add":
            info = self.enumerator.find_device(*key)
            if info is None:
                info = self._device_from_udev(device, *key)
            with self._known_lock:
                self._remember(info)
            event_type = EventType.CONNECTED
        else:
            with self._known_lock:
                info = self._known.pop(key, None)
            if info is None:
                info = self._device_from_udev(device, *key)
            event_type = EventType.DISCONNECTED

        logger.debug("USB event: %s %d:%d (%s:%s)", action, key[0], key[1], info.vid, info.pid)
        self.dispatcher.dispatch(event_type, info)
