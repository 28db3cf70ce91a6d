"""
USB access layer.

Device snapshots from PyUSB and hotplug events from udev.
"""

from usbinfo.device.descriptors import (
    AlternateInfo,
    DeviceInfo,
    EndpointInfo,
    InterfaceInfo,
    extract_device_info,
)
from usbinfo.device.events import (
    DeviceHandler,
    EventDispatcher,
    EventType,
    MonitorEvent,
)
from usbinfo.device.linux import (
    UdevEventSource,
    USBEnumerator,
)

__all__ = [
    # Descriptors
    "AlternateInfo",
    "DeviceInfo",
    "EndpointInfo",
    "InterfaceInfo",
    "extract_device_info",
    # Events
    "DeviceHandler",
    "EventDispatcher",
    "EventType",
    "MonitorEvent",
    # Linux access layer
    "UdevEventSource",
    "USBEnumerator",
]
