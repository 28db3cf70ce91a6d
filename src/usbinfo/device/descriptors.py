"""
USB device data structures.

Read-only snapshot of a device, its interfaces, alternate settings and
endpoints, as supplied by the USB access layer.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Any


logger = logging.getLogger(__name__)

TRANSFER_TYPES = ("Control", "Isochronous", "Bulk", "Interrupt")

DEVICE_DESCRIPTOR = struct.Struct("<BBHBBBBHHHBBBB")
CONFIGURATION_DESCRIPTOR = struct.Struct("<BBHBBBBB")
INTERFACE_DESCRIPTOR = struct.Struct("<BBBBBBBBB")
ENDPOINT_DESCRIPTOR = struct.Struct("<BBBBHB")


@dataclass
class EndpointInfo:
    """USB endpoint of an alternate setting."""

    address: int
    attributes: int
    max_packet_size: int
    interval: int = 0

    @property
    def number(self) -> int:
        """Get endpoint number (without direction bit)."""
        return self.address & 0x0F

    @property
    def direction(self) -> str:
        """Get endpoint direction (IN or OUT)."""
        return "IN" if self.address & 0x80 else "OUT"

    @property
    def transfer_type(self) -> str:
        """Get transfer type."""
        return TRANSFER_TYPES[self.attributes & 0x03]


@dataclass
class AlternateInfo:
    """Alternate setting of a USB interface."""

    number: int
    class_code: int
    subclass_code: int
    protocol_code: int
    endpoints: list[EndpointInfo] = field(default_factory=list)


@dataclass
class InterfaceInfo:
    """
    USB interface with its alternate settings.

    The active alternate is identified by its alternate setting number.
    """

    number: int
    alternates: list[AlternateInfo] = field(default_factory=list)
    current_alternate: int = 0

    def is_current(self, alt: AlternateInfo) -> bool:
        """Check if the alternate setting is the active one."""
        return alt.number == self.current_alternate


@dataclass
class DeviceInfo:
    """USB device with descriptor data."""

    vendor_id: int
    product_id: int
    class_code: int = 0
    subclass_code: int = 0
    protocol_code: int = 0
    manufacturer: str | None = None
    product: str | None = None
    serial: str | None = None
    interfaces: list[InterfaceInfo] = field(default_factory=list)
    device_descriptor: bytes = b""
    configuration_descriptor: bytes = b""
    bus: int | None = None
    address: int | None = None

    @property
    def vid(self) -> str:
        """Get vendor ID as hex string."""
        return f"{self.vendor_id:04x}"

    @property
    def pid(self) -> str:
        """Get product ID as hex string."""
        return f"{self.product_id:04x}"

    @property
    def device_id(self) -> str | None:
        """Get unique device identifier (bus:address)."""
        if self.bus is None or self.address is None:
            return None
        return f"{self.bus}:{self.address}"

    def summary(self) -> str:
        """Single-line description of the device."""
        return (
            f"VID: 0x{self.vendor_id:04x}, PID: 0x{self.product_id:04x}, "
            f"manufacturer: {self.manufacturer}, product: {self.product}, "
            f"serial: {self.serial}, ID: {self.device_id}"
        )


def _read_string(dev: Any, index: int) -> str | None:
    """Read a string descriptor, returning None if unavailable."""
    import usb.core
    import usb.util

    if not index:
        return None
    try:
        return usb.util.get_string(dev, index)
    except (usb.core.USBError, ValueError, NotImplementedError) as e:
        logger.debug(
            "Cannot read string %d of %04x:%04x: %s",
            index, dev.idVendor, dev.idProduct, e,
        )
        return None


def pack_device_descriptor(dev: Any) -> bytes:
    """
    Serialize the standard device descriptor of a PyUSB device.

    Args:
        dev: usb.core.Device object

    Returns:
        18-byte device descriptor
    """
    return DEVICE_DESCRIPTOR.pack(
        dev.bLength,
        dev.bDescriptorType,
        dev.bcdUSB,
        dev.bDeviceClass,
        dev.bDeviceSubClass,
        dev.bDeviceProtocol,
        dev.bMaxPacketSize0,
        dev.idVendor,
        dev.idProduct,
        dev.bcdDevice,
        dev.iManufacturer,
        dev.iProduct,
        dev.iSerialNumber,
        dev.bNumConfigurations,
    )


def pack_configuration_descriptor(cfg: Any) -> bytes:
    """
    Serialize a PyUSB configuration with its interfaces and endpoints.

    Class-specific descriptors are kept in their original position.

    Args:
        cfg: usb.core.Configuration object

    Returns:
        Configuration descriptor bytes (wTotalLength bytes)
    """
    parts = [
        CONFIGURATION_DESCRIPTOR.pack(
            cfg.bLength,
            cfg.bDescriptorType,
            cfg.wTotalLength,
            cfg.bNumInterfaces,
            cfg.bConfigurationValue,
            cfg.iConfiguration,
            cfg.bmAttributes,
            cfg.bMaxPower,
        ),
        bytes(cfg.extra_descriptors),
    ]
    for intf in cfg:
        parts.append(
            INTERFACE_DESCRIPTOR.pack(
                intf.bLength,
                intf.bDescriptorType,
                intf.bInterfaceNumber,
                intf.bAlternateSetting,
                intf.bNumEndpoints,
                intf.bInterfaceClass,
                intf.bInterfaceSubClass,
                intf.bInterfaceProtocol,
                intf.iInterface,
            )
        )
        parts.append(bytes(intf.extra_descriptors))
        for ep in intf:
            parts.append(
                ENDPOINT_DESCRIPTOR.pack(
                    ep.bLength,
                    ep.bDescriptorType,
                    ep.bEndpointAddress,
                    ep.bmAttributes,
                    ep.wMaxPacketSize,
                    ep.bInterval,
                )
            )
            # 9-byte audio endpoint descriptors
            if ep.bLength > ENDPOINT_DESCRIPTOR.size:
                parts.append(bytes((ep.bRefresh, ep.bSynchAddress)))
            parts.append(bytes(ep.extra_descriptors))
    return b"".join(parts)


def extract_device_info(dev: Any) -> DeviceInfo:
    """
    Extract device information from a PyUSB device object.

    Only the first configuration is described. Alternate settings are
    grouped by interface number; alternate 0 is reported as active.

    Args:
        dev: usb.core.Device object

    Returns:
        DeviceInfo with parsed information
    """
    interfaces: dict[int, InterfaceInfo] = {}
    configuration_descriptor = b""

    cfg = next(iter(dev), None)
    if cfg is not None:
        for intf in cfg:
            endpoints = [
                EndpointInfo(
                    address=ep.bEndpointAddress,
                    attributes=ep.bmAttributes,
                    max_packet_size=ep.wMaxPacketSize,
                    interval=ep.bInterval,
                )
                for ep in intf
            ]
            info = interfaces.setdefault(
                intf.bInterfaceNumber, InterfaceInfo(number=intf.bInterfaceNumber)
            )
            info.alternates.append(
                AlternateInfo(
                    number=intf.bAlternateSetting,
                    class_code=intf.bInterfaceClass,
                    subclass_code=intf.bInterfaceSubClass,
                    protocol_code=intf.bInterfaceProtocol,
                    endpoints=endpoints,
                )
            )
        configuration_descriptor = pack_configuration_descriptor(cfg)

    return DeviceInfo(
        vendor_id=dev.idVendor,
        product_id=dev.idProduct,
        class_code=dev.bDeviceClass,
        subclass_code=dev.bDeviceSubClass,
        protocol_code=dev.bDeviceProtocol,
        manufacturer=_read_string(dev, dev.iManufacturer),
        product=_read_string(dev, dev.iProduct),
        serial=_read_string(dev, dev.iSerialNumber),
        interfaces=list(interfaces.values()),
        device_descriptor=pack_device_descriptor(dev),
        configuration_descriptor=configuration_descriptor,
        bus=dev.bus,
        address=dev.address,
    )
