"""
Descriptor report formatting.

Renders devices as human-readable text, annotating class, subclass and
protocol codes with their registered names.
"""

from __future__ import annotations

import sys
from typing import Iterable, TextIO

from usbinfo.classes import ClassCodeRegistry, get_registry
from usbinfo.device.descriptors import AlternateInfo, DeviceInfo, EndpointInfo, InterfaceInfo


BYTES_PER_LINE = 16


def format_hex_dump(data: bytes) -> list[str]:
    """
    Format bytes as offset-prefixed hex lines.

    Args:
        data: Raw bytes

    Returns:
        One line per 16 bytes, e.g. "0010  09 04 00 00"
    """
    lines = []
    for offset in range(0, len(data), BYTES_PER_LINE):
        chunk = data[offset:offset + BYTES_PER_LINE]
        lines.append(f"{offset:04x} " + "".join(f" {b:02x}" for b in chunk))
    return lines


def _annotate(text: str, name: str | None) -> str:
    return f"{text} ({name})" if name is not None else text


class DescriptorReporter:
    """
    Text report writer for USB devices.

    Output depends only on the device and the registry; nothing is kept
    between devices.
    """

    def __init__(
        self,
        registry: ClassCodeRegistry | None = None,
        out: TextIO | None = None,
        raw_descriptors: bool = True,
    ) -> None:
        """
        Initialize reporter.

        Args:
            registry: Class code registry (defaults to the embedded table)
            out: Output stream (defaults to stdout)
            raw_descriptors: Whether to append raw descriptor dumps
        """
        self.registry = registry or get_registry()
        self.out = out
        self.raw_descriptors = raw_descriptors

    def _codes(
        self, prefix: str, width: int, class_code: int, subclass_code: int, protocol_code: int
    ) -> list[str]:
        registry = self.registry
        labels = [f"{prefix} class:", f"{prefix} subclass:", f"{prefix} protocol:"]
        names = [
            registry.lookup_class(class_code),
            registry.lookup_subclass(class_code, subclass_code),
            registry.lookup_protocol(class_code, subclass_code, protocol_code),
        ]
        return [
            _annotate(f"{label:<{width}} 0x{code:02x}", name)
            for label, code, name in zip(
                labels, (class_code, subclass_code, protocol_code), names
            )
        ]

    def _endpoint_lines(self, endpoint: EndpointInfo) -> list[str]:
        return [
            "",
            f"    Endpoint {endpoint.number}",
            f"        Direction: {endpoint.direction}",
            f"        Transfer type: {endpoint.transfer_type}",
            f"        Packet size: {endpoint.max_packet_size} bytes",
        ]

    def _alternate_lines(self, intf: InterfaceInfo, alt: AlternateInfo) -> list[str]:
        lines = [""]
        if intf.is_current(alt):
            lines.append(f"  Interface {intf.number}")
        else:
            lines.append(f"  Interface {intf.number} (alternate {alt.number})")
        lines.extend(
            "    " + line
            for line in self._codes(
                "Interface", 19, alt.class_code, alt.subclass_code, alt.protocol_code
            )
        )
        for endpoint in alt.endpoints:
            lines.extend(self._endpoint_lines(endpoint))
        return lines

    def format_device(self, device: DeviceInfo) -> str:
        """
        Format a single device.

        Args:
            device: Device to describe

        Returns:
            Report text, ending with a blank separator line
        """
        lines = [
            "Device:",
            f"  VID: 0x{device.vendor_id:04x}",
            f"  PID: 0x{device.product_id:04x}",
        ]
        if device.manufacturer is not None:
            lines.append(f"  Manufacturer:  {device.manufacturer}")
        if device.product is not None:
            lines.append(f"  Product name:  {device.product}")
        if device.serial is not None:
            lines.append(f"  Serial number: {device.serial}")
        lines.extend(
            "  " + line
            for line in self._codes(
                "Device", 16, device.class_code, device.subclass_code, device.protocol_code
            )
        )

        for intf in device.interfaces:
            for alt in intf.alternates:
                lines.extend(self._alternate_lines(intf, alt))

        if self.raw_descriptors:
            for title, data in (
                ("Device descriptor", device.device_descriptor),
                ("Configuration descriptor", device.configuration_descriptor),
            ):
                lines.extend(["", title])
                lines.extend(format_hex_dump(data))

        lines.extend(["", ""])
        return "\n".join(lines) + "\n"

    def report_device(self, device: DeviceInfo) -> None:
        """Write the report of a single device."""
        out = self.out if self.out is not None else sys.stdout
        out.write(self.format_device(device))

    def report(self, devices: Iterable[DeviceInfo]) -> int:
        """
        Write reports for all devices.

        Returns:
            Number of devices reported
        """
        count = 0
        for device in devices:
            self.report_device(device)
            count += 1
        return count
