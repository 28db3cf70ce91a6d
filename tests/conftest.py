"""
Pytest configuration and shared fixtures for usbinfo tests.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from usbinfo.classes import ClassCodeRegistry
from usbinfo.device.descriptors import (
    AlternateInfo,
    DeviceInfo,
    EndpointInfo,
    InterfaceInfo,
)
from usbinfo.device.events import DeviceHandler


class FakeDeviceSource:
    """In-memory device source delivering events on demand."""

    def __init__(self, devices: list[DeviceInfo] | None = None) -> None:
        self.devices = list(devices or [])
        self.connected: list[DeviceHandler] = []
        self.disconnected: list[DeviceHandler] = []

    def enumerate_devices(self) -> list[DeviceInfo]:
        return list(self.devices)

    def subscribe_connected(self, handler: DeviceHandler) -> None:
        self.connected.append(handler)

    def subscribe_disconnected(self, handler: DeviceHandler) -> None:
        self.disconnected.append(handler)

    def fire_connected(self, device: DeviceInfo) -> None:
        self.devices.append(device)
        for handler in self.connected:
            handler(device)

    def fire_disconnected(self, device: DeviceInfo) -> None:
        self.devices.remove(device)
        for handler in self.disconnected:
            handler(device)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "usbinfo.yaml"
    config_data = {
        "logging": {
            "log_level": "debug",
        },
        "report": {
            "format": "text",
            "raw_descriptors": False,
        },
        "monitor": {
            "details": True,
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def registry() -> ClassCodeRegistry:
    """Fresh registry over the embedded class table."""
    return ClassCodeRegistry()


@pytest.fixture
def hid_mouse() -> DeviceInfo:
    """Boot protocol mouse without string descriptors."""
    return DeviceInfo(
        vendor_id=0x1234,
        product_id=0x5678,
        class_code=0x03,
        subclass_code=0x01,
        protocol_code=0x02,
        interfaces=[
            InterfaceInfo(
                number=0,
                alternates=[
                    AlternateInfo(
                        number=0,
                        class_code=0x03,
                        subclass_code=0x01,
                        protocol_code=0x02,
                        endpoints=[
                            EndpointInfo(
                                address=0x81,
                                attributes=0x03,
                                max_packet_size=8,
                                interval=10,
                            )
                        ],
                    )
                ],
            )
        ],
        device_descriptor=bytes.fromhex("120100020000000834127856000100000001"),
        configuration_descriptor=bytes(range(20)),
        bus=1,
        address=4,
    )


@pytest.fixture
def flash_drive() -> DeviceInfo:
    """Bulk-only mass storage device with string descriptors."""
    return DeviceInfo(
        vendor_id=0x0781,
        product_id=0x5581,
        manufacturer="SanDisk",
        product="Ultra",
        serial="4C530001",
        interfaces=[
            InterfaceInfo(
                number=0,
                alternates=[
                    AlternateInfo(
                        number=0,
                        class_code=0x08,
                        subclass_code=0x06,
                        protocol_code=0x50,
                        endpoints=[
                            EndpointInfo(address=0x81, attributes=0x02, max_packet_size=512),
                            EndpointInfo(address=0x02, attributes=0x02, max_packet_size=512),
                        ],
                    )
                ],
            )
        ],
        bus=2,
        address=3,
    )


@pytest.fixture
def fake_source() -> FakeDeviceSource:
    """Device source with no devices attached."""
    return FakeDeviceSource()
