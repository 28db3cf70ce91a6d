"""
Pydantic schemas for structured (JSON) output.

Mirror the text report: codes plus resolved names, raw descriptors as hex.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from usbinfo.classes import ClassCodeRegistry, get_registry
from usbinfo.device.descriptors import AlternateInfo, DeviceInfo, EndpointInfo, InterfaceInfo
from usbinfo.device.events import EventType, MonitorEvent


# ============================================================================
# Descriptor Schemas
# ============================================================================


class EndpointSchema(BaseModel):
    """Endpoint of an alternate setting."""

    number: int = Field(..., ge=0, le=15)
    address: int = Field(..., ge=0, le=0xFF)
    direction: str
    transfer_type: str
    max_packet_size: int = Field(..., ge=0)

    @classmethod
    def from_endpoint(cls, endpoint: EndpointInfo) -> EndpointSchema:
        return cls(
            number=endpoint.number,
            address=endpoint.address,
            direction=endpoint.direction,
            transfer_type=endpoint.transfer_type,
            max_packet_size=endpoint.max_packet_size,
        )


class CodesSchema(BaseModel):
    """Class, subclass and protocol codes with resolved names."""

    class_code: int = Field(..., ge=0, le=0xFF)
    class_name: str | None = None
    subclass_code: int = Field(..., ge=0, le=0xFF)
    subclass_name: str | None = None
    protocol_code: int = Field(..., ge=0, le=0xFF)
    protocol_name: str | None = None

    @classmethod
    def resolve(
        cls,
        registry: ClassCodeRegistry,
        class_code: int,
        subclass_code: int,
        protocol_code: int,
    ) -> CodesSchema:
        return cls(
            class_code=class_code,
            class_name=registry.lookup_class(class_code),
            subclass_code=subclass_code,
            subclass_name=registry.lookup_subclass(class_code, subclass_code),
            protocol_code=protocol_code,
            protocol_name=registry.lookup_protocol(class_code, subclass_code, protocol_code),
        )


class AlternateSchema(CodesSchema):
    """Alternate setting of an interface."""

    number: int = Field(..., ge=0, le=0xFF)
    current: bool = False
    endpoints: list[EndpointSchema] = Field(default_factory=list)


class InterfaceSchema(BaseModel):
    """Interface with all its alternate settings."""

    number: int = Field(..., ge=0, le=0xFF)
    alternates: list[AlternateSchema] = Field(default_factory=list)


class DeviceSchema(CodesSchema):
    """Device report."""

    vid: str = Field(..., pattern=r"^[0-9a-f]{4}$")
    pid: str = Field(..., pattern=r"^[0-9a-f]{4}$")
    device_id: str | None = None
    manufacturer: str | None = None
    product: str | None = None
    serial: str | None = None
    interfaces: list[InterfaceSchema] = Field(default_factory=list)
    device_descriptor: str = ""
    configuration_descriptor: str = ""

    @classmethod
    def from_device(
        cls, device: DeviceInfo, registry: ClassCodeRegistry | None = None
    ) -> DeviceSchema:
        """Build the schema of a device, resolving code names."""
        registry = registry or get_registry()
        codes = CodesSchema.resolve(
            registry, device.class_code, device.subclass_code, device.protocol_code
        )
        return cls(
            **codes.model_dump(),
            vid=device.vid,
            pid=device.pid,
            device_id=device.device_id,
            manufacturer=device.manufacturer,
            product=device.product,
            serial=device.serial,
            interfaces=[_interface(intf, registry) for intf in device.interfaces],
            device_descriptor=device.device_descriptor.hex(),
            configuration_descriptor=device.configuration_descriptor.hex(),
        )


def _alternate(
    intf: InterfaceInfo, alt: AlternateInfo, registry: ClassCodeRegistry
) -> AlternateSchema:
    codes = CodesSchema.resolve(registry, alt.class_code, alt.subclass_code, alt.protocol_code)
    return AlternateSchema(
        **codes.model_dump(),
        number=alt.number,
        current=intf.is_current(alt),
        endpoints=[EndpointSchema.from_endpoint(ep) for ep in alt.endpoints],
    )


def _interface(intf: InterfaceInfo, registry: ClassCodeRegistry) -> InterfaceSchema:
    return InterfaceSchema(
        number=intf.number,
        alternates=[_alternate(intf, alt, registry) for alt in intf.alternates],
    )


# ============================================================================
# Monitor Schemas
# ============================================================================


class MonitorEventSchema(BaseModel):
    """Presence event."""

    event: EventType
    timestamp: datetime
    device: DeviceSchema

    @classmethod
    def from_event(
        cls, event: MonitorEvent, registry: ClassCodeRegistry | None = None
    ) -> MonitorEventSchema:
        return cls(
            event=event.event_type,
            timestamp=event.timestamp,
            device=DeviceSchema.from_device(event.device, registry),
        )
