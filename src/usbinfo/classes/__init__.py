"""
USB class code registry.

Resolves class, subclass and protocol codes to their standard names.
"""

from usbinfo.classes.registry import (
    ClassCodeRegistry,
    ClassEntry,
    ClassTableError,
    ProtocolEntry,
    SubclassEntry,
    get_registry,
    lookup_class,
    lookup_protocol,
    lookup_subclass,
    parse_class_table,
)
from usbinfo.classes.table import CLASS_TABLE

__all__ = [
    "CLASS_TABLE",
    "ClassCodeRegistry",
    "ClassEntry",
    "ClassTableError",
    "ProtocolEntry",
    "SubclassEntry",
    "get_registry",
    "lookup_class",
    "lookup_protocol",
    "lookup_subclass",
    "parse_class_table",
]
