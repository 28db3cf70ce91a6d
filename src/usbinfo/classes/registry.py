"""
USB class code registry.

Parses the indentation-structured class table into lookup maps and
answers class, subclass and protocol name queries. The table is parsed
once, on the first lookup.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Iterator, NamedTuple

from usbinfo.classes.table import CLASS_TABLE


logger = logging.getLogger(__name__)

# "C 03  Human Interface Device"
_CLASS_LINE = re.compile(r"^C (?P<code>\S+) {2,}(?P<name>\S.*)$")
# "\t01  Boot Interface Subclass" / "\t\t02  Mouse"
_NESTED_LINE = re.compile(r"^(?P<indent>\t+)(?P<code>\S+) {2,}(?P<name>\S.*)$")
_HEX_BYTE = re.compile(r"^[0-9A-Fa-f]{2}$")


class ClassTableError(Exception):
    """Error parsing or reading the class table."""

    def __init__(self, message: str, line_number: int | None = None, line: str | None = None) -> None:
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}: {line!r}"
        super().__init__(message)


class ClassEntry(NamedTuple):
    """Name of a USB class."""

    class_code: int
    name: str


class SubclassEntry(NamedTuple):
    """Name of a USB subclass within its class."""

    class_code: int
    subclass_code: int
    name: str


class ProtocolEntry(NamedTuple):
    """Name of a USB protocol within its class and subclass."""

    class_code: int
    subclass_code: int
    protocol_code: int
    name: str


def _parse_code(token: str, line_number: int, line: str) -> int:
    if not _HEX_BYTE.match(token):
        raise ClassTableError(f"invalid hex byte {token!r}", line_number, line)
    return int(token, 16)


def _blank_comments(text: str) -> str:
    # Keeps line numbers of the file
    return "\n".join(
        "" if line.lstrip().startswith("#") else line for line in text.splitlines()
    )


def parse_class_table(
    text: str,
) -> tuple[list[ClassEntry], list[SubclassEntry], list[ProtocolEntry]]:
    """
    Parse class table text.

    Args:
        text: Table text; one tab per nesting level below a class line

    Returns:
        Class, subclass and protocol entries in table order

    Raises:
        ClassTableError: If a line cannot be parsed
    """
    classes: list[ClassEntry] = []
    subclasses: list[SubclassEntry] = []
    protocols: list[ProtocolEntry] = []

    class_code: int | None = None
    subclass_code: int | None = None

    for line_number, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.rstrip()
        if not line:
            continue

        match = _CLASS_LINE.match(line)
        if match:
            class_code = _parse_code(match["code"], line_number, line)
            subclass_code = None
            classes.append(ClassEntry(class_code, match["name"]))
            continue

        match = _NESTED_LINE.match(line)
        if match is None or len(match["indent"]) > 2:
            raise ClassTableError("unrecognized line", line_number, line)

        code = _parse_code(match["code"], line_number, line)
        if len(match["indent"]) == 1:
            if class_code is None:
                raise ClassTableError("subclass outside of a class", line_number, line)
            subclass_code = code
            subclasses.append(SubclassEntry(class_code, subclass_code, match["name"]))
        else:
            if class_code is None or subclass_code is None:
                raise ClassTableError("protocol outside of a subclass", line_number, line)
            protocols.append(ProtocolEntry(class_code, subclass_code, code, match["name"]))

    return classes, subclasses, protocols


class ClassCodeRegistry:
    """
    Lookup of USB class, subclass and protocol names.

    The table is parsed on first use and is read-only afterwards. Loading
    is guarded by a lock, so concurrent first lookups parse only once.
    """

    def __init__(self, text: str | None = None, path: str | Path | None = None) -> None:
        """
        Initialize registry.

        Args:
            text: Table text (defaults to the embedded table)
            path: usb.ids-style file read at load time; "#" comment
                lines are blanked before parsing
        """
        if text is not None and path is not None:
            raise ValueError("Specify either text or path, not both")
        self._text = text
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._loaded = False
        self._load_count = 0
        self._classes: dict[int, ClassEntry] = {}
        self._subclasses: dict[tuple[int, int], SubclassEntry] = {}
        self._protocols: dict[tuple[int, int, int], ProtocolEntry] = {}

    @property
    def loaded(self) -> bool:
        """Check if the table has been parsed."""
        return self._loaded

    @property
    def load_count(self) -> int:
        """Number of times the table has been parsed."""
        return self._load_count

    def _read_source(self) -> str:
        if self._path is None:
            return self._text if self._text is not None else CLASS_TABLE
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ClassTableError(f"Cannot read class table {self._path}: {e}") from e
        return _blank_comments(text)

    def ensure_loaded(self) -> None:
        """Parse the table unless it has already been parsed."""
        if self._loaded:
            return
        with self._lock:
            if self._loaded:
                return
            classes, subclasses, protocols = parse_class_table(self._read_source())
            self._load_count += 1

            self._classes = {e.class_code: e for e in classes}
            self._subclasses = {(e.class_code, e.subclass_code): e for e in subclasses}
            self._protocols = {
                (e.class_code, e.subclass_code, e.protocol_code): e for e in protocols
            }
            self._loaded = True
            logger.debug(
                "Loaded class table: %d classes, %d subclasses, %d protocols",
                len(self._classes), len(self._subclasses), len(self._protocols),
            )

    def lookup_class(self, class_code: int) -> str | None:
        """
        Get the name of a USB class.

        Args:
            class_code: USB class code

        Returns:
            Class name or None if unknown
        """
        self.ensure_loaded()
        entry = self._classes.get(class_code)
        return entry.name if entry else None

    def lookup_subclass(self, class_code: int, subclass_code: int) -> str | None:
        """
        Get the name of a USB subclass.

        Args:
            class_code: USB class code
            subclass_code: USB subclass code

        Returns:
            Subclass name or None if unknown
        """
        self.ensure_loaded()
        entry = self._subclasses.get((class_code, subclass_code))
        return entry.name if entry else None

    def lookup_protocol(
        self, class_code: int, subclass_code: int, protocol_code: int
    ) -> str | None:
        """
        Get the name of a USB protocol.

        Args:
            class_code: USB class code
            subclass_code: USB subclass code
            protocol_code: USB protocol code

        Returns:
            Protocol name or None if unknown
        """
        self.ensure_loaded()
        entry = self._protocols.get((class_code, subclass_code, protocol_code))
        return entry.name if entry else None

    def classes(self) -> Iterator[ClassEntry]:
        """Iterate over all class entries."""
        self.ensure_loaded()
        return iter(self._classes.values())

    def subclasses(self, class_code: int | None = None) -> Iterator[SubclassEntry]:
        """Iterate over subclass entries, optionally of a single class."""
        self.ensure_loaded()
        return (
            e for e in self._subclasses.values()
            if class_code is None or e.class_code == class_code
        )

    def protocols(
        self, class_code: int | None = None, subclass_code: int | None = None
    ) -> Iterator[ProtocolEntry]:
        """Iterate over protocol entries, optionally of a single class/subclass."""
        self.ensure_loaded()
        return (
            e for e in self._protocols.values()
            if (class_code is None or e.class_code == class_code)
            and (subclass_code is None or e.subclass_code == subclass_code)
        )


_default_registry: ClassCodeRegistry | None = None
_default_lock = threading.Lock()


def get_registry() -> ClassCodeRegistry:
    """Get the process-wide registry for the embedded table."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = ClassCodeRegistry()
        return _default_registry


def lookup_class(class_code: int) -> str | None:
    """Get the name of a USB class from the default registry."""
    return get_registry().lookup_class(class_code)


def lookup_subclass(class_code: int, subclass_code: int) -> str | None:
    """Get the name of a USB subclass from the default registry."""
    return get_registry().lookup_subclass(class_code, subclass_code)


def lookup_protocol(class_code: int, subclass_code: int, protocol_code: int) -> str | None:
    """Get the name of a USB protocol from the default registry."""
    return get_registry().lookup_protocol(class_code, subclass_code, protocol_code)
