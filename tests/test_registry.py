"""
Tests for the USB class code registry.
"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from usbinfo.classes import (
    CLASS_TABLE,
    ClassCodeRegistry,
    ClassTableError,
    get_registry,
    lookup_class,
    lookup_protocol,
    lookup_subclass,
    parse_class_table,
)


class TestParseClassTable:
    """Tests for parse_class_table."""

    def test_embedded_table(self) -> None:
        """Test that the embedded table parses."""
        classes, subclasses, protocols = parse_class_table(CLASS_TABLE)

        assert classes[0].class_code == 0x00
        assert classes[0].name == "(Defined at Interface level)"
        assert classes[-1].class_code == 0xFF
        assert len(subclasses) > 0
        assert len(protocols) > 0

    def test_codes_in_range_and_names_set(self) -> None:
        """Test every entry has byte-sized codes and a non-blank name."""
        classes, subclasses, protocols = parse_class_table(CLASS_TABLE)

        for entry in [*classes, *subclasses, *protocols]:
            codes = entry[:-1]
            assert all(0x00 <= code <= 0xFF for code in codes)
            assert entry.name.strip()

    def test_nesting(self) -> None:
        """Test that entries are scoped to the enclosing class/subclass."""
        text = "C 0A  Upper\n\t0B  Sub\n\t\t0c  Proto\nC 02  Other\n\t01  Sub2"
        classes, subclasses, protocols = parse_class_table(text)

        assert [(c.class_code, c.name) for c in classes] == [(0x0A, "Upper"), (0x02, "Other")]
        assert [(s.class_code, s.subclass_code) for s in subclasses] == [(0x0A, 0x0B), (0x02, 0x01)]
        assert protocols[0][:3] == (0x0A, 0x0B, 0x0C)

    def test_names_with_spaces(self) -> None:
        """Test that the name is everything after the code separator."""
        classes, subclasses, _ = parse_class_table("C 01  Audio  Class\n\t03  MIDI Streaming")
        assert classes[0].name == "Audio  Class"
        assert subclasses[0].name == "MIDI Streaming"

    def test_skips_blank_lines(self) -> None:
        """Test that blank lines are ignored."""
        text = "\nC 01  Audio\n\n\t01  Control Device\n"
        classes, subclasses, _ = parse_class_table(text)
        assert len(classes) == 1
        assert len(subclasses) == 1

    def test_comment_line_rejected(self) -> None:
        """Test that a stray comment line is a parse error."""
        text = "C 01  Audio\n# transcription slip\n\t01  Control Device\n"
        with pytest.raises(ClassTableError) as exc_info:
            parse_class_table(text)
        assert exc_info.value.line_number == 2

    @pytest.mark.parametrize(
        "text",
        [
            "C zz  Bad class",
            "C 1  Short code",
            "C 01  Audio\n\tg1  Bad subclass",
            "C 01 Single space",
            "C 01  Audio\n    01  Space indent",
            "C 01  Audio\n\t01  Sub\n\t\t\t01  Too deep",
            "Vendor line",
        ],
    )
    def test_invalid_lines(self, text: str) -> None:
        """Test that malformed lines fail loudly."""
        with pytest.raises(ClassTableError):
            parse_class_table(text)

    def test_subclass_without_class(self) -> None:
        """Test subclass line before any class line."""
        with pytest.raises(ClassTableError, match="subclass outside of a class"):
            parse_class_table("\t01  Orphan")

    def test_protocol_without_subclass(self) -> None:
        """Test that a class line resets the current subclass."""
        text = "C 01  A\n\t01  S\nC 02  B\n\t\t01  P"
        with pytest.raises(ClassTableError) as exc_info:
            parse_class_table(text)
        assert exc_info.value.line_number == 4

    def test_error_carries_line(self) -> None:
        """Test error details."""
        with pytest.raises(ClassTableError) as exc_info:
            parse_class_table("C 01  Audio\nC xy  Broken")
        assert exc_info.value.line_number == 2
        assert exc_info.value.line == "C xy  Broken"
        assert "line 2" in str(exc_info.value)


class TestClassCodeRegistry:
    """Tests for ClassCodeRegistry lookups."""

    def test_every_class_resolves(self, registry: ClassCodeRegistry) -> None:
        """Test lookup of every class in the table."""
        classes, _, _ = parse_class_table(CLASS_TABLE)
        for entry in classes:
            assert registry.lookup_class(entry.class_code) == entry.name

    def test_unknown_class(self, registry: ClassCodeRegistry) -> None:
        """Test that unlisted codes resolve to None."""
        assert registry.lookup_class(0x99) is None
        assert registry.lookup_subclass(0x99, 0x01) is None
        assert registry.lookup_protocol(0x03, 0x01, 0x99) is None

    def test_hid_boot_mouse(self, registry: ClassCodeRegistry) -> None:
        """Test HID boot interface lookups."""
        assert registry.lookup_class(0x03) == "Human Interface Device"
        assert registry.lookup_subclass(0x03, 0x01) == "Boot Interface Subclass"
        assert registry.lookup_protocol(0x03, 0x01, 0x02) == "Mouse"

    def test_mass_storage_bulk_only(self, registry: ClassCodeRegistry) -> None:
        """Test mass storage lookups."""
        assert registry.lookup_subclass(0x08, 0x06) == "SCSI"
        assert registry.lookup_protocol(0x08, 0x06, 0x50) == "Bulk-Only"

    def test_lowercase_codes(self, registry: ClassCodeRegistry) -> None:
        """Test entries written with lowercase hex digits."""
        assert registry.lookup_class(0xEF) == "Miscellaneous Device"
        assert registry.lookup_protocol(0xFE, 0x03, 0x02) == "USB488"
        assert registry.lookup_protocol(0xFF, 0xFF, 0xFF) == "Vendor Specific Protocol"

    def test_subclass_scoped_to_class(self, registry: ClassCodeRegistry) -> None:
        """Test that identical subclass codes differ per class."""
        assert registry.lookup_subclass(0x01, 0x01) == "Control Device"
        assert registry.lookup_subclass(0x02, 0x01) == "Direct Line"

    def test_lazy_loading(self) -> None:
        """Test that parsing happens on first lookup only."""
        registry = ClassCodeRegistry()
        assert registry.loaded is False
        assert registry.load_count == 0

        registry.lookup_class(0x01)
        registry.lookup_subclass(0x01, 0x01)
        registry.lookup_protocol(0x08, 0x06, 0x50)

        assert registry.loaded is True
        assert registry.load_count == 1

    def test_concurrent_first_lookup(self) -> None:
        """Test that concurrent lookups parse the table once."""
        registry = ClassCodeRegistry()
        barrier = threading.Barrier(8)
        results: list[str | None] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            for _ in range(50):
                name = registry.lookup_protocol(0x03, 0x01, 0x02)
                with lock:
                    results.append(name)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.load_count == 1
        assert len(results) == 400
        assert set(results) == {"Mouse"}

    def test_custom_text(self) -> None:
        """Test registry over custom table text."""
        registry = ClassCodeRegistry(text="C 03  Custom HID\n\t01  Boot")
        assert registry.lookup_class(0x03) == "Custom HID"
        assert registry.lookup_class(0x08) is None

    def test_duplicate_last_wins(self) -> None:
        """Test duplicate keys resolve to the last entry."""
        registry = ClassCodeRegistry(text="C 01  First\nC 01  Second")
        assert registry.lookup_class(0x01) == "Second"

    def test_parse_error_surfaces_on_lookup(self) -> None:
        """Test that a broken table fails the triggering lookup."""
        registry = ClassCodeRegistry(text="C 01  Audio\nnot a class line")

        with pytest.raises(ClassTableError):
            registry.lookup_class(0x01)
        assert registry.loaded is False

        # no partially loaded state; the next lookup fails again
        with pytest.raises(ClassTableError):
            registry.lookup_subclass(0x01, 0x01)

    def test_load_from_file(self, temp_dir: Path) -> None:
        """Test loading the table from a file."""
        path = temp_dir / "classes.ids"
        path.write_text("# classes\nC 08  Mass Storage\n\t06  SCSI\n\t\t50  Bulk-Only\n")

        registry = ClassCodeRegistry(path=path)
        assert registry.lookup_protocol(0x08, 0x06, 0x50) == "Bulk-Only"

    def test_comment_in_text_fails(self) -> None:
        """Test that comments are only accepted in table files."""
        registry = ClassCodeRegistry(text="C 01  Audio\n# transcription slip\n\t01  Control Device\n")

        with pytest.raises(ClassTableError):
            registry.lookup_class(0x01)

    def test_file_error_line_number(self, temp_dir: Path) -> None:
        """Test that file line numbers survive comment removal."""
        path = temp_dir / "classes.ids"
        path.write_text("# classes\n# more\nC 08  Mass Storage\nbroken line\n")

        with pytest.raises(ClassTableError) as exc_info:
            ClassCodeRegistry(path=path).lookup_class(0x08)
        assert exc_info.value.line_number == 4

    def test_invalid_utf8_file(self, temp_dir: Path) -> None:
        """Test that undecodable table files fail."""
        path = temp_dir / "classes.ids"
        path.write_bytes(b"C 08  Mass \xff Storage\n")

        with pytest.raises(ClassTableError) as exc_info:
            ClassCodeRegistry(path=path).lookup_class(0x08)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_missing_file(self, temp_dir: Path) -> None:
        """Test that read errors are wrapped."""
        registry = ClassCodeRegistry(path=temp_dir / "missing.ids")

        with pytest.raises(ClassTableError) as exc_info:
            registry.lookup_class(0x01)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_text_and_path(self, temp_dir: Path) -> None:
        """Test that only one source may be given."""
        with pytest.raises(ValueError):
            ClassCodeRegistry(text="C 01  Audio", path=temp_dir / "x.ids")

    def test_iterate_entries(self, registry: ClassCodeRegistry) -> None:
        """Test entry iteration with filters."""
        hid_subclasses = list(registry.subclasses(0x03))
        assert [s.subclass_code for s in hid_subclasses] == [0x00, 0x01]

        boot_protocols = list(registry.protocols(0x03, 0x01))
        assert [p.name for p in boot_protocols] == ["None", "Keyboard", "Mouse"]

        assert any(c.name == "Hub" for c in registry.classes())


class TestDefaultRegistry:
    """Tests for the module-level lookup functions."""

    def test_shared_instance(self) -> None:
        """Test that the default registry is shared."""
        assert get_registry() is get_registry()

    def test_lookups(self) -> None:
        """Test module-level lookups."""
        assert lookup_class(0x09) == "Hub"
        assert lookup_subclass(0x0E, 0x02) == "Video Streaming"
        assert lookup_protocol(0xE0, 0x01, 0x01) == "Bluetooth"
        assert lookup_class(0x99) is None
