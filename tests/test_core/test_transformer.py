"""Tests for the section renumbering simulation."""

from __future__ import annotations

import pytest

from manaudit.core.registry import Record, Registry
from manaudit.core.transformer import relocate, relocate_section, simulate, transform


class TestRelocation:
    """Test cases for the relocation rule."""

    @pytest.mark.parametrize(
        ("section", "expected"),
        [
            ("1M", "8"),
            ("4", "5"),
            ("4FS", "5FS"),
            ("5", "7"),
            ("5S", "7S"),
            ("7", "4"),
            ("7D", "4D"),
            ("7IPP", "4IPP"),
        ],
    )
    def test_moved_sections(self, section: str, expected: str) -> None:
        assert relocate_section(section) == expected

    @pytest.mark.parametrize("section", ["1", "1B", "1HAS", "2", "3C", "3CPC", "8", "9E", "1m", ""])
    def test_unmoved_sections(self, section: str) -> None:
        assert relocate_section(section) is None

    @pytest.mark.parametrize("section", ["1", "2", "3C", "8", "9F"])
    def test_unmoved_record_is_untouched(self, section: str) -> None:
        record = Record(False, section, "page", "pkg")
        moved = relocate(record)
        assert moved.section == section
        assert moved.provenance is None

    def test_moved_record_carries_provenance(self) -> None:
        record = Record(True, "1M", "mount", "pkg")
        moved = relocate(record)
        assert moved == Record(True, "8", "mount", "pkg", provenance="1M")

    @pytest.mark.parametrize("section", ["4", "4FS", "5", "5S", "7", "7D", "7P"])
    def test_three_rotations_restore_section(self, section: str) -> None:
        """The 4 -> 5 -> 7 -> 4 rotation is a 3-cycle."""
        current = section
        for _ in range(3):
            current = relocate_section(current)
        assert current == section

    def test_one_m_does_not_cycle(self) -> None:
        assert relocate_section(relocate_section("1M")) is None


class TestTransform:
    """Test cases for transform()."""

    def test_transform_sorts_and_keeps_original(self, sample_registry: Registry) -> None:
        before = sample_registry.dumps()
        derived = transform(sample_registry)

        keys = [r.key for r in derived]
        assert keys == sorted(keys)
        assert len(derived) == len(sample_registry)
        assert sample_registry.dumps() == before

    def test_transform_example(self) -> None:
        registry = Registry()
        registry.insert(False, "4FS", "foo", "pkgA")
        registry.insert(False, "5FS", "foo", "pkgB")

        derived = transform(registry)

        assert derived.records == [
            Record(False, "5FS", "foo", "pkgA", provenance="4FS"),
            Record(False, "7FS", "foo", "pkgB", provenance="5FS"),
        ]


class TestSimulate:
    """Test cases for simulate()."""

    def test_rotation_collision_is_reported(self) -> None:
        registry = Registry()
        registry.insert(False, "4FS", "foo", "pkgA")
        registry.insert(False, "5FS", "foo", "pkgB")

        obscured = simulate(registry)

        assert len(obscured) == 1
        assert obscured[0].record.owner == "pkgB"
        assert obscured[0].record.section == "5FS"
        assert obscured[0].occupant.owner == "pkgA"
        assert obscured[0].occupant.provenance == "4FS"
        assert str(obscured[0]) == "old page foo(5FS) is obscured"

    def test_one_m_collision_is_reported(self) -> None:
        registry = Registry()
        registry.insert(False, "1M", "mount", "core")
        registry.insert(False, "8", "mount", "extra")

        obscured = simulate(registry)

        assert [str(o) for o in obscured] == ["old page mount(8) is obscured"]

    def test_no_collision_without_shared_names(self) -> None:
        registry = Registry()
        registry.insert(False, "1M", "mount", "core")
        registry.insert(False, "4", "passwd", "core")
        registry.insert(False, "7D", "zero", "driver")

        assert simulate(registry) == []

    def test_unrelocated_occupant_is_not_reported(self) -> None:
        """A key still held by an untouched record is not obscured."""
        registry = Registry()
        registry.insert(False, "1", "ls", "core")
        registry.insert(False, "8", "ls", "other")

        assert simulate(registry) == []

    def test_sample_registry(self, sample_registry: Registry) -> None:
        lines = [str(o) for o in simulate(sample_registry)]
        assert lines == [
            "old page open(4D) is obscured",
            "old page foo(5FS) is obscured",
            "old page mount(8) is obscured",
        ]

    def test_precomputed_derived_registry(self, sample_registry: Registry) -> None:
        derived = transform(sample_registry)
        assert simulate(sample_registry, derived) == simulate(sample_registry)
