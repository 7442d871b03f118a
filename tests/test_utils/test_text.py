"""Tests for split_lines()."""

from __future__ import annotations

import pytest

from manaudit.utils.text import split_lines


class TestSplitLines:
    """Test cases for split_lines()."""

    def test_newlines(self) -> None:
        assert split_lines("a\nb\n") == ["a", "b"]

    def test_no_final_newline(self) -> None:
        assert split_lines("a\nb") == ["a", "b"]

    def test_blank_lines_are_kept(self) -> None:
        assert split_lines("a\n\nb\n") == ["a", "", "b"]

    def test_trailing_carriage_return_is_dropped(self) -> None:
        assert split_lines("a\r\nb\r\n") == ["a", "b"]

    def test_inner_carriage_return_is_kept(self) -> None:
        assert split_lines("a\rb\n") == ["a\rb"]

    @pytest.mark.parametrize("char", ["\x0b", "\x0c", "\x1c", "\x1d", "\x1e", "\x85", "\u2028", "\u2029"])
    def test_other_separators_are_ordinary(self, char: str) -> None:
        assert split_lines(f"a{char}b\nc\n") == [f"a{char}b", "c"]

    def test_empty(self) -> None:
        assert split_lines("") == []
