"""Line splitting shared by the registry, manifest and page readers."""

from __future__ import annotations


def split_lines(text: str) -> list[str]:
    """
    Split text into lines on ``\\n`` only.

    A trailing carriage return is dropped from each line and a final newline
    does not produce an empty last line. Unlike ``str.splitlines()``, other
    line-boundary characters (form feed, ``\\x1c``-``\\x1e``, ``\\x85``,
    ``\\u2028``, ``\\u2029``) are kept as ordinary characters.

    Args:
        text: Text to split

    Returns:
        Lines without their terminators
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]
