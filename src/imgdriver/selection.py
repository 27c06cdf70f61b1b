from __future__ import annotations

import sys
from typing import Protocol, TextIO

import typer


class SelectionProvider(Protocol):
    def select(self, names: list[str]) -> int | None:
        ...


class StreamSelection:
    """Reads one test number from a text stream (stdin by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def select(self, names: list[str]) -> int | None:
        typer.echo("To run a test, enter the test number: ", nl=False)
        stream = self._stream or sys.stdin
        line = stream.readline()
        try:
            return int(line.strip())
        except ValueError:
            return None


class FixedSelection:
    def __init__(self, index: int | None) -> None:
        self.index = index

    def select(self, names: list[str]) -> int | None:
        return self.index
