"""
Character positions in SMT-LIB input, used to decorate error messages.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


class Source:
    """
    A text buffer together with the line structure needed to report positions.

    Line terminators can be `\\n`, `\\r\\n` or a lone `\\r`.
    """

    def __init__(self, text: str, location: Optional[str] = None):
        self.text = text
        self.location = location
        self._line_starts = [0]
        i, n = 0, len(text)
        while i < n:
            c = text[i]
            if c == "\n":
                self._line_starts.append(i + 1)
            elif c == "\r":
                if i + 1 < n and text[i + 1] == "\n":
                    i += 1
                self._line_starts.append(i + 1)
            i += 1

    @classmethod
    def from_file(cls, path: Path) -> Source:
        with open(path) as f:
            return cls(f.read(), location=str(path))

    def line_number(self, offset: int) -> int:
        """1-based number of the line containing `offset`."""
        return bisect_right(self._line_starts, offset)

    def line_beginning(self, offset: int) -> int:
        """Offset of the first character of the line containing `offset`."""
        return self._line_starts[self.line_number(offset) - 1]

    def text_line(self, offset: int) -> str:
        """The line containing `offset`, without its terminator."""
        start = self.line_beginning(offset)
        end = start
        while end < len(self.text) and self.text[end] not in "\r\n":
            end += 1
        return self.text[start:end]


@dataclass(frozen=True)
class Pos:
    """A half-open range [char_start, char_end) of a Source."""

    char_start: int
    char_end: int
    source: Optional[Source] = field(default=None, compare=False, repr=False)

    def line_number(self) -> Optional[int]:
        if self.source is None:
            return None
        return self.source.line_number(self.char_start)

    def column(self) -> Optional[int]:
        """1-based column of the first character."""
        if self.source is None:
            return None
        return self.char_start - self.source.line_beginning(self.char_start) + 1

    def text_line(self) -> Optional[str]:
        if self.source is None:
            return None
        return self.source.text_line(self.char_start)

    def describe_short(self) -> str:
        if self.source is None:
            return f"characters {self.char_start}-{self.char_end}"
        location = self.source.location or "<input>"
        return f"{location}:{self.line_number()}:{self.column()}"

    def describe(self) -> str:
        """Location followed by the offending line and a caret marker."""
        if self.source is None:
            return self.describe_short()
        line = self.text_line()
        start = self.column() - 1
        width = max(1, min(self.char_end - self.char_start, len(line) - start))
        return f"{self.describe_short()}\n{line}\n{' ' * start}{'^' * width}"
