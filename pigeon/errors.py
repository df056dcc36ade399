"""Error root shared by every compiler phase."""

from __future__ import annotations


class PigeonError(Exception):
    """Compile error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__("line " + str(line) + ", column " + str(col) + ": " + msg)
