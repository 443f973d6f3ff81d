"""Text-mode terminal: an 80x25 character buffer driven by a CSI-aware writer."""

from __future__ import annotations

import enum
from typing import Protocol

from eggkit.ansi import AnsiParser, Step

WIDTH = 80
HEIGHT = 25
CELLS = WIDTH * HEIGHT
_ATTR = 0x0700
_BS = ord("\b")
_DEL = 0x7F


class EraseMethod(enum.IntEnum):
    UNKNOWN = 0
    LINE = 1
    ALL = 2


class Backend(Protocol):
    """A character display with a cursor position."""

    def get_pos(self) -> int: ...

    def set_pos(self, pos: int) -> None: ...

    def write_pos(self, pos: int, ch: int) -> None:
        """Write a character at a position without moving the cursor."""

    def write_byte(self, ch: int) -> None:
        """Write a character at the cursor and advance it."""


class TextBuffer:
    """CGA text memory: 16-bit cells holding a character and attribute."""

    def __init__(self) -> None:
        self.cells = [0] * CELLS
        self._pos = 0

    def get_pos(self) -> int:
        return self._pos

    def set_pos(self, pos: int) -> None:
        # The cursor lives in two 8-bit CRT registers.
        self._pos = pos & 0xFFFF

    def write_pos(self, pos: int, ch: int) -> None:
        self.cells[pos] = (ch & 0xFF) | _ATTR

    def write_byte(self, ch: int) -> None:
        pos = self.get_pos()
        if ch == ord("\n"):
            pos += WIDTH - pos % WIDTH
        elif ch in (_BS, _DEL):
            if pos > 0:
                pos -= 1
        else:
            self.cells[pos] = (ch & 0xFF) | _ATTR
            pos += 1

        if pos // WIDTH >= HEIGHT:
            self.cells[: CELLS - WIDTH] = self.cells[WIDTH:CELLS]
            pos -= WIDTH
            self.cells[pos:CELLS] = [0] * (CELLS - pos)
        self.set_pos(pos)

    def lines(self) -> list[str]:
        """The screen as text, one string per row, trailing blanks removed."""
        rows = []
        for start in range(0, CELLS, WIDTH):
            row = self.cells[start : start + WIDTH]
            rows.append("".join(chr(c & 0xFF) if c & 0xFF else " " for c in row).rstrip())
        return rows


class Terminal:
    """Writes bytes to a backend, interpreting a few CSI sequences."""

    def __init__(self, backend: Backend | None = None) -> None:
        self.backend: Backend = backend if backend is not None else TextBuffer()
        self._parser = AnsiParser()

    def write_string(self, text: str | bytes) -> None:
        data = text.encode("latin-1") if isinstance(text, str) else text
        for ch in data:
            self.write_byte(ch)

    def write_byte(self, ch: int) -> None:
        result = self._parser.step(ch)
        if result is Step.NORMAL_CHAR:
            if ch in (ord("\n"), ord("\r"), _BS):
                self.backend.write_byte(ch)
            elif ch == ord("\t"):
                for _ in range(4):
                    self.backend.write_byte(ord(" "))
            elif 32 <= ch <= 127:
                self.backend.write_byte(ch)
            else:
                self.backend.write_byte(ord("?"))
        elif result is Step.CSI_DONE:
            try:
                self._write_csi(self._parser.action, self._parser.params)
            finally:
                self._parser.reset()
        elif result is Step.INVALID_CHAR:
            self._parser.reset()
        else:
            self.backend.write_byte(ch)

    def _write_csi(self, action: int, params: list[str]) -> None:
        if action == ord("G"):
            self._set_cursor_column(_atoi(params[0]) if params else 1)
        elif action == ord("K"):
            self._erase(EraseMethod.LINE if not params else EraseMethod.UNKNOWN)
        elif action == ord("J"):
            # Behaves as "erase whole screen and go home".
            self._erase(EraseMethod.ALL)
            self.backend.set_pos(0)

    def _set_cursor_column(self, column: int) -> None:
        pos = self.backend.get_pos()
        self.backend.set_pos((pos // WIDTH) * WIDTH + column - 1)

    def _erase(self, method: EraseMethod) -> None:
        backend = self.backend
        if method is EraseMethod.LINE:
            pos = backend.get_pos()
            end = (pos // WIDTH + 1) * WIDTH
            for i in range(pos, end):
                backend.write_pos(i, ord(" "))
        elif method is EraseMethod.ALL:
            for i in range(CELLS):
                backend.write_pos(i, ord(" "))
        else:
            raise ValueError("unsupported erase line method")


def _atoi(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0