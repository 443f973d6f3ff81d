"""Incremental parser for ANSI CSI escape sequences."""

from __future__ import annotations

import enum

ESC = 0x1B


class Step(enum.Enum):
    """Outcome of feeding one byte to the parser."""

    CONTINUE = "continue"
    NORMAL_CHAR = "normal char"
    INVALID_CHAR = "invalid char"
    CSI_DONE = "done"


class _State(enum.Enum):
    BEGIN = enum.auto()
    ESC = enum.auto()
    LEFT = enum.auto()
    PARAM = enum.auto()
    DONE = enum.auto()


def _is_param(ch: int) -> bool:
    return 0x30 <= ch <= 0x3F


def _is_final(ch: int) -> bool:
    return 0x40 <= ch <= 0x7F


class AnsiParser:
    """Recognises sequences of the form ESC '[' params final-byte."""

    def __init__(self) -> None:
        self._state = _State.BEGIN
        self.action = 0
        self._parambuf = bytearray()
        self.params: list[str] = []

    def step(self, ch: int) -> Step:
        """Feed one byte and report what it completed."""
        state = self._state
        if state is _State.BEGIN:
            if ch != ESC:
                return Step.NORMAL_CHAR
            self._state = _State.ESC
        elif state is _State.ESC:
            if ch != ord("["):
                return Step.INVALID_CHAR
            self._state = _State.LEFT
        elif state in (_State.LEFT, _State.PARAM):
            if _is_param(ch):
                self._state = _State.PARAM
                self._parambuf.append(ch)
            elif _is_final(ch):
                self.action = ch
                self._state = _State.DONE
            else:
                return Step.INVALID_CHAR
        if self._state is _State.DONE:
            self._decode_params()
            return Step.CSI_DONE
        return Step.CONTINUE

    def _decode_params(self) -> None:
        if not self._parambuf:
            return
        self.params.extend(
            part.decode("latin-1") for part in bytes(self._parambuf).split(b";")
        )

    def reset(self) -> None:
        """Return to the initial state, dropping any collected data."""
        self._state = _State.BEGIN
        self.action = 0
        self._parambuf.clear()
        self.params = []