"""PS/2 keyboard scancode (set 1) decoding."""

from __future__ import annotations

from typing import Iterable

from eggkit.pic import PortIO

KBSTATP = 0x64
KBS_DIB = 0x01
KBDATAP = 0x60

NO = 0

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9

CSI_UP = b"\x1b[A"
CSI_DOWN = b"\x1b[B"
CSI_LEFT = b"\x1b[D"
CSI_RIGHT = b"\x1b[C"


def _ctrl(c: str) -> int:
    return (ord(c) - ord("@")) & 0xFF


def _table(prefix: str | list[int], extra: dict[int, int]) -> list[int]:
    codes = [ord(c) for c in prefix] if isinstance(prefix, str) else list(prefix)
    table = codes + [NO] * (256 - len(codes))
    for index, value in extra.items():
        table[index] = value
    return table


_SPECIAL = {
    0xC8: KEY_UP,
    0xD0: KEY_DN,
    0xC9: KEY_PGUP,
    0xD1: KEY_PGDN,
    0xCB: KEY_LF,
    0xCD: KEY_RT,
    0x97: KEY_HOME,
    0xCF: KEY_END,
    0xD2: KEY_INS,
    0xD3: KEY_DEL,
}

_KEYPAD = "\x00" * 7 + "789-456+1230." + "\x00" * 4

_NORMAL = _table(
    "\x00\x1b1234567890-=\b\tqwertyuiop[]\n\x00asdfghjkl;'`\x00\\zxcvbnm,./\x00*\x00 "
    + "\x00" * 6
    + _KEYPAD,
    {0x9C: ord("\n"), 0xB5: ord("/"), **_SPECIAL},
)

_SHIFTED = _table(
    "\x00\x1b!@#$%^&*()_+\b\tQWERTYUIOP{}\n\x00ASDFGHJKL:\"~\x00|ZXCVBNM<>?\x00*\x00 "
    + "\x00" * 6
    + _KEYPAD,
    {0x9C: ord("\n"), 0xB5: ord("/"), **_SPECIAL},
)

_CONTROL = _table(
    [NO] * 16
    + [_ctrl(c) for c in "QWERTYUIOP"]
    + [NO, NO, ord("\r"), NO, _ctrl("A"), _ctrl("S")]
    + [_ctrl(c) for c in "DFGHJKL"]
    + [NO, NO, NO, NO, _ctrl("\\"), _ctrl("Z"), _ctrl("X"), _ctrl("C"), _ctrl("V")]
    + [_ctrl("B"), _ctrl("N"), _ctrl("M"), NO, NO, _ctrl("/"), NO, NO],
    {0x9C: ord("\r"), 0xB5: _ctrl("/"), **_SPECIAL},
)

_SHIFTCODE = _table([], {0x1D: CTL, 0x2A: SHIFT, 0x36: SHIFT, 0x38: ALT, 0x9D: CTL, 0xB8: ALT})
_TOGGLECODE = _table([], {0x3A: CAPSLOCK, 0x45: NUMLOCK, 0x46: SCROLLLOCK})
_CHARCODE = (_NORMAL, _SHIFTED, _CONTROL, _CONTROL)


def csi_escape(ch: int) -> bytes:
    """The terminal escape sequence for an arrow key code, or b'' otherwise."""
    return {KEY_UP: CSI_UP, KEY_DN: CSI_DOWN, KEY_LF: CSI_LEFT, KEY_RT: CSI_RIGHT}.get(ch, b"")


class Keyboard:
    """Tracks modifier state and which keys are held down."""

    def __init__(self) -> None:
        self.shift = 0
        self._pressed = [False] * 256

    def feed(self, scancode: int) -> int:
        """Decode one scancode; returns the character, or 0 when none results."""
        data = scancode & 0xFF
        if data == 0xE0:
            self.shift |= E0ESC
            return 0
        if data & 0x80:
            if not self.shift & E0ESC:
                data &= 0x7F
            self.shift &= ~(_SHIFTCODE[data] | E0ESC) & 0xFF
            c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
            self._pressed[c] = False
            return 0
        if self.shift & E0ESC:
            data |= 0x80
            self.shift &= ~E0ESC & 0xFF

        self.shift |= _SHIFTCODE[data]
        self.shift ^= _TOGGLECODE[data]
        c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
        if self.shift & CAPSLOCK:
            if ord("a") <= c <= ord("z"):
                c -= ord("a") - ord("A")
            elif ord("A") <= c <= ord("Z"):
                c += ord("a") - ord("A")
        self._pressed[c] = True
        return c

    def read_byte(self, ports: PortIO) -> int:
        """Read and decode one scancode; -1 when the controller has no keyboard data."""
        status = ports.inb(KBSTATP)
        if not status & KBS_DIB:
            return -1
        if status & 0x20:
            return -1
        return self.feed(ports.inb(KBDATAP))

    def translate(self, scancodes: Iterable[int]) -> bytes:
        """Decode scancodes into the bytes a terminal would receive."""
        out = bytearray()
        for code in scancodes:
            ch = self.feed(code)
            if ch <= 0:
                continue
            out += csi_escape(ch) or bytes([ch])
        return bytes(out)

    def pressed(self, key: int | str) -> bool:
        code = ord(key) if isinstance(key, str) else key
        return self._pressed[code & 0xFF]