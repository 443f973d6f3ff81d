"""Real-time clock readout from CMOS registers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from eggkit.pic import PortIO

_CMOS_ADDR = 0x70
_CMOS_DATA = 0x71


@dataclass
class CmosTime:
    second: int = 0
    minute: int = 0
    hour: int = 0
    day: int = 0
    month: int = 0
    year: int = 0

    def to_datetime(self) -> datetime:
        return datetime(
            self.year, self.month, self.day, self.hour, self.minute, self.second,
            tzinfo=timezone.utc,
        )


def bcd_decode(value: int) -> int:
    """Decode a packed binary-coded-decimal byte."""
    return (value & 0x0F) + value // 16 * 10


def _read_reg(ports: PortIO, reg: int) -> int:
    ports.outb(_CMOS_ADDR, 0x80 | (reg & 0xFF))
    return ports.inb(_CMOS_DATA)


def _read_once(ports: PortIO) -> CmosTime:
    return CmosTime(
        year=bcd_decode(_read_reg(ports, 0x09)) + bcd_decode(_read_reg(ports, 0x32)) * 100,
        month=bcd_decode(_read_reg(ports, 0x08)),
        day=bcd_decode(_read_reg(ports, 0x07)),
        hour=bcd_decode(_read_reg(ports, 0x04)),
        minute=bcd_decode(_read_reg(ports, 0x02)),
        second=bcd_decode(_read_reg(ports, 0x00)),
    )


def read_cmos_time(ports: PortIO) -> CmosTime:
    """Read the clock, repeating until the seconds register is stable."""
    while True:
        t = _read_once(ports)
        if bcd_decode(_read_reg(ports, 0x00)) == t.second:
            return t