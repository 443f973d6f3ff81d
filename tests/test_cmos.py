from collections import deque
from datetime import datetime, timezone

from eggkit.cmos import CmosTime, bcd_decode, read_cmos_time


class _CmosPorts:
    def __init__(self, regs, seconds=()):
        self.regs = dict(regs)
        self.seconds = deque(seconds)
        self.selected = 0

    def outb(self, port, value):
        if port == 0x70:
            self.selected = value & 0x7F

    def inb(self, port):
        if self.selected == 0 and self.seconds:
            return self.seconds.popleft()
        return self.regs.get(self.selected, 0)


REGS = {0x09: 0x21, 0x32: 0x20, 0x08: 0x11, 0x07: 0x07, 0x04: 0x15, 0x02: 0x28, 0x00: 0x01}


def test_bcd_decode():
    assert bcd_decode(0x59) == 59
    assert bcd_decode(0x00) == 0
    assert all(bcd_decode((v // 10) * 16 + v % 10) == v for v in range(100))


def test_read_cmos_time():
    t = read_cmos_time(_CmosPorts(REGS))
    assert t == CmosTime(second=1, minute=28, hour=15, day=7, month=11, year=2021)


def test_read_retries_until_seconds_stable():
    ports = _CmosPorts(REGS, seconds=[0x10, 0x11, 0x11, 0x11])
    assert read_cmos_time(ports).second == 11


def test_to_datetime_is_utc():
    t = CmosTime(second=1, minute=2, hour=3, day=4, month=5, year=2021)
    assert t.to_datetime() == datetime(2021, 5, 4, 3, 2, 1, tzinfo=timezone.utc)