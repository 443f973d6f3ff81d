"""Port I/O abstraction and the 8259 programmable interrupt controller."""

from __future__ import annotations

from collections import deque
from typing import Iterable, Mapping, Protocol

PIC1_CMD = 0x20
PIC1_DATA = PIC1_CMD + 1
PIC2_CMD = 0xA0
PIC2_DATA = PIC2_CMD + 1

ICW4_8086 = 0x01
ICW4_AUTO = 0x02

IRQ_BASE = 0x20

LINE_TIMER = 0
LINE_KBD = 1
LINE_COM1 = 4
LINE_COM2 = 3
LINE_MOUSE = 12


class PortIO(Protocol):
    """Access to x86 I/O ports."""

    def inb(self, port: int) -> int: ...

    def outb(self, port: int, value: int) -> None: ...

    def inl(self, port: int) -> int: ...

    def outl(self, port: int, value: int) -> None: ...


class RecordingPorts:
    """In-memory ports that remember the last value written and log writes.

    ``reads`` maps a port to values returned, in order, by successive reads
    before falling back to the last written value.
    """

    def __init__(
        self,
        values: Mapping[int, int] | None = None,
        reads: Mapping[int, Iterable[int]] | None = None,
    ) -> None:
        self.values: dict[int, int] = dict(values or {})
        self.reads: dict[int, deque[int]] = {
            port: deque(queued) for port, queued in (reads or {}).items()
        }
        self.writes: list[tuple[int, int]] = []

    def _read(self, port: int) -> int:
        queued = self.reads.get(port)
        if queued:
            return queued.popleft()
        return self.values.get(port, 0)

    def _write(self, port: int, value: int) -> None:
        self.writes.append((port, value))
        self.values[port] = value

    def inb(self, port: int) -> int:
        return self._read(port) & 0xFF

    def outb(self, port: int, value: int) -> None:
        self._write(port, value & 0xFF)

    def inl(self, port: int) -> int:
        return self._read(port) & 0xFFFFFFFF

    def outl(self, port: int, value: int) -> None:
        self._write(port, value & 0xFFFFFFFF)


class Pic:
    """The cascaded master/slave 8259 pair."""

    def __init__(self, ports: PortIO) -> None:
        self.ports = ports

    def init(self) -> None:
        """Remap IRQs to IRQ_BASE, mask everything, then unmask the cascade line."""
        out = self.ports.outb
        out(PIC1_CMD, 0x11)
        out(PIC2_CMD, 0x11)
        out(PIC1_DATA, IRQ_BASE)
        out(PIC2_DATA, IRQ_BASE + 8)
        out(PIC1_DATA, 0x4)
        out(PIC2_DATA, 0x2)
        out(PIC1_DATA, ICW4_8086)
        out(PIC2_DATA, ICW4_8086)
        out(PIC1_DATA, 0xFF)
        out(PIC2_DATA, 0xFF)
        self.enable_irq(0x02)

    @staticmethod
    def _port_and_bit(line: int) -> tuple[int, int]:
        if line >= 8:
            return PIC2_DATA, line - 8
        return PIC1_DATA, line

    def enable_irq(self, line: int) -> None:
        port, bit = self._port_and_bit(line)
        self.ports.outb(port, self.ports.inb(port) & ~(1 << bit) & 0xFF)

    def disable_irq(self, line: int) -> None:
        port, bit = self._port_and_bit(line)
        self.ports.outb(port, (self.ports.inb(port) | (1 << bit)) & 0xFF)

    def eoi(self, irq: int) -> None:
        """Acknowledge an interrupt vector."""
        if irq >= 0x28:
            self.ports.outb(PIC2_CMD, 0x20)
        self.ports.outb(PIC1_CMD, 0x20)