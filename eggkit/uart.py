"""16550 serial port on COM1, and the QEMU debug-exit device."""

from __future__ import annotations

from typing import Callable

from eggkit.pic import IRQ_BASE, LINE_COM1, Pic, PortIO

COM1 = 0x3F8
IRQ_COM1 = IRQ_BASE + LINE_COM1
_LINE_STATUS = COM1 + 5
QEMU_EXIT_PORT = 0x501


class Uart:
    """Polled output and interrupt-driven input on COM1."""

    def __init__(self, ports: PortIO) -> None:
        self.ports = ports
        self._pic = Pic(ports)
        self._callback: Callable[[int], None] | None = None

    def pre_init(self) -> None:
        """Set 9600 baud, 8N1, no FIFO, and enable the receive interrupt."""
        out = self.ports.outb
        out(COM1 + 3, 0x80)  # unlock divisor
        out(COM1 + 0, 115200 // 9600)
        out(COM1 + 1, 0)
        out(COM1 + 3, 0x03)  # lock divisor
        out(COM1 + 2, 0)
        out(COM1 + 4, 0x00)
        out(COM1 + 1, 0x01)

    def read_byte(self) -> int:
        """One received byte, or -1 when none is waiting."""
        if not self.ports.inb(_LINE_STATUS) & 0x01:
            return -1
        return self.ports.inb(COM1)

    def write_byte(self, ch: int) -> None:
        while not self.ports.inb(_LINE_STATUS) & 0x20:
            pass
        self.ports.outb(COM1, ch & 0xFF)

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("latin-1")
        for ch in data:
            self.write_byte(ch)
        return len(data)

    def on_input(self, callback: Callable[[int], None] | None) -> None:
        self._callback = callback

    def interrupt(self) -> None:
        """Deliver every waiting byte to the input callback and acknowledge the IRQ."""
        if self._callback is None:
            return
        while (ch := self.read_byte()) != -1:
            self._callback(ch)
        self._pic.eoi(IRQ_COM1)


def qemu_exit(ports: PortIO, code: int) -> None:
    """Ask QEMU (with isa-debug-exit) to terminate."""
    ports.outb(QEMU_EXIT_PORT, code)