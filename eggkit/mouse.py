"""PS/2 controller access and mouse packet decoding."""

from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import Callable

from eggkit.pic import PortIO

CMD_PORT = 0x64
DATA_PORT = 0x60
ACK = 0xFA
EVENT_QUEUE_SIZE = 10
_WAIT_TRIES = 1000


class Ps2Error(RuntimeError):
    """The controller answered with something unexpected."""


class Ps2Controller:
    """The 8042 PS/2 controller behind ports 0x60 and 0x64."""

    def __init__(self, ports: PortIO) -> None:
        self.ports = ports

    def _wait(self, ready: Callable[[int], bool]) -> None:
        # Give up silently after a bounded number of polls.
        for _ in range(_WAIT_TRIES):
            if ready(self.ports.inb(CMD_PORT)):
                return

    def _wait_can_write(self) -> None:
        self._wait(lambda status: not status & 0x02)

    def _wait_can_read(self) -> None:
        self._wait(lambda status: bool(status & 0x01))

    def read_cmd(self) -> int:
        return self.ports.inb(CMD_PORT)

    def read_data_no_wait(self) -> int:
        return self.ports.inb(DATA_PORT)

    def read_data(self) -> int:
        self._wait_can_read()
        return self.ports.inb(DATA_PORT)

    def write_data(self, value: int, need_ack: bool = False) -> None:
        self._wait_can_write()
        self.ports.outb(DATA_PORT, value)
        if need_ack:
            self.read_ack()

    def read_ack(self) -> None:
        value = self.read_data()
        if value != ACK:
            raise Ps2Error(f"not a ps2 ack packet: {value:#04x}")

    def write_cmd(self, value: int) -> None:
        self._wait_can_write()
        self.ports.outb(CMD_PORT, value)

    def write_mouse_data(self, value: int) -> None:
        """Send a byte to the auxiliary (mouse) device and wait for its ack."""
        self.write_cmd(0xD4)
        self.write_data(value, True)

    def read_mouse_data(self, value: int) -> int:
        self.write_mouse_data(value)
        return self.read_data()

    def enable_mouse(self) -> None:
        """Enable both ports, their IRQs and translation, and start mouse reporting."""
        status = self.read_cmd()
        status |= 0x22  # mouse IRQ and clock
        status |= 0x11  # keyboard IRQ and clock
        status |= 0x40  # keyboard translation
        self.write_cmd(0x60)
        self.write_data(status & 0xFF, False)
        self.write_cmd(0xA8)
        self.write_cmd(0xAE)
        self.write_mouse_data(0xF4)


@dataclass(frozen=True)
class Packet:
    x: int
    y: int
    left: bool
    right: bool


def _signed(status: int, value: int, sign_bit: int) -> int:
    ret = 0x80 if status & sign_bit else 0
    ret |= value & 0xFF
    return ret - 0x100 if ret & 0x80 else ret


def xrel(status: int, value: int) -> int:
    """Relative X movement, with the sign taken from the status byte."""
    return _signed(status, value, 0x10)


def yrel(status: int, value: int) -> int:
    """Relative Y movement, with the sign taken from the status byte."""
    return _signed(status, value, 0x20)


class MouseDecoder:
    """Assembles three-byte mouse packets and tracks the cursor."""

    def __init__(self) -> None:
        self._count = 0
        self._packet = [0, 0, 0]
        self.status = 0
        self.x = 0
        self.y = 0
        self._events: queue.Queue[Packet] = queue.Queue(maxsize=EVENT_QUEUE_SIZE)

    def handle(self, value: int) -> None:
        """Feed one byte received from the mouse."""
        value &= 0xFF
        self._packet[self._count] = value
        if self._count == 0:
            # The first byte always has bit 3 set; use it to resync.
            if value & 0x08:
                self._count = 1
            return
        if self._count == 1:
            self._count = 2
            return
        self._count = 0
        first, dx, dy = self._packet
        if first & 0xC0:
            return  # overflow: discard
        self.status = first
        self.x += xrel(first, dx)
        self.y -= yrel(first, dy)
        try:
            self._events.put_nowait(
                Packet(self.x, self.y, self.left_click(), self.right_click())
            )
        except queue.Full:
            pass

    def poll(self, controller: Ps2Controller) -> None:
        """Drain every byte the controller has waiting."""
        while controller.read_cmd() & 0x01:
            self.handle(controller.read_data_no_wait())

    def cursor(self) -> tuple[int, int]:
        return self.x, self.y

    def left_click(self) -> bool:
        return bool(self.status & 0x01)

    def right_click(self) -> bool:
        return bool(self.status & 0x02)

    def events(self) -> "queue.Queue[Packet]":
        """The bounded queue of decoded packets; new ones are dropped when full."""
        return self._events