"""Intel 8254x (e1000) network controller driver over memory-mapped registers."""

from __future__ import annotations

import logging
import struct
import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol

from eggkit.pci import Device, Identity, PciBus
from eggkit.pic import Pic

log = logging.getLogger(__name__)

# Registers and bits.
REG_CTRL = 0x0000
CTRL_ASDE = 1 << 5
CTRL_SLU = 1 << 6
CTRL_RST = 1 << 26

REG_IMS = 0x00D0
IMS_RXT0 = 1 << 7
REG_IMC = 0x00D8
REG_ICR = 0x00C0
ICR_RXT0 = 1 << 7

REG_MTA_BASE = 0x5200
REG_RECEIVE_ADDR_LOW = 0x5400
REG_RECEIVE_ADDR_HIGH = 0x5404

REG_RCTL = 0x0100
RCTL_EN = 1 << 1
RCTL_SECRC = 1 << 26
RCTL_BSIZE = 0 << 16
RCTL_BAM = 1 << 15

REG_RDBAL = 0x2800
REG_RDBAH = 0x2804
REG_RDLEN = 0x2808
REG_RDH = 0x2810
REG_RDT = 0x2818

REG_TCTL = 0x0400
REG_TIPG = 0x0410
TCTL_EN = 1 << 1
TCTL_PSP = 1 << 3

REG_TDBAL = 0x3800
REG_TDBAH = 0x3804
REG_TDLEN = 0x3808
REG_TDH = 0x3810
REG_TDT = 0x3818

TX_DESC_IFCS = 1 << 1
TX_DESC_EOP = 1 << 0
TX_DESC_RS = 1 << 3

REG_EEPROM = 0x0014
REG_RXADDR = 0x5400

RX_DESC_DD = 1 << 0
RX_DESC_EOP = 1 << 1

BUFFER_SIZE = 2048
NUM_RX_DESCS = 32
NUM_TX_DESCS = 32
TX_BUF_SZ = 1024
PGSIZE = 4096
DESC_SIZE = 16

_EEPROM_TRIES = 1000
_RX_FORMAT = struct.Struct("<QHHBBH")
_TX_FORMAT = struct.Struct("<QHBBBBH")
_DEFAULT_MEMORY_BASE = 0x0100_0000


class QueueFull(RuntimeError):
    """Every transmit descriptor is still owned by the device."""


class Registers(Protocol):
    def read(self, reg: int) -> int: ...

    def write(self, reg: int, value: int) -> None: ...


class MemoryRegisters:
    """A register window backed by plain memory, little-endian 32-bit words."""

    def __init__(self, size: int = 0x20000) -> None:
        self.memory = bytearray(size)

    def _check(self, reg: int) -> None:
        if reg & 0x3:
            raise ValueError(f"unaligned register access: {reg:#x}")
        if not 0 <= reg <= len(self.memory) - 4:
            raise ValueError(f"register out of range: {reg:#x}")

    def read(self, reg: int) -> int:
        self._check(reg)
        return int.from_bytes(self.memory[reg : reg + 4], "little")

    def write(self, reg: int, value: int) -> None:
        self._check(reg)
        self.memory[reg : reg + 4] = (value & 0xFFFFFFFF).to_bytes(4, "little")


@dataclass
class RxDescriptor:
    paddr: int = 0
    length: int = 0
    checksum: int = 0
    status: int = 0
    errors: int = 0
    special: int = 0
    buffer: bytearray = field(default_factory=bytearray, repr=False, compare=False)

    def pack(self) -> bytes:
        return _RX_FORMAT.pack(
            self.paddr, self.length, self.checksum, self.status, self.errors, self.special
        )

    @classmethod
    def unpack(cls, data: bytes) -> "RxDescriptor":
        return cls(*_RX_FORMAT.unpack(bytes(data[:DESC_SIZE])))


@dataclass
class TxDescriptor:
    paddr: int = 0
    length: int = 0
    cso: int = 0
    cmd: int = 0
    status: int = 0
    css: int = 0
    special: int = 0
    buffer: bytearray = field(default_factory=bytearray, repr=False, compare=False)

    def pack(self) -> bytes:
        return _TX_FORMAT.pack(
            self.paddr, self.length, self.cso, self.cmd, self.status, self.css, self.special
        )

    @classmethod
    def unpack(cls, data: bytes) -> "TxDescriptor":
        return cls(*_TX_FORMAT.unpack(bytes(data[:DESC_SIZE])))


if _RX_FORMAT.size != DESC_SIZE or _TX_FORMAT.size != DESC_SIZE:
    raise ImportError("bad descriptor size")


class E1000:
    """Driver for one e1000 controller.

    ``regs`` is the mapped register window of BAR 0. When a PCI bus is given,
    ``init`` enables bus mastering and checks that BAR 0 is a memory BAR.
    Descriptor rings and packet buffers live in pages handed out from
    ``memory_base`` upwards.
    """

    def __init__(
        self,
        regs: Registers,
        device: Device | None = None,
        bus: PciBus | None = None,
        pic: Pic | None = None,
        memory_base: int = _DEFAULT_MEMORY_BASE,
    ) -> None:
        self.regs = regs
        self.device = device
        self.bus = bus
        self.pic = pic
        self.mac = bytes(6)
        self.bar = 0
        self.rx_descs: list[RxDescriptor] = []
        self.tx_descs: list[TxDescriptor] = []
        self.rx_ring_addr = 0
        self.tx_ring_addr = 0
        self.txidx = 0
        self.rxidx = 0
        self._callback: Callable[[bytes], None] | None = None
        self._next_page = memory_base

    def name(self) -> str:
        return "e1000"

    def idents(self) -> list[Identity]:
        return [
            Identity(0x8086, 0x100E),
            Identity(0x8086, 0x153A),
            Identity(0x8086, 0x10EA),
            Identity(0x8086, 0x10D3),
            Identity(0x8086, 0x15B8),
        ]

    def set_receive_callback(self, callback: Callable[[bytes], None] | None) -> None:
        self._callback = callback

    def _alloc(self) -> tuple[int, bytearray]:
        addr = self._next_page
        self._next_page += PGSIZE
        return addr, bytearray(PGSIZE)

    def detect_eeprom(self) -> bool:
        self.regs.write(REG_EEPROM, 1)
        return any(self.regs.read(REG_EEPROM) & 0x10 for _ in range(_EEPROM_TRIES))

    def read_eeprom(self, addr: int) -> int:
        """One 16-bit word from the EEPROM; waits for the done bit."""
        self.regs.write(REG_EEPROM, 1 | ((addr & 0xFF) << 8))
        while True:
            value = self.regs.read(REG_EEPROM)
            if value & (1 << 4):
                return (value >> 16) & 0xFFFF

    def read_mac(self) -> bytes:
        """Read the station address, from the EEPROM when there is one."""
        if not self.detect_eeprom():
            low = self.regs.read(REG_RXADDR)
            high = self.regs.read(REG_RXADDR + 4)
            mac = low.to_bytes(4, "little") + (high & 0xFFFF).to_bytes(2, "little")
        else:
            mac = b"".join(self.read_eeprom(i).to_bytes(2, "little") for i in range(3))
        self.mac = mac
        return mac

    def init(self) -> None:
        """Reset the controller, set up both descriptor rings and enable receive interrupts."""
        if self.bus is not None and self.device is not None:
            log.info("[e1000] enable bus master")
            self.bus.enable_bus_master(self.device.addr)
            bar = self.bus.read_bar(self.device.addr, 0)
            if not bar.is_mem:
                raise RuntimeError("not memory bar")
            self.bar = bar.addr
            log.info("[e1000] mmap for bar0 %#x", self.bar)

        ring_addr, _ = self._alloc()
        self.rx_ring_addr = ring_addr
        self.tx_ring_addr = ring_addr + (NUM_RX_DESCS + 1) * DESC_SIZE
        if self.rx_ring_addr & 0xF or self.tx_ring_addr & 0xF:
            raise RuntimeError("descriptor rings must be 16 byte aligned")

        regs = self.regs
        regs.write(REG_IMC, 0xFFFFFFFF)
        log.info("[e1000] begin reset")
        regs.write(REG_CTRL, regs.read(REG_CTRL) | CTRL_RST)
        log.info("[e1000] reset done")
        regs.write(REG_IMC, 0xFFFFFFFF)

        regs.write(REG_CTRL, regs.read(REG_CTRL) | CTRL_SLU | CTRL_ASDE)
        log.info("[e1000] link up")

        for i in range(0x80):
            regs.write(REG_MTA_BASE + i * 4, 0)

        self.rx_descs = []
        for _ in range(NUM_RX_DESCS):
            addr, buf = self._alloc()
            self.rx_descs.append(RxDescriptor(paddr=addr, buffer=buf))
        regs.write(REG_RDBAL, self.rx_ring_addr & 0xFFFFFFF0)
        regs.write(REG_RDBAH, 0)
        regs.write(REG_RDLEN, NUM_RX_DESCS * DESC_SIZE)
        regs.write(REG_RDH, 0)
        regs.write(REG_RDT, NUM_RX_DESCS - 1)
        regs.write(REG_RCTL, RCTL_EN | RCTL_SECRC | RCTL_BSIZE | RCTL_BAM)

        self.tx_descs = []
        for _ in range(NUM_TX_DESCS):
            addr, buf = self._alloc()
            self.tx_descs.append(TxDescriptor(paddr=addr, status=1, buffer=buf))
        regs.write(REG_TDBAL, self.tx_ring_addr & 0xFFFFFFFF)
        regs.write(REG_TDBAH, 0)
        regs.write(REG_TDLEN, NUM_TX_DESCS * DESC_SIZE)
        regs.write(REG_TDH, 0)
        regs.write(REG_TDT, 0)
        regs.write(REG_TCTL, TCTL_EN | TCTL_PSP)
        self.txidx = 0

        regs.write(REG_IMS, IMS_RXT0)
        regs.read(REG_ICR)
        regs.write(REG_ICR, 0xFFFFFFFF)

        log.info("[e1000] begin read mac")
        self.read_mac()
        log.info("[e1000] mac:%s", self.mac.hex())

    def transmit(self, packet: bytes) -> int:
        """Queue one packet (truncated to a page); return the number of bytes queued."""
        desc = self.tx_descs[self.txidx]
        if desc.status == 0:
            raise QueueFull("tx queue full")
        data = bytes(packet[:PGSIZE])
        desc.buffer[: len(data)] = data
        desc.cmd = TX_DESC_IFCS | TX_DESC_EOP | TX_DESC_RS
        desc.length = len(data)
        desc.cso = 0
        desc.status = 0
        desc.css = 0
        desc.special = 0
        self.txidx = (self.txidx + 1) % NUM_TX_DESCS
        self.regs.write(REG_TDT, self.txidx)
        return len(data)

    def read_packet(self) -> bool:
        """Hand the next received packet to the callback; False when none is ready."""
        self.rxidx = (self.regs.read(REG_RDT) + 1) % NUM_RX_DESCS
        desc = self.rx_descs[self.rxidx]
        bits = RX_DESC_DD | RX_DESC_EOP
        # Packets spanning several descriptors are not supported.
        if desc.status & bits != bits:
            return False
        data = bytes(desc.buffer[: desc.length])
        if self._callback is not None:
            self._callback(data)
        desc.status = 0
        self.regs.write(REG_RDT, self.rxidx)
        return True

    def poll(self) -> int:
        """Drain every ready packet; return how many were delivered."""
        count = 0
        while self.read_packet():
            count += 1
        return count

    def receive_loop(self, stop: threading.Event, interval: float = 0.01) -> None:
        """Poll for packets every ``interval`` seconds until ``stop`` is set."""
        while not stop.wait(interval):
            self.poll()

    def interrupt(self) -> None:
        """Handle the controller's interrupt and acknowledge it."""
        try:
            cause = self.regs.read(REG_ICR)
            # e1000e may not clear the cause register on read.
            self.regs.write(REG_ICR, 0xFFFFFFFF)
            if cause & ICR_RXT0:
                self.poll()
        finally:
            if self.pic is not None and self.device is not None:
                self.pic.eoi(self.device.irq_no)
                self.pic.enable_irq(self.device.irq_line)