"""PCI configuration space access, bus scanning and driver binding."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from eggkit.pic import IRQ_BASE, Pic, PortIO

CONFIG_ADDR_PORT = 0xCF8
CONFIG_DATA_PORT = 0xCFC

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    vendor: int
    device: int


@dataclass(frozen=True)
class Address:
    bus: int
    device: int
    func: int

    def config_address(self, reg: int) -> int:
        if reg & 0x3:
            raise ValueError("unaligned PCI register access")
        return (
            0x80000000
            | (self.bus & 0xFF) << 16
            | (self.device & 0x1F) << 11
            | (self.func & 0x7) << 8
            | (reg & 0xFF)
        )


@dataclass(frozen=True)
class Bar:
    addr: int
    length: int
    prefetch: bool
    is_mem: bool


@dataclass
class Device:
    ident: Identity
    addr: Address
    class_code: int
    subclass: int
    irq_line: int
    irq_no: int


class Driver(Protocol):
    def name(self) -> str: ...

    def init(self, device: Device) -> None: ...

    def idents(self) -> list[Identity]: ...

    def interrupt(self) -> None: ...


_NO_BAR = Bar(0, 0, False, False)


class PciBus:
    """Configuration mechanism #1 over I/O ports 0xCF8/0xCFC."""

    def __init__(self, ports: PortIO, pic: Pic | None = None) -> None:
        self.ports = ports
        self.pic = pic if pic is not None else Pic(ports)
        self.drivers: dict[str, Driver] = {}
        self.devices: list[Device] = []
        self.handlers: dict[int, Callable[[], None]] = {}

    def read_register(self, addr: Address, reg: int) -> int:
        self.ports.outl(CONFIG_ADDR_PORT, addr.config_address(reg))
        return self.ports.inl(CONFIG_DATA_PORT)

    def write_register(self, addr: Address, reg: int, value: int) -> None:
        self.ports.outl(CONFIG_ADDR_PORT, addr.config_address(reg))
        self.ports.outl(CONFIG_DATA_PORT, value & 0xFFFFFFFF)

    def read_bar(self, addr: Address, bar: int) -> Bar:
        """Decode a base address register, probing its size for 32-bit memory BARs."""
        if not 0 <= bar <= 5:
            raise ValueError("invalid BAR")
        reg = 0x10 + bar * 4
        raw = self.read_register(addr, reg)
        if raw & 1:
            return Bar(raw & ~0b11 & 0xFFFFFFFF, 0, False, False)
        base = raw & ~0xF & 0xFFFFFFFF
        kind = (raw >> 1) & 0b11
        if kind in (0b01, 0b10):
            # 16-bit and 64-bit BARs are not supported.
            return _NO_BAR
        length = 0
        if kind == 0b00:
            self.write_register(addr, reg, 0xFFFFFFFF)
            length = (~(self.read_register(addr, reg) & 0xFFFFFFF0) + 1) & 0xFFFFFFFF
            self.write_register(addr, reg, raw)
        return Bar(base, length, bool(raw & 0b1000), True)

    def vendor_id(self, addr: Address) -> int:
        return self.read_register(addr, 0x0) & 0xFFFF

    def device_id(self, addr: Address) -> int:
        return (self.read_register(addr, 0x0) >> 16) & 0xFFFF

    def status(self, addr: Address) -> int:
        return (self.read_register(addr, 0x4) >> 16) & 0xFFFF

    def cap_offset(self, addr: Address) -> int:
        return self.read_register(addr, 0x34) & 0xFC

    def pci_class(self, addr: Address) -> int:
        return (self.read_register(addr, 0x8) >> 16) & 0xFFFF

    def irq_line(self, addr: Address) -> int:
        return self.read_register(addr, 0x3C) & 0xFF

    def enable_bus_master(self, addr: Address) -> None:
        self.write_register(addr, 0x04, self.read_register(addr, 0x04) | (1 << 2))

    def scan(self) -> list[Device]:
        """Every present function on every bus."""
        found = []
        for bus, dev, func in itertools.product(range(256), range(32), range(8)):
            addr = Address(bus, dev, func)
            vendor = self.vendor_id(addr)
            if vendor == 0xFFFF:
                continue
            cls = self.pci_class(addr)
            line = self.irq_line(addr)
            found.append(
                Device(
                    ident=Identity(vendor, self.device_id(addr)),
                    addr=addr,
                    class_code=(cls >> 8) & 0xFF,
                    subclass=cls & 0xFF,
                    irq_line=line,
                    irq_no=(IRQ_BASE + line) & 0xFF,
                )
            )
        return found

    def register(self, driver: Driver) -> None:
        self.drivers[driver.name()] = driver

    def _find(self, idents: list[Identity]) -> Device | None:
        for ident in idents:
            for dev in self.devices:
                if dev.ident == ident:
                    return dev
        return None

    def init_drivers(self) -> dict[str, Device]:
        """Scan the bus and bind each registered driver to its first matching device."""
        self.devices = self.scan()
        bound: dict[str, Device] = {}
        for name, driver in self.drivers.items():
            dev = self._find(driver.idents())
            if dev is None:
                log.info("[pci] no pci device found for %s", name)
                continue
            log.info(
                "[pci] found %x:%x for %s, irq:%d",
                dev.ident.vendor, dev.ident.device, name, dev.irq_no,
            )
            driver.init(dev)
            self.pic.enable_irq(dev.irq_line)
            self.handlers[dev.irq_no] = driver.interrupt
            bound[name] = dev
        return bound