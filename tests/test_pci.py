import pytest

from eggkit.pci import (
    CONFIG_ADDR_PORT,
    Address,
    Bar,
    Identity,
    PciBus,
)
from eggkit.pic import IRQ_BASE, Pic, RecordingPorts


class FakeConfigSpace:
    def __init__(self, regs, bar_sizes=None):
        self.regs = dict(regs)
        self.bar_sizes = dict(bar_sizes or {})
        self.address = 0

    def _key(self):
        a = self.address
        return ((a >> 16) & 0xFF, (a >> 11) & 0x1F, (a >> 8) & 0x7, a & 0xFC)

    def outl(self, port, value):
        if port == CONFIG_ADDR_PORT:
            self.address = value
            return
        key = self._key()
        if value == 0xFFFFFFFF and key in self.bar_sizes:
            self.regs[key] = (~(self.bar_sizes[key] - 1)) & 0xFFFFFFFF
        else:
            self.regs[key] = value

    def inl(self, port):
        return self.regs.get(self._key(), 0xFFFFFFFF)

    def inb(self, port):
        return 0

    def outb(self, port, value):
        pass


E1000 = Identity(0x8086, 0x100E)
ADDR = Address(0, 3, 0)


def e1000_space():
    return FakeConfigSpace(
        {
            (0, 3, 0, 0x0): 0x100E8086,
            (0, 3, 0, 0x4): 0x00000003,
            (0, 3, 0, 0x8): 0x02000000,
            (0, 3, 0, 0x3C): 11,
            (0, 3, 0, 0x10): 0xFEBC0000,
            (0, 3, 0, 0x14): 0x0000C001,
        },
        bar_sizes={(0, 3, 0, 0x10): 0x20000},
    )


class FakeDriver:
    def __init__(self, name, idents):
        self._name = name
        self._idents = idents
        self.device = None

    def name(self):
        return self._name

    def idents(self):
        return self._idents

    def init(self, device):
        self.device = device

    def interrupt(self):
        pass


def test_unaligned_register_raises():
    bus = PciBus(e1000_space(), Pic(RecordingPorts()))
    with pytest.raises(ValueError):
        bus.read_register(ADDR, 0x2)


def test_ids():
    bus = PciBus(e1000_space(), Pic(RecordingPorts()))
    assert Identity(bus.vendor_id(ADDR), bus.device_id(ADDR)) == E1000


def test_memory_bar_size_is_probed_and_restored():
    space = e1000_space()
    bus = PciBus(space, Pic(RecordingPorts()))
    assert bus.read_bar(ADDR, 0) == Bar(0xFEBC0000, 0x20000, False, True)
    assert space.regs[(0, 3, 0, 0x10)] == 0xFEBC0000


def test_io_bar():
    bus = PciBus(e1000_space(), Pic(RecordingPorts()))
    bar = bus.read_bar(ADDR, 1)
    assert bar.addr == 0xC000
    assert not bar.is_mem


def test_64bit_bar_unsupported():
    space = FakeConfigSpace({(0, 3, 0, 0x10): 0xFEBC0004})
    bus = PciBus(space, Pic(RecordingPorts()))
    assert bus.read_bar(ADDR, 0) == Bar(0, 0, False, False)


def test_prefetchable_bar():
    space = FakeConfigSpace({(0, 3, 0, 0x10): 0xE0000008}, {(0, 3, 0, 0x10): 0x1000})
    bus = PciBus(space, Pic(RecordingPorts()))
    bar = bus.read_bar(ADDR, 0)
    assert bar.prefetch
    assert bar.length == 0x1000


def test_invalid_bar_index():
    bus = PciBus(e1000_space(), Pic(RecordingPorts()))
    with pytest.raises(ValueError):
        bus.read_bar(ADDR, 6)


def test_enable_bus_master_sets_bit():
    space = e1000_space()
    bus = PciBus(space, Pic(RecordingPorts()))
    bus.enable_bus_master(ADDR)
    assert space.regs[(0, 3, 0, 0x4)] & (1 << 2)
    assert space.regs[(0, 3, 0, 0x4)] & 0x3 == 0x3


def test_scan_and_bind_driver():
    pic_ports = RecordingPorts(values={0x21: 0xFF, 0xA1: 0xFF})
    bus = PciBus(e1000_space(), Pic(pic_ports))
    present = FakeDriver("e1000", [Identity(0x1234, 0x1), E1000])
    absent = FakeDriver("other", [Identity(0x1234, 0x2)])
    bus.register(present)
    bus.register(absent)
    bound = bus.init_drivers()

    assert list(bound) == ["e1000"]
    dev = present.device
    assert dev.ident == E1000
    assert dev.addr == ADDR
    assert dev.class_code == 0x02
    assert dev.subclass == 0x00
    assert dev.irq_no == IRQ_BASE + dev.irq_line
    assert absent.device is None
    assert bus.handlers[dev.irq_no] == present.interrupt
    assert len(bus.devices) == 1
    assert pic_ports.values[0xA1] & (1 << (dev.irq_line - 8)) == 0