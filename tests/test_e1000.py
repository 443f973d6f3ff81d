import pytest

from eggkit import e1000
from eggkit.e1000 import (
    E1000,
    MemoryRegisters,
    QueueFull,
    RxDescriptor,
    TxDescriptor,
)
from eggkit.pci import Identity

# Locally administered, made-up station address.
MAC = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])


class EepromRegisters(MemoryRegisters):
    """Registers whose EEPROM control register answers reads from a word table."""

    def __init__(self, words):
        super().__init__()
        self.words = words

    def write(self, reg, value):
        if reg == e1000.REG_EEPROM and value & 1:
            addr = (value >> 8) & 0xFF
            word = self.words[addr] if addr < len(self.words) else 0
            value = (word << 16) | 0x10 | (value & 0xFFFF)
        super().write(reg, value)


def make_driver():
    regs = MemoryRegisters()
    regs.write(e1000.REG_RXADDR, int.from_bytes(MAC[:4], "little"))
    regs.write(e1000.REG_RXADDR + 4, int.from_bytes(MAC[4:], "little"))
    drv = E1000(regs)
    drv.init()
    return drv, regs


def deliver(drv, index, data):
    desc = drv.rx_descs[index]
    desc.buffer[: len(data)] = data
    desc.length = len(data)
    desc.status = e1000.RX_DESC_DD | e1000.RX_DESC_EOP


def test_name_and_idents():
    drv = E1000(MemoryRegisters())
    assert drv.name() == "e1000"
    assert Identity(0x8086, 0x100E) in drv.idents()
    assert len(drv.idents()) == 5


def test_descriptor_round_trip():
    rx = RxDescriptor(paddr=0x1000, length=60, checksum=7, status=3, errors=0, special=9)
    packed = rx.pack()
    assert len(packed) == e1000.DESC_SIZE
    assert RxDescriptor.unpack(packed) == rx
    tx = TxDescriptor(paddr=0x2000, length=42, cmd=0x0B, status=1)
    packed = tx.pack()
    assert len(packed) == e1000.DESC_SIZE
    assert TxDescriptor.unpack(packed) == tx


def test_registers_reject_unaligned_access():
    regs = MemoryRegisters()
    with pytest.raises(ValueError):
        regs.read(0x2)
    with pytest.raises(ValueError):
        regs.write(0x20001, 0)


def test_init_programs_rings():
    drv, regs = make_driver()
    assert regs.read(e1000.REG_RDT) == e1000.NUM_RX_DESCS - 1
    assert regs.read(e1000.REG_TDT) == 0
    assert regs.read(e1000.REG_RDLEN) == e1000.NUM_RX_DESCS * e1000.DESC_SIZE
    assert regs.read(e1000.REG_RCTL) == (
        e1000.RCTL_EN | e1000.RCTL_SECRC | e1000.RCTL_BSIZE | e1000.RCTL_BAM
    )
    assert regs.read(e1000.REG_TCTL) == e1000.TCTL_EN | e1000.TCTL_PSP
    assert regs.read(e1000.REG_IMS) == e1000.IMS_RXT0
    assert regs.read(e1000.REG_RDBAL) == drv.rx_ring_addr
    assert regs.read(e1000.REG_TDBAL) == drv.tx_ring_addr
    assert len(drv.rx_descs) == e1000.NUM_RX_DESCS
    assert all(d.status == 1 for d in drv.tx_descs)
    ctrl = regs.read(e1000.REG_CTRL)
    assert ctrl & e1000.CTRL_SLU and ctrl & e1000.CTRL_ASDE


def test_init_clears_multicast_table():
    regs = MemoryRegisters()
    for i in range(0x80):
        regs.write(e1000.REG_MTA_BASE + i * 4, 0xFFFFFFFF)
    E1000(regs).init()
    assert all(regs.read(e1000.REG_MTA_BASE + i * 4) == 0 for i in range(0x80))


def test_descriptor_buffers_are_distinct_pages():
    drv, _ = make_driver()
    addrs = [d.paddr for d in drv.rx_descs + drv.tx_descs]
    assert len(set(addrs)) == len(addrs)
    assert all(a % e1000.PGSIZE == 0 for a in addrs)


def test_mac_from_receive_address_registers():
    drv, _ = make_driver()
    assert drv.mac == MAC


def test_mac_from_eeprom():
    regs = EepromRegisters([0x0002, 0x0000, 0x0100])
    drv = E1000(regs)
    assert drv.detect_eeprom()
    assert drv.read_mac() == MAC
    assert drv.read_eeprom(2) == 0x0100


def test_transmit_fills_descriptor():
    drv, regs = make_driver()
    frame = b"\xff" * 6 + MAC + b"\x08\x00" + b"payload"
    assert drv.transmit(frame) == len(frame)
    desc = drv.tx_descs[0]
    assert bytes(desc.buffer[: len(frame)]) == frame
    assert desc.length == len(frame)
    assert desc.cmd == e1000.TX_DESC_IFCS | e1000.TX_DESC_EOP | e1000.TX_DESC_RS
    assert desc.status == 0
    assert regs.read(e1000.REG_TDT) == 1


def test_transmit_queue_full():
    drv, _ = make_driver()
    for _ in range(e1000.NUM_TX_DESCS):
        drv.transmit(b"x")
    with pytest.raises(QueueFull):
        drv.transmit(b"x")
    drv.tx_descs[0].status = 1
    assert drv.transmit(b"y") == 1


def test_read_packet_delivers_and_returns_descriptor():
    drv, regs = make_driver()
    got = []
    drv.set_receive_callback(got.append)
    deliver(drv, 0, b"hello frame")
    assert drv.read_packet() is True
    assert got == [b"hello frame"]
    assert drv.rx_descs[0].status == 0
    assert regs.read(e1000.REG_RDT) == 0
    assert drv.read_packet() is False
    assert got == [b"hello frame"]


def test_interrupt_drains_received_packets():
    drv, regs = make_driver()
    got = []
    drv.set_receive_callback(got.append)
    deliver(drv, 0, b"one")
    deliver(drv, 1, b"two")
    regs.write(e1000.REG_ICR, e1000.ICR_RXT0)
    drv.interrupt()
    assert got == [b"one", b"two"]
    assert regs.read(e1000.REG_ICR) == 0xFFFFFFFF
    assert regs.read(e1000.REG_RDT) == 1


def test_interrupt_without_receive_cause_leaves_packets():
    drv, regs = make_driver()
    got = []
    drv.set_receive_callback(got.append)
    deliver(drv, 0, b"one")
    regs.write(e1000.REG_ICR, 0)
    drv.interrupt()
    assert got == []
    assert drv.poll() == 1
    assert got == [b"one"]