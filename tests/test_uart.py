from eggkit.pic import PIC1_CMD, RecordingPorts
from eggkit.uart import COM1, QEMU_EXIT_PORT, Uart, qemu_exit


def test_pre_init_sequence():
    ports = RecordingPorts()
    Uart(ports).pre_init()
    assert len(ports.writes) == 7
    assert ports.writes[0] == (COM1 + 3, 0x80)
    assert ports.writes[-1] == (COM1 + 1, 0x01)


def test_write_sends_each_byte():
    ports = RecordingPorts(values={COM1 + 5: 0x20})
    assert Uart(ports).write(b"ok") == 2
    assert ports.writes == [(COM1, ord("o")), (COM1, ord("k"))]


def test_write_accepts_text():
    ports = RecordingPorts(values={COM1 + 5: 0x20})
    assert Uart(ports).write("x") == 1
    assert ports.writes == [(COM1, ord("x"))]


def test_read_byte_without_data():
    assert Uart(RecordingPorts()).read_byte() == -1


def test_read_byte_with_data():
    ports = RecordingPorts(values={COM1 + 5: 0x01, COM1: ord("z")})
    assert Uart(ports).read_byte() == ord("z")


def test_interrupt_delivers_input_and_acknowledges():
    ports = RecordingPorts(
        reads={COM1 + 5: [0x21, 0x21, 0x20], COM1: [ord("h"), ord("i")]}
    )
    uart = Uart(ports)
    received = []
    uart.on_input(received.append)
    uart.interrupt()
    assert bytes(received) == b"hi"
    assert ports.writes == [(PIC1_CMD, 0x20)]


def test_interrupt_without_callback_does_nothing():
    ports = RecordingPorts(values={COM1 + 5: 0x01})
    Uart(ports).interrupt()
    assert ports.writes == []


def test_qemu_exit_writes_code():
    ports = RecordingPorts()
    qemu_exit(ports, 3)
    assert ports.writes == [(QEMU_EXIT_PORT, 3)]