# eggkit

eggkit is a library of software models of the classic PC hardware interfaces
that a small x86 unikernel talks to. Every device model works through an
injectable port-I/O object (or, for the network card, a register window). You
can drive and inspect each one in plain Python without real hardware.

## Installation

```
pip install eggkit
```

To run the test suite:

```
pip install "eggkit[test]"
pytest
```

## Modules

- `eggkit.pic`: the `PortIO` protocol, `RecordingPorts` (in-memory ports that log every write), and `Pic`, the cascaded 8259 interrupt controller (`init`, `enable_irq`, `disable_irq`, `eoi`).
- `eggkit.ansi`: `AnsiParser`, an incremental parser for `ESC [ params final` sequences. Its `step` returns a `Step` value.
- `eggkit.cga`: `TextBuffer`, an 80x25 CGA text memory with scrolling, and `Terminal`, which writes bytes to a backend. `Terminal` handles the `G`, `K` and `J` CSI actions, expands tabs to four spaces and replaces non-printable bytes with `?`.
- `eggkit.keyboard`: `Keyboard`, which decodes PS/2 set-1 scancodes with shift, control and caps-lock handling and tracks which keys are held. `csi_escape` maps arrow key codes to terminal sequences.
- `eggkit.mouse`: `Ps2Controller` for the 8042 controller, and `MouseDecoder`, which assembles three-byte packets into `Packet` events and a cursor position. `xrel` and `yrel` give the signed movement values.
- `eggkit.uart`: `Uart`, a COM1 serial port with polled output and callback-driven input, and `qemu_exit` for the isa-debug-exit device.
- `eggkit.cmos`: `bcd_decode`, `read_cmos_time` and `CmosTime`.
- `eggkit.multiboot`: `parse_boot_info`, `Info`, `MmapEntry` and `Flag` for Multiboot v1 boot information.
- `eggkit.pci`: `PciBus`, which provides configuration-space access, BAR decoding, bus scanning and binding of registered drivers to devices.
- `eggkit.e1000`: `E1000`, a driver for the Intel 8254x NIC over a register window such as `MemoryRegisters`. It has receive and transmit rings, MAC readout and `QueueFull`.
- `eggkit.phydraw`: `Drawer`, which draws physics debug shapes onto a Pillow RGBA image, and `color_for_shape`.
- `eggkit.examples`: small demos: `primes`, `sha1_line`, `sha1_repl`, `lissajous_frame` and `hello`.

## Examples

Parse an ANSI CSI sequence:

```python
from eggkit.ansi import AnsiParser, Step

parser = AnsiParser()
for ch in b"\x1b[12;24G":
    result = parser.step(ch)
assert result is Step.CSI_DONE
assert parser.action == ord("G")
assert parser.params == ["12", "24"]
```

Drive an 80x25 text screen:

```python
from eggkit.cga import Terminal, TextBuffer

screen = TextBuffer()
term = Terminal(screen)
term.write_string("hello\nworld")
print(screen.lines()[:2])   # ['hello', 'world']
```

Decode keyboard scancodes and mouse packets:

```python
from eggkit.keyboard import Keyboard
from eggkit.mouse import MouseDecoder

kbd = Keyboard()
print(kbd.translate([0x23, 0x17]))   # b'hi'

mouse = MouseDecoder()
for byte in (0x09, 5, 3):
    mouse.handle(byte)
print(mouse.cursor(), mouse.left_click())   # (5, -3) True
```

Program the interrupt controller against recorded ports:

```python
from eggkit.pic import Pic, RecordingPorts

ports = RecordingPorts()
Pic(ports).init()
print(ports.writes[:2])   # [(32, 17), (160, 17)]
```

Bring up the network card on an in-memory register window:

```python
from eggkit.e1000 import E1000, MemoryRegisters

nic = E1000(MemoryRegisters())
nic.init()
print(nic.transmit(b"\x00" * 60))   # 60
```

The demos:

```python
from eggkit.examples import primes, sha1_line

print(list(primes(10)))   # [2, 3, 5, 7, 11, 13, 17, 19, 23, 29]
print(sha1_line("abc"))
```

## What this package does not do

eggkit is a library only. It installs no commands. It has no interactive
console or shell and no built-in commands such as `ls` or `cat`. It has no
framebuffer views or framebuffer text console, and no tool for booting a
kernel in QEMU or building an ISO image. The device models record and answer
port accesses, but they do not emulate a whole machine.