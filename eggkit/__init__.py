"""Software models of classic PC devices (PIC, keyboard, mouse, UART, CMOS, PCI, e1000) and a CGA text terminal."""

__version__ = "0.1.0"