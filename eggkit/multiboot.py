"""Multiboot v1 boot information."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

BOOTLOADER_MAGIC = 0x2BADB002

MEMORY_AVAILABLE = 1 << 0
MEMORY_RESERVED = 1 << 1
MEMORY_ACPI_RECLAIMABLE = 1 << 2
MEMORY_NVS = 1 << 3
MEMORY_BAD_RAM = 1 << 4

_MAX_MMAP_ENTRIES = 128


class Flag(enum.IntFlag):
    INFO_MEMORY = 1 << 0
    INFO_BOOT_DEV = 1 << 1
    INFO_CMDLINE = 1 << 2
    INFO_MODS = 1 << 3
    INFO_AOUT_SYMS = 1 << 4
    INFO_ELF_SHDR = 1 << 5
    INFO_MEM_MAP = 1 << 6
    INFO_DRIVE_INFO = 1 << 7
    INFO_CONFIG_TABLE = 1 << 8
    INFO_BOOT_LOADER_NAME = 1 << 9
    INFO_APM_TABLE = 1 << 10
    INFO_VIDEO_INFO = 1 << 11
    INFO_FRAME_BUFFER = 1 << 12


@dataclass(frozen=True)
class MmapEntry:
    size: int
    addr: int
    length: int
    type: int

    # Natural alignment pads the 64-bit fields and the tail.
    _FORMAT = struct.Struct("<I4xQQI4x")
    SIZE = _FORMAT.size

    @classmethod
    def unpack(cls, data: bytes) -> "MmapEntry":
        try:
            return cls(*cls._FORMAT.unpack_from(data))
        except struct.error as exc:
            raise ValueError(f"mmap entry needs {cls.SIZE} bytes") from exc


_INFO_FORMAT = struct.Struct("<5I2I4I7I2I4HQ3I2B6s")


@dataclass(frozen=True)
class Info:
    flags: Flag
    mem_lower: int
    mem_upper: int
    boot_device: int
    cmdline: int
    mods_count: int
    mods_addr: int
    syms: tuple[int, int, int, int]
    mmap_length: int
    mmap_addr: int
    drives_length: int
    drives_addr: int
    config_table: int
    boot_loader_name: int
    apm_table: int
    vbe_control_info: int
    vbe_mode_info: int
    vbe_mode: int
    vbe_interface_seg: int
    vbe_interface_off: int
    vbe_interface_len: int
    framebuffer_addr: int
    framebuffer_pitch: int
    framebuffer_width: int
    framebuffer_height: int
    framebuffer_bpp: int
    framebuffer_type: int
    color_info: bytes

    SIZE = _INFO_FORMAT.size

    @classmethod
    def unpack(cls, data: bytes) -> "Info":
        try:
            v = _INFO_FORMAT.unpack_from(data)
        except struct.error as exc:
            raise ValueError(f"multiboot info needs {cls.SIZE} bytes") from exc
        return cls(Flag(v[0]), *v[1:7], tuple(v[7:11]), *v[11:])

    def mmap_entries(self, memory: bytes) -> list[MmapEntry]:
        """Entries of the memory map, read from physical memory at mmap_addr."""
        count = min(self.mmap_length // MmapEntry.SIZE, _MAX_MMAP_ENTRIES)
        base = self.mmap_addr
        return [
            MmapEntry.unpack(memory[base + i * MmapEntry.SIZE : base + (i + 1) * MmapEntry.SIZE])
            for i in range(count)
        ]


def parse_boot_info(magic: int, data: bytes) -> Info | None:
    """The boot information, or None when not loaded by a multiboot loader."""
    if magic != BOOTLOADER_MAGIC:
        return None
    return Info.unpack(data)