from __future__ import annotations

import struct
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

SECTOR_SIZE = 512
RESERVED_SECTORS = 8
NUM_FATS = 2
FAT_SIZE = 1
TOTAL_SECTORS = 16
BACKUP_SECTOR = 6

ROOT_DIR_OFFSET = (RESERVED_SECTORS + NUM_FATS * FAT_SIZE) * SECTOR_SIZE

# name: (offset, struct format, default)
BPB_FIELDS = {
    "BS_jmpBoot": (0, "3s", b"\xeb\x58\x90"),
    "BS_OEMName": (3, "8s", b"MSWIN4.1"),
    "BPB_BytsPerSec": (11, "<H", SECTOR_SIZE),
    "BPB_SecPerClus": (13, "<B", 1),
    "BPB_RsvdSecCnt": (14, "<H", RESERVED_SECTORS),
    "BPB_NumFATs": (16, "<B", NUM_FATS),
    "BPB_RootEntCnt": (17, "<H", 0),
    "BPB_TotSec16": (19, "<H", 0),
    "BPB_Media": (21, "<B", 0xF8),
    "BPB_FATSz16": (22, "<H", 0),
    "BPB_SecPerTrk": (24, "<H", 32),
    "BPB_NumHeads": (26, "<H", 2),
    "BPB_HiddSec": (28, "<I", 0),
    "BPB_TotSec32": (32, "<I", TOTAL_SECTORS),
    "BPB_FATSz32": (36, "<I", FAT_SIZE),
    "BPB_ExtFlags": (40, "<H", 0),
    "BPB_FSVer": (42, "<H", 0),
    "BPB_RootClus": (44, "<I", 2),
    "BPB_FSInfo": (48, "<H", 1),
    "BPB_BkBootSec": (50, "<H", BACKUP_SECTOR),
    "BS_DrvNum": (64, "<B", 0x80),
    "BS_Reserved1": (65, "<B", 0),
    "BS_BootSig": (66, "<B", 0x29),
    "BS_VolID": (67, "<I", 0x4368DBB7),
    "BS_VolLab": (71, "11s", b"LABFAT32   "),
    "BS_FilSysType": (82, "8s", b"FAT32   "),
    "BS_BootSign": (510, "2s", b"\x55\xaa"),
}


def make_boot_sector(**fields) -> bytearray:
    sector = bytearray(SECTOR_SIZE)
    for name, (offset, fmt, default) in BPB_FIELDS.items():
        struct.pack_into(fmt, sector, offset, fields.pop(name, default))

    if fields:
        raise TypeError(f"Unknown boot sector fields: {', '.join(fields)}")

    return sector


def make_dirent(name: bytes, attr: int = 0x20, ntres: int = 0, cluster: int = 3, size: int = 20) -> bytes:
    return struct.pack(
        "<11sBBBHHHHHHHI", name, attr, ntres, 0, 0, 0, 0, cluster >> 16, 0, 0x5021, cluster & 0xFFFF, size
    )


def make_ldirent(ordinal: int, name: str, cluster: int = 0) -> bytes:
    chars = name.encode("utf-16-le").ljust(26, b"\xff")
    return struct.pack("<B10sBBB12sH4s", ordinal, chars[:10], 0x0F, 0, 0x2A, chars[10:22], cluster, chars[22:26])


def dirent_offset(index: int) -> int:
    return ROOT_DIR_OFFSET + index * 32


def write_dirents(image: bytearray, *entries: bytes, start: int = 0) -> None:
    for idx, entry in enumerate(entries, start):
        offset = dirent_offset(idx)
        image[offset : offset + 32] = entry


def make_image(primary: bytearray | None = None, backup: bytearray | None = None) -> bytearray:
    image = bytearray(TOTAL_SECTORS * SECTOR_SIZE)
    image[0:SECTOR_SIZE] = primary if primary is not None else make_boot_sector()

    backup_offset = BACKUP_SECTOR * SECTOR_SIZE
    image[backup_offset : backup_offset + SECTOR_SIZE] = backup if backup is not None else make_boot_sector()

    write_dirents(
        image,
        make_dirent(b"LABELFAT032", attr=0x08, cluster=0, size=0),
        make_ldirent(0x41, "file1.txt"),
        make_dirent(b"FILE0001TXT"),
        make_dirent(b"SUBDIR00001", attr=0x10, cluster=4, size=0),
    )
    return image


@pytest.fixture
def boot_sector() -> bytearray:
    return make_boot_sector()


@pytest.fixture
def fat32() -> bytearray:
    return make_image()


@pytest.fixture
def fat32_file(tmp_path: Path) -> Iterator[Path]:
    path = tmp_path / "fat32.dd"
    path.write_bytes(make_image())
    yield path
