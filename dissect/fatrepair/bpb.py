# References:
# - https://download.microsoft.com/download/1/6/1/161ba512-40e2-4cc9-843a-923143f3456c/fatgen103.doc
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, NamedTuple

from dissect.fatrepair.c_fat32 import (
    BACKUP_BOOT_SECTOR,
    BOOT_SECTOR_SIZE,
    BOOT_SIGNATURE,
    JMP_NEAR,
    JMP_SHORT,
    NOP,
    SECTOR_SIZE,
    VALID_BPB_BYTES_PER_SECTOR,
    VALID_BPB_DRIVE_NUMBERS,
    VALID_BPB_MEDIA,
    VALID_BPB_NUM_FATS,
    VALID_BPB_SECTORS_PER_CLUSTER,
    c_fat32,
)
from dissect.fatrepair.exceptions import InvalidBPB, OutOfRangeError

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)
log.setLevel(os.getenv("DISSECT_LOG_FATREPAIR", "CRITICAL"))

PRIMARY_OFFSET = 0


class Geometry(NamedTuple):
    """Volume geometry taken from an intact FAT32 boot sector."""

    bytes_per_sector: int
    sectors_per_cluster: int
    reserved_sector_count: int
    number_of_fats: int
    fat_size: int
    root_cluster: int

    @property
    def cluster_size(self) -> int:
        return self.bytes_per_sector * self.sectors_per_cluster

    @property
    def root_dir_sector(self) -> int:
        # The root directory is expected directly after the FATs
        return self.reserved_sector_count + (self.number_of_fats * self.fat_size)

    @property
    def root_dir_offset(self) -> int:
        return self.root_dir_sector * self.bytes_per_sector


def locate_primary(image: bytearray) -> int:
    return PRIMARY_OFFSET


def is_boot_sector_candidate(image: bytearray, offset: int) -> bool:
    """Check the jump instruction, sector alignment and end signature at ``offset``.

    This is a cheap structural test, it does not check any of the BPB fields.
    """
    if offset < 0 or offset % SECTOR_SIZE != 0 or offset + BOOT_SECTOR_SIZE > len(image):
        return False

    if not (image[offset] == JMP_SHORT and image[offset + 2] == NOP) and image[offset] != JMP_NEAR:
        return False

    return (image[offset + 510], image[offset + 511]) == BOOT_SIGNATURE


def iter_backup_candidates(image: bytearray) -> Iterator[int]:
    """Yield every sector aligned offset that looks like a boot sector, skipping the primary."""
    for offset in range(PRIMARY_OFFSET + SECTOR_SIZE, len(image) - BOOT_SECTOR_SIZE + 1, SECTOR_SIZE):
        if is_boot_sector_candidate(image, offset):
            yield offset


def locate_backup(image: bytearray) -> int | None:
    """Find the backup boot sector.

    The backup is conventionally stored in sector 6, so that is tried first. Otherwise the first structurally
    plausible boot sector after the primary wins.
    """
    offset = BACKUP_BOOT_SECTOR * SECTOR_SIZE
    if is_boot_sector_candidate(image, offset):
        log.debug("Backup boot sector candidate at conventional offset %d", offset)
        return offset

    for offset in iter_backup_candidates(image):
        log.debug("Backup boot sector candidate at offset %d", offset)
        return offset

    log.debug("No backup boot sector candidate in %d bytes", len(image))
    return None


def read_boot_sector(image: bytearray, offset: int) -> c_fat32.BootSector:
    if offset < 0 or offset + BOOT_SECTOR_SIZE > len(image):
        raise OutOfRangeError(f"Boot sector at offset {offset} exceeds image size {len(image)}")
    return c_fat32.BootSector(bytes(image[offset : offset + BOOT_SECTOR_SIZE]))


def validate_bpb(image: bytearray, offset: int = PRIMARY_OFFSET) -> Geometry:
    """Validate the FAT32 boot sector at ``offset`` and return its geometry.

    Fields are checked in on-disk order and the first violation raises :class:`InvalidBPB` naming the field.
    The image is never modified.
    """
    bs = read_boot_sector(image, offset)

    # Detect a valid x86 JMP opcode
    if not (bs.BS_jmpBoot[0] == JMP_SHORT and bs.BS_jmpBoot[2] == NOP) and bs.BS_jmpBoot[0] != JMP_NEAR:
        raise InvalidBPB("BS_jmpBoot", bytes(bs.BS_jmpBoot), offset)

    if bs.BPB_BytsPerSec not in VALID_BPB_BYTES_PER_SECTOR:
        raise InvalidBPB("BPB_BytsPerSec", bs.BPB_BytsPerSec, offset)

    if bs.BPB_SecPerClus not in VALID_BPB_SECTORS_PER_CLUSTER:
        raise InvalidBPB("BPB_SecPerClus", bs.BPB_SecPerClus, offset)

    if bs.BPB_RsvdSecCnt == 0:
        raise InvalidBPB("BPB_RsvdSecCnt", bs.BPB_RsvdSecCnt, offset)

    if bs.BPB_NumFATs not in VALID_BPB_NUM_FATS:
        raise InvalidBPB("BPB_NumFATs", bs.BPB_NumFATs, offset)

    # FAT32 keeps its root directory in the data region and only uses the 32-bit size fields
    if bs.BPB_RootEntCnt != 0:
        raise InvalidBPB("BPB_RootEntCnt", bs.BPB_RootEntCnt, offset)

    if bs.BPB_TotSec16 != 0:
        raise InvalidBPB("BPB_TotSec16", bs.BPB_TotSec16, offset)

    if bs.BPB_Media not in VALID_BPB_MEDIA:
        raise InvalidBPB("BPB_Media", bs.BPB_Media, offset)

    if bs.BPB_FATSz16 != 0:
        raise InvalidBPB("BPB_FATSz16", bs.BPB_FATSz16, offset)

    if bs.BPB_TotSec32 == 0:
        raise InvalidBPB("BPB_TotSec32", bs.BPB_TotSec32, offset)

    if bs.BPB_FSVer != 0:
        raise InvalidBPB("BPB_FSVer", bs.BPB_FSVer, offset)

    if bs.BPB_Reserved[0] != 0:
        raise InvalidBPB("BPB_Reserved", bs.BPB_Reserved[0], offset)

    if bs.BS_DrvNum not in VALID_BPB_DRIVE_NUMBERS:
        raise InvalidBPB("BS_DrvNum", bs.BS_DrvNum, offset)

    if bs.BS_Reserved1 != 0:
        raise InvalidBPB("BS_Reserved1", bs.BS_Reserved1, offset)

    if tuple(bs.BS_BootSign) != BOOT_SIGNATURE:
        raise InvalidBPB("BS_BootSign", bytes(bs.BS_BootSign), offset)

    geometry = Geometry(
        bytes_per_sector=bs.BPB_BytsPerSec,
        sectors_per_cluster=bs.BPB_SecPerClus,
        reserved_sector_count=bs.BPB_RsvdSecCnt,
        number_of_fats=bs.BPB_NumFATs,
        fat_size=bs.BPB_FATSz32,
        root_cluster=bs.BPB_RootClus,
    )
    log.debug("Intact boot sector at offset %d: %r", offset, geometry)
    return geometry


def repair_bpb(image: bytearray, primary_offset: int, backup_offset: int) -> None:
    """Overwrite the boot sector at ``primary_offset`` with the (validated) one at ``backup_offset``."""
    for offset in (primary_offset, backup_offset):
        if offset < 0 or offset + BOOT_SECTOR_SIZE > len(image):
            raise OutOfRangeError(f"Boot sector at offset {offset} exceeds image size {len(image)}")

    image[primary_offset : primary_offset + BOOT_SECTOR_SIZE] = image[backup_offset : backup_offset + BOOT_SECTOR_SIZE]
    log.debug("Copied boot sector at offset %d over offset %d", backup_offset, primary_offset)
