from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from dissect.fatrepair.c_fat32 import (
    DELETED_ENTRY,
    DIR_NAME_SIZE,
    DIR_NTRES_OFFSET,
    DIRENT_SIZE,
    FILLER_BYTE,
    ILLEGAL_NAME_BYTES,
    LDIR_FSTCLUSLO_OFFSET,
    VALID_DIR_ATTRIBUTES,
    c_fat32,
)
from dissect.fatrepair.events import (
    EventLog,
    IllegalCharacterReplaced,
    InvalidAttributeType,
    ReservedByteRepaired,
)
from dissect.fatrepair.exceptions import OutOfRangeError

if TYPE_CHECKING:
    from dissect.fatrepair.bpb import Geometry
    from dissect.fatrepair.events import Event

log = logging.getLogger(__name__)
log.setLevel(os.getenv("DISSECT_LOG_FATREPAIR", "CRITICAL"))


class RootDirectoryScanner:
    """Check and repair the short entries of a FAT32 root directory in place.

    Illegal name bytes and non-zero reserved fields are repaired, invalid attribute bytes are only reported. The
    scan stops at the end of directory marker: an entry starting with three zero bytes, followed by an entry
    starting with two zero bytes.

    Args:
        image: The writable volume image.
        geometry: Geometry of the intact boot sector.
        sink: Object with an ``emit(event)`` method, defaults to a new :class:`EventLog`.
        encoding: Encoding used to decode short names in reports.
        filler: Byte that replaces illegal name bytes.
    """

    def __init__(
        self,
        image: bytearray,
        geometry: Geometry,
        sink: EventLog | None = None,
        encoding: str = "ibm437",
        filler: int = FILLER_BYTE,
    ):
        if filler in ILLEGAL_NAME_BYTES or filler == DELETED_ENTRY:
            raise ValueError(f"Filler byte is not a legal name byte: 0x{filler:02x}")

        self.image = image
        self.geometry = geometry
        self.sink = sink if sink is not None else EventLog()
        self.encoding = encoding
        self.filler = filler

        self.offset = geometry.root_dir_offset
        self.terminated = False

    def __repr__(self) -> str:
        return f"<RootDirectoryScanner offset={self.offset} terminated={self.terminated}>"

    def scan(self) -> EventLog:
        log.debug("Scanning root directory at offset %d", self.offset)

        while not self.terminated:
            self.step()

        return self.sink

    def step(self) -> None:
        """Check the entry at the current offset and advance to the next one."""
        offset = self.offset
        self._check_range(offset)

        dirent = c_fat32.Dirent(bytes(self.image[offset : offset + DIRENT_SIZE]))
        end_of_directory = self.is_end_of_directory(offset)

        # A free terminating entry has no attribute to report
        if not end_of_directory and dirent.DIR_Attr not in VALID_DIR_ATTRIBUTES:
            name = bytes(dirent.DIR_Name).decode(self.encoding)
            self._emit(InvalidAttributeType(offset, name, dirent.DIR_Attr))

        if dirent.DIR_NTRes != 0:
            self.image[offset + DIR_NTRES_OFFSET] = 0
            self._emit(ReservedByteRepaired(offset + DIR_NTRES_OFFSET))

        if end_of_directory:
            log.debug("End of directory at offset %d", offset)
            self.terminated = True
            return

        self._check_first_byte(offset)

        if dirent.DIR_Attr == c_fat32.ATTR_LONG_NAME:
            self._check_long_name(offset)
        else:
            self._check_name(offset)

        self.offset += DIRENT_SIZE

    def is_end_of_directory(self, offset: int) -> bool:
        if any(self.image[offset : offset + 3]):
            return False

        self._check_range(offset + DIRENT_SIZE)
        return not any(self.image[offset + DIRENT_SIZE : offset + DIRENT_SIZE + 2])

    def _check_first_byte(self, offset: int) -> None:
        first = self.image[offset]

        if first in (DELETED_ENTRY, 0x20):
            self._replace(offset)
        elif first == 0x00 and (self.image[offset + 1] or self.image[offset + 2]):
            # Not an end of directory marker, just a zero name byte
            self._replace(offset)

    def _check_name(self, offset: int) -> None:
        for idx in range(offset, offset + DIR_NAME_SIZE):
            if self.image[idx] in ILLEGAL_NAME_BYTES:
                self._replace(idx)

    def _check_long_name(self, offset: int) -> None:
        # Long name characters are UCS-2, only LDIR_FstClusLO is checked
        ldirent = c_fat32.Ldirent(bytes(self.image[offset : offset + DIRENT_SIZE]))
        if ldirent.LDIR_FstClusLO != 0:
            start = offset + LDIR_FSTCLUSLO_OFFSET
            self.image[start : start + 2] = b"\x00\x00"
            self._emit(ReservedByteRepaired(start))

    def _replace(self, offset: int) -> None:
        self.image[offset] = self.filler
        self._emit(IllegalCharacterReplaced(offset))

    def _check_range(self, offset: int) -> None:
        if offset + DIRENT_SIZE > len(self.image):
            raise OutOfRangeError(
                f"Directory entry at offset {offset} exceeds image size {len(self.image)}, no end of directory found"
            )

    def _emit(self, event: Event) -> None:
        self.sink.emit(event)


def scan_root_directory(
    image: bytearray,
    geometry: Geometry,
    sink: EventLog | None = None,
    encoding: str = "ibm437",
) -> EventLog:
    return RootDirectoryScanner(image, geometry, sink, encoding).scan()
