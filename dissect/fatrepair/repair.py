from __future__ import annotations

import logging
import os

from dissect.fatrepair.bpb import (
    Geometry,
    locate_backup,
    locate_primary,
    repair_bpb,
    validate_bpb,
)
from dissect.fatrepair.c_fat32 import FILLER_BYTE
from dissect.fatrepair.directory import RootDirectoryScanner
from dissect.fatrepair.events import (
    BackupBootSectorUsed,
    BootSectorFound,
    EventLog,
    FieldViolation,
)
from dissect.fatrepair.exceptions import (
    InvalidBPB,
    OutOfRangeError,
    UnrecoverableCorruption,
)

log = logging.getLogger(__name__)
log.setLevel(os.getenv("DISSECT_LOG_FATREPAIR", "CRITICAL"))


class FAT32Repair:
    """Verify and repair the boot sector and root directory of a FAT32 image.

    The image is modified in place. If neither the boot sector nor its backup is intact,
    :class:`UnrecoverableCorruption` is raised and the image is left untouched.
    """

    def __init__(
        self,
        image: bytearray,
        sink: EventLog | None = None,
        encoding: str = "ibm437",
        filler: int = FILLER_BYTE,
    ):
        if not isinstance(image, bytearray):
            raise TypeError(f"Image must be a bytearray, got {type(image).__name__}")

        self.image = image
        self.sink = sink if sink is not None else EventLog()
        self.encoding = encoding
        self.filler = filler

        self.geometry: Geometry | None = None
        self.backup_offset: int | None = None

    def run(self) -> Geometry:
        self.check_boot_sector()
        self.scan_root_directory()
        return self.geometry

    def check_boot_sector(self) -> Geometry:
        self.geometry = self._check_boot_sector()
        return self.geometry

    def _check_boot_sector(self) -> Geometry:
        primary = locate_primary(self.image)

        try:
            geometry = validate_bpb(self.image, primary)
        except (InvalidBPB, OutOfRangeError) as e:
            log.debug("Primary boot sector rejected: %s", e)
            self.sink.emit(_field_violation(e, primary))
        else:
            self.sink.emit(BootSectorFound(primary))
            return geometry

        backup = locate_backup(self.image)
        if backup is None:
            raise UnrecoverableCorruption("Boot sector is corrupted and no backup boot sector was found")

        try:
            geometry = validate_bpb(self.image, backup)
        except InvalidBPB as e:
            self.sink.emit(_field_violation(e, backup))
            raise UnrecoverableCorruption(
                f"Boot sector and backup boot sector at offset {backup} are corrupted beyond repair"
            ) from e

        repair_bpb(self.image, primary, backup)
        self.backup_offset = backup
        self.sink.emit(BackupBootSectorUsed(backup))
        return geometry

    def scan_root_directory(self) -> EventLog:
        if self.geometry is None:
            self.check_boot_sector()

        scanner = RootDirectoryScanner(self.image, self.geometry, self.sink, self.encoding, self.filler)
        return scanner.scan()


def _field_violation(exc: InvalidBPB | OutOfRangeError, offset: int) -> FieldViolation:
    if isinstance(exc, InvalidBPB):
        return FieldViolation(exc.offset, exc.field, exc.value)
    return FieldViolation(offset, "BootSector")
