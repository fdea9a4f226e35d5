from dissect.fatrepair.bpb import (
    Geometry,
    locate_backup,
    locate_primary,
    repair_bpb,
    validate_bpb,
)
from dissect.fatrepair.directory import RootDirectoryScanner, scan_root_directory
from dissect.fatrepair.events import (
    BackupBootSectorUsed,
    BootSectorFound,
    Event,
    EventLog,
    FieldViolation,
    IllegalCharacterReplaced,
    InvalidAttributeType,
    ReservedByteRepaired,
)
from dissect.fatrepair.exceptions import (
    Error,
    InvalidBPB,
    OutOfRangeError,
    UnrecoverableCorruption,
)
from dissect.fatrepair.repair import FAT32Repair


__all__ = [
    "FAT32Repair",
    "Geometry",
    "RootDirectoryScanner",
    "BackupBootSectorUsed",
    "BootSectorFound",
    "Error",
    "Event",
    "EventLog",
    "FieldViolation",
    "IllegalCharacterReplaced",
    "InvalidAttributeType",
    "InvalidBPB",
    "OutOfRangeError",
    "ReservedByteRepaired",
    "UnrecoverableCorruption",
    "locate_backup",
    "locate_primary",
    "repair_bpb",
    "scan_root_directory",
    "validate_bpb",
]
