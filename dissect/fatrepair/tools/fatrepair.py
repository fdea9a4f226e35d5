from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dissect.fatrepair.events import EventLog
from dissect.fatrepair.exceptions import OutOfRangeError, UnrecoverableCorruption
from dissect.fatrepair.repair import FAT32Repair

log = logging.getLogger("dissect.fatrepair")

SEPARATOR = "-" * 36


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Verify and repair the boot sector and root directory of a FAT32 image.",
    )
    parser.add_argument("input", type=Path, help="FAT32 image to analyze")
    parser.add_argument("output", type=Path, help="path to write the repaired image to")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase logging verbosity")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
        level = logging.DEBUG if args.verbose > 1 else logging.INFO
        for name in list(logging.root.manager.loggerDict):
            if name.startswith(log.name):
                logging.getLogger(name).setLevel(level)

    image = bytearray(args.input.read_bytes())
    sink = EventLog()
    repair = FAT32Repair(image, sink)

    print("Analyzing boot sector...")
    try:
        geometry = repair.check_boot_sector()
    except UnrecoverableCorruption as e:
        _print_events(sink)
        print(f"Boot sector and backup boot sector are missing and/or corrupted beyond repair: {e}")
        return 1

    _print_events(sink)
    print(SEPARATOR)
    print(f"Bytes per sector: {geometry.bytes_per_sector}")
    print(f"Sectors per cluster: {geometry.sectors_per_cluster}")
    print(f"Number of reserved sectors: {geometry.reserved_sector_count}")
    print(f"Number of FATs: {geometry.number_of_fats}")
    print(f"Size of FATs (in sectors): {geometry.fat_size}")
    print(f"Root cluster: {geometry.root_cluster}")
    print(SEPARATOR)

    sink.clear()
    try:
        repair.scan_root_directory()
    except OutOfRangeError as e:
        _print_events(sink)
        print(f"Root directory could not be scanned: {e}")
        return 2

    _print_events(sink)
    print("All done.")

    args.output.write_bytes(image)
    return 0


def _print_events(sink: EventLog) -> None:
    for event in sink:
        print(event.message)


if __name__ == "__main__":
    sys.exit(main())
