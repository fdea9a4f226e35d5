from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)
log.setLevel(os.getenv("DISSECT_LOG_FATREPAIR", "CRITICAL"))


@dataclass(frozen=True)
class Event:
    """Base class for everything the boot sector and directory checks report.

    Events that changed a byte of the image have ``is_repair`` set.
    """

    offset: int

    is_repair = False

    @property
    def message(self) -> str:
        return f"{self.__class__.__name__} at offset {self.offset}"


@dataclass(frozen=True)
class BootSectorFound(Event):
    @property
    def message(self) -> str:
        return "Boot sector located."


@dataclass(frozen=True)
class BackupBootSectorUsed(Event):
    is_repair = True

    @property
    def message(self) -> str:
        return f"Backup boot sector located at offset {self.offset}. Boot sector repaired using the backup."


@dataclass(frozen=True)
class FieldViolation(Event):
    field: str
    value: int | bytes | None = None

    @property
    def message(self) -> str:
        return f"Boot sector at offset {self.offset} is missing and/or modified: invalid {self.field}."


@dataclass(frozen=True)
class IllegalCharacterReplaced(Event):
    is_repair = True

    @property
    def message(self) -> str:
        return f"Replaced an illegal character in a directory entry's file name at offset {self.offset}."


@dataclass(frozen=True)
class InvalidAttributeType(Event):
    name: str
    attribute: int

    @property
    def message(self) -> str:
        return (
            f"{self.name} located at offset {self.offset} has an invalid file attribute type (0x{self.attribute:02x})."
            " This repair cannot be done automatically."
        )


@dataclass(frozen=True)
class ReservedByteRepaired(Event):
    is_repair = True

    @property
    def message(self) -> str:
        return f"Repaired the directory entry's reserved byte at offset {self.offset}."


class EventLog:
    """Default event sink, collects events in emission order."""

    def __init__(self):
        self.events: list[Event] = []

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def __getitem__(self, idx: int) -> Event:
        return self.events[idx]

    def emit(self, event: Event) -> None:
        log.info(event.message)
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()

    @property
    def repairs(self) -> list[Event]:
        return [e for e in self.events if e.is_repair]

    @property
    def reports(self) -> list[Event]:
        return [e for e in self.events if not e.is_repair]

    def of_type(self, event_type: type[Event]) -> list[Event]:
        return [e for e in self.events if isinstance(e, event_type)]
