from __future__ import annotations


class Error(Exception):
    pass


class InvalidBPB(Error):
    def __init__(self, field: str, value: int | bytes, offset: int = 0):
        self.field = field
        self.value = value
        self.offset = offset

        if isinstance(value, int):
            value = f"0x{value:x}"
        else:
            value = repr(bytes(value))
        super().__init__(f"Invalid {field} in boot sector at offset {offset}: {value}")


class UnrecoverableCorruption(Error):
    pass


class OutOfRangeError(Error):
    pass
