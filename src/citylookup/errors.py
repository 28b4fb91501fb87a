import enum


class ProcessingError(RuntimeError):
    """Base class for all data processing errors"""


class DecodeError(ProcessingError):
    def __init__(self, source: str, message: str):
        super().__init__(source, message)

    def __str__(self):
        return f"Cannot decode {self.args[0]}: {self.args[1]}"


class InputTooLarge(DecodeError):
    def __init__(self, source: str, size: int, max_size: int):
        super().__init__(source, f"file too large: {size} bytes (max: {max_size})")
        self.size = size
        self.max_size = max_size


class SchemaError(ProcessingError):
    def __init__(self, collection: str, index: int | None, message: str):
        super().__init__(collection, index, message)

    def __str__(self):
        if self.args[1] is None:
            return f"Invalid {self.args[0]}: {self.args[2]}"
        return f"Invalid {self.args[0]} record #{self.args[1]}: {self.args[2]}"


class OrphanKind(enum.StrEnum):
    STATE = "state"
    CITY = "city"


class OrphanReason(enum.StrEnum):
    MISSING_COUNTRY = "missing country"
    MISSING_STATE = "missing state"
    UNREACHABLE = "unreachable"  # city of an orphaned state


class OrphanReference(ProcessingError):
    """Dangling foreign key. Collected as a diagnostic, never raised."""

    def __init__(self, kind: OrphanKind, uid: int, parent_id: int, reason: OrphanReason):
        super().__init__(kind, uid, parent_id, reason)

    @property
    def kind(self) -> OrphanKind:
        return self.args[0]

    @property
    def uid(self) -> int:
        return self.args[1]

    @property
    def parent_id(self) -> int:
        return self.args[2]

    @property
    def reason(self) -> OrphanReason:
        return self.args[3]

    def __str__(self):
        parent = "country" if self.kind == OrphanKind.STATE else "state"
        return f"Orphan {self.kind} #{self.uid} ({self.reason}: {parent} #{self.parent_id})"


class EncodeError(ProcessingError):
    def __init__(self, artifact: str, message: str):
        super().__init__(artifact, message)

    def __str__(self):
        return f"Cannot encode {self.args[0]}: {self.args[1]}"


class WriteError(ProcessingError):
    def __init__(self, artifact: str, message: str):
        super().__init__(artifact, message)

    def __str__(self):
        return f"Cannot write {self.args[0]}: {self.args[1]}"


class OutputError(ProcessingError):
    def __init__(self, path: str, message: str):
        super().__init__(path, message)

    def __str__(self):
        return f"Cannot prepare output directory {self.args[0]}: {self.args[1]}"
