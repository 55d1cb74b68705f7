from __future__ import annotations


class DemParseError(ValueError):
    pass


class InvalidSignature(DemParseError):
    pass


class MalformedVarInt(DemParseError):
    pass


class TruncatedFrame(DemParseError):
    pass


class TruncatedEmbedded(DemParseError):
    pass


class UnknownMessageKind(DemParseError):
    def __init__(self, kind: int, table: str, offset: int | None = None) -> None:
        where = f" at offset {offset}" if offset is not None else ""
        super().__init__(f"unknown {table} message kind {kind}{where}")
        self.kind = kind
        self.table = table
        self.offset = offset


class DecompressionFailure(DemParseError):
    def __init__(self, kind: int, offset: int, reason: str) -> None:
        super().__init__(
            f"cannot decompress frame at offset {offset}: kind={kind}: {reason}"
        )
        self.kind = kind
        self.offset = offset
        self.reason = reason


class DuplicateTableName(DemParseError):
    pass


class UnknownTablePosition(DemParseError):
    def __init__(self, position: int, known: int) -> None:
        super().__init__(
            f"update references table position {position} but only {known} tables exist"
        )
        self.position = position
        self.known = known


class SpecializationDecodeFailure(DemParseError):
    def __init__(self, table_name: str, index: int, reason: str) -> None:
        super().__init__(f"cannot specialize {table_name}[{index}]: {reason}")
        self.table_name = table_name
        self.index = index
        self.reason = reason


class WireFormatError(DemParseError):
    pass


class MalformedEntryData(DemParseError):
    pass
