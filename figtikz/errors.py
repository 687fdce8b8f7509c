from __future__ import annotations


class FigDecodeError(RuntimeError):
    """Base class for every failure that aborts decoding a board."""


class FormatError(FigDecodeError):
    """The container framing around the payload is not usable."""


class TooSmallError(FormatError):
    pass


class UnsupportedFormatError(FormatError):
    pass


class ArchiveError(FormatError):
    pass


class SizeMismatchError(FormatError):
    def __init__(self, expected: int, found: int) -> None:
        super().__init__(f"divergent read and uncompressed size: expected {expected}, found {found}")
        self.expected = expected
        self.found = found


class MalformedContainerError(FormatError):
    pass


class TruncatedChunkError(MalformedContainerError):
    def __init__(self, offset: int, declared: int, available: int) -> None:
        super().__init__(
            f"chunk at offset 0x{offset:X} declares {declared} bytes but only {available} remain"
        )
        self.offset = offset
        self.declared = declared
        self.available = available


class InflateError(FormatError):
    pass


class RecordDecodeError(FigDecodeError):
    """Raised by record decoders when the schema payload cannot be decoded."""


class MissingRootError(FigDecodeError):
    pass


class KiwiDecodeError(RecordDecodeError):
    pass


class PageNotFoundError(ValueError):
    """The requested page index is not a child of the document root."""

    def __init__(self, page: int, available: int) -> None:
        super().__init__(f"page {page} out of range; the document has {available} top-level children")
        self.page = page
        self.available = available
