"""HTTP Range header handling for blob delivery."""

from dataclasses import dataclass

from filevault.exceptions.file import RangeNotSatisfiableError


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte range within a blob of ``size`` bytes."""

    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


def parse_range_header(header: str | None, size: int) -> ByteRange | None:
    """
    Parse a single-range ``Range`` header.

    Returns None when the whole body should be sent: no header, a malformed
    header, or a multi-range request. Raises RangeNotSatisfiableError when the
    range lies outside the blob.
    """
    if not header:
        return None

    unit, _, spec = header.strip().partition("=")
    if unit.strip().lower() != "bytes" or not spec or "," in spec:
        return None

    first, sep, last = spec.strip().partition("-")
    if not sep:
        return None
    first, last = first.strip(), last.strip()

    try:
        if not first:
            # bytes=-N: final N bytes
            if not last:
                return None
            suffix = int(last)
            if suffix <= 0 or size == 0:
                raise RangeNotSatisfiableError(size)
            start = max(size - suffix, 0)
            end = size - 1
        else:
            start = int(first)
            end = int(last) if last else size - 1
    except ValueError:
        return None

    if start < 0 or end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiableError(size)

    return ByteRange(start=start, end=min(end, size - 1), size=size)
