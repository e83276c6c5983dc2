"""Byte-range text edits over a source buffer."""

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class TextEdit:
    """Replace ``source[start:end]`` with ``replacement`` (UTF-8 bytes offsets)."""
    start: int
    end: int
    replacement: str

    def within(self, start: int, end: int) -> bool:
        return start <= self.start and self.end <= end


def apply_edits(source: bytes, edits: Iterable[TextEdit]) -> bytes:
    """Apply non-overlapping edits.

    Edits sharing a start offset are applied in the order given.

    Raises:
        ValueError: If two edits overlap
    """
    ordered = sorted(enumerate(edits), key=lambda item: (item[1].start, item[0]))
    out: List[bytes] = []
    cursor = 0
    for _, edit in ordered:
        if edit.start < cursor:
            raise ValueError(f"Overlapping edit at byte {edit.start}")
        out.append(source[cursor:edit.start])
        out.append(edit.replacement.encode("utf-8"))
        cursor = edit.end
    out.append(source[cursor:])
    return b"".join(out)


def slice_with_edits(source: bytes, start: int, end: int, edits: Iterable[TextEdit]) -> str:
    """Text of ``source[start:end]`` with the edits that fall inside it applied."""
    inner = [
        TextEdit(e.start - start, e.end - start, e.replacement)
        for e in edits
        if e.within(start, end)
    ]
    return apply_edits(source[start:end], inner).decode("utf-8", errors="replace")


def detect_newline(source: bytes) -> str:
    """``"\\r\\n"`` when the first line break of *source* is CRLF, else ``"\\n"``."""
    first = source.find(b"\n")
    if first > 0 and source[first - 1:first] == b"\r":
        return "\r\n"
    return "\n"
