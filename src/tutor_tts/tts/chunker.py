"""
Byte-Budgeted Text Segmentation for Speech Synthesis.

The synthesis backend limits each request by its size in UTF-8 bytes,
not characters: a Chinese character costs 3 bytes, an emoji 4. This
module splits sanitized text into chunks that each fit a byte budget
while breaking at the most natural point available.

Strategy (three levels, same greedy accumulation at each level):
    1. Sentences: split after 。！？, newline, or Latin . ! ? followed by
       whitespace/end. Sentences are packed into a chunk while it fits.
    2. Clauses: a sentence larger than the budget is split after
       ，；、 , ; and the clauses are packed the same way.
    3. Characters: a clause still larger than the budget is cut
       character by character, never inside a character.

A single character whose own encoding is larger than the budget is
emitted as its own chunk rather than dropped.

Example:
    >>> from tutor_tts.tts.chunker import segment_text
    >>> segment_text("第一句。第二句，很长。", max_bytes=12).chunks
    ['第一句。', '第二句，', '很长。']
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List

from tutor_tts.core.logging import get_logger, verbose
from tutor_tts.tts.sanitizer import utf8_len
from tutor_tts.utils.timeit import timeit

_LOG = get_logger("tutor-tts.chunker")


# =============================================================================
# Regex Patterns for Text Splitting
# =============================================================================

# Sentence terminators; the capture group keeps the terminator in re.split output.
# Latin terminators only count before whitespace or end of text ("3.14" stays whole).
_SENTENCE_END = re.compile(r"([。！？\n]|[.!?]+(?=\s|$))")

# Clause separators used for oversized sentences
_CLAUSE_END = re.compile(r"([，；、]|[,;](?=\s|$))")

# Horizontal whitespace only; newlines are sentence terminators
_HSPACE_RE = re.compile(r"[^\S\n]+")
_NEWLINES_RE = re.compile(r"\s*\n\s*")

SENTENCE_TERMINATORS = ("。", "！", "？")

DEFAULT_MAX_BYTES = 800


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class ChunkResult:
    """
    Result of text segmentation.

    Attributes:
        chunks: Ordered chunks, each within the byte budget.
        timings_s: Timing measurements in seconds.
    """
    chunks: List[str]
    timings_s: Dict[str, float]

    @property
    def byte_sizes(self) -> List[int]:
        return [utf8_len(c) for c in self.chunks]


# =============================================================================
# Segmentation
# =============================================================================

def segment_text(text: str, max_bytes: int = DEFAULT_MAX_BYTES) -> ChunkResult:
    """
    Split text into chunks whose UTF-8 size stays within max_bytes.

    Args:
        text: Sanitized text (see sanitizer.sanitize_for_speech).
        max_bytes: Byte budget per chunk (positive).

    Returns:
        ChunkResult with ordered, non-empty chunks; empty for blank input.

    Raises:
        ValueError: If max_bytes is not a positive integer.
    """
    if isinstance(max_bytes, bool) or not isinstance(max_bytes, int) or max_bytes <= 0:
        raise ValueError(f"max_bytes must be a positive integer, got {max_bytes!r}")

    with timeit("segment") as t:
        normalized = _normalize_whitespace(text)
        if normalized:
            chunks = _pack(_split_keep(normalized, _SENTENCE_END), max_bytes, _split_clauses)
        else:
            chunks = []

    timings = {"segment": t.seconds}
    verbose(
        _LOG, "segmented",
        chunks=len(chunks),
        max_bytes=max_bytes,
        largest_bytes=max((utf8_len(c) for c in chunks), default=0),
        seconds=round(timings["segment"], 4),
    )
    return ChunkResult(chunks=chunks, timings_s=timings)


def join_segments(chunks: List[str], terminator: str = "。") -> str:
    """
    Join chunks into one text with a sentence terminator between them.

    The result ends with a terminator unless the last chunk already ends
    with one of 。！？. Used to preview how a segmentation reads back.

    Example:
        >>> join_segments(["第一句", "第二句"])
        '第一句。第二句。'
    """
    parts = [c for c in chunks if c]
    if not parts:
        return ""
    joined = ""
    for i, part in enumerate(parts):
        joined += part
        if i < len(parts) - 1 and not part.endswith(SENTENCE_TERMINATORS):
            joined += terminator
    if not joined.endswith(SENTENCE_TERMINATORS):
        joined += terminator
    return joined


# =============================================================================
# Helper Functions
# =============================================================================

def _normalize_whitespace(text: str) -> str:
    s = _NEWLINES_RE.sub("\n", text)
    return _HSPACE_RE.sub(" ", s).strip()


def _split_keep(text: str, pattern: re.Pattern) -> List[str]:
    """Split text after each match of pattern, keeping the match with the left piece."""
    parts = pattern.split(text)
    pieces: List[str] = []
    for i in range(0, len(parts), 2):
        piece = parts[i] + (parts[i + 1] if i + 1 < len(parts) else "")
        if piece:
            pieces.append(piece)
    return pieces


def _emit(out: List[str], piece: str) -> None:
    piece = piece.strip()
    if piece:
        out.append(piece)


def _pack(
    pieces: List[str],
    max_bytes: int,
    split_oversized: Callable[[str, int], List[str]],
) -> List[str]:
    """
    Greedily pack pieces into chunks within max_bytes.

    A piece that alone exceeds the budget is handed to split_oversized;
    the last of its sub-chunks stays open so that following pieces can
    still be packed after it.
    """
    out: List[str] = []
    current = ""
    current_bytes = 0

    for piece in pieces:
        piece_bytes = utf8_len(piece)

        if current_bytes + piece_bytes <= max_bytes:
            current += piece
            current_bytes += piece_bytes
            continue

        _emit(out, current)
        current, current_bytes = "", 0

        if piece_bytes <= max_bytes:
            current, current_bytes = piece, piece_bytes
            continue

        sub = split_oversized(piece, max_bytes)
        if sub:
            out.extend(sub[:-1])
            current = sub[-1]
            current_bytes = utf8_len(current)

    _emit(out, current)
    return out


def _split_clauses(text: str, max_bytes: int) -> List[str]:
    return _pack(_split_keep(text, _CLAUSE_END), max_bytes, _split_chars)


def _split_chars(text: str, max_bytes: int) -> List[str]:
    """
    Cut text at character boundaries so each piece fits max_bytes.

    A character larger than the budget on its own becomes its own piece.
    """
    out: List[str] = []
    current = ""
    current_bytes = 0

    for ch in text:
        ch_bytes = utf8_len(ch)
        if current and current_bytes + ch_bytes > max_bytes:
            _emit(out, current)
            current, current_bytes = "", 0
        current += ch
        current_bytes += ch_bytes

    _emit(out, current)
    return out
