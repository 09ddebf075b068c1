"""
Text Sanitization for Speech Synthesis.

Tutor replies are written for the screen: they carry emoji, pinyin
annotations of the form ⟪汉字⧸hànzì⟫ and the occasional music symbol.
None of that should be spoken, and every removed character also frees
bytes in the synthesis budget (most emoji are 4 bytes in UTF-8).

Sanitization Steps:
    1. Remove emoji ranges, zero-width joiners, variation selectors and
       combining marks for symbols
    2. Remove complete annotations ⟪...⧸...⟫
    3. Remove malformed annotation pieces (unterminated or unopened)
    4. Remove any remaining ⟪ ⟫ ⧸ delimiter
    5. Remove musical symbols (U+1D100-U+1D1FF)
    6. Collapse whitespace runs to one space, trim

Example:
    >>> sanitize_for_speech("⟪汉字⧸hanzi⟫你好😀")
    '你好'
"""
from __future__ import annotations

import re

from tutor_tts.core.logging import get_logger, verbose

_LOG = get_logger("tutor-tts.sanitizer")

_EMOJI_RE = re.compile(
    "["
    "\U0001F300-\U0001F9FF"   # Misc symbols & pictographs, emoticons, transport, supplemental
    "\u2600-\u26FF"           # Misc symbols
    "\u2700-\u27BF"           # Dingbats
    "\U0001F1E0-\U0001F1FF"   # Regional indicators (flags)
    "\U0001F600-\U0001F64F"   # Emoticons
    "\U0001F680-\U0001F6FF"   # Transport & map
    "\U0001F700-\U0001F8FF"   # Alchemical, geometric ext., arrows-C
    "\U0001FA00-\U0001FAFF"   # Chess, symbols & pictographs ext-A
    "\u200D"                  # Zero-width joiner
    "\uFE00-\uFE0F"           # Variation selectors
    "\u20D0-\u20FF"           # Combining marks for symbols
    "]"
)

_ANNOTATION_FULL_RE = re.compile(r"⟪[^⟫]*⧸[^⟫]*⟫")
_ANNOTATION_UNCLOSED_RE = re.compile(r"⟪[^⧸⟫]*⧸[^⟫]*")
_ANNOTATION_OPEN_ONLY_RE = re.compile(r"⟪[^⟫]*")
_ANNOTATION_UNOPENED_RE = re.compile(r"⧸[^⟫]*⟫")
_ANNOTATION_CHARS_RE = re.compile(r"[⟪⟫⧸]")

_MUSIC_RE = re.compile("[\U0001D100-\U0001D1FF]")

_WS_RE = re.compile(r"\s+")


def utf8_len(text: str) -> int:
    """Size of text in UTF-8 bytes, the unit synthesis limits are expressed in."""
    return len(text.encode("utf-8"))


def strip_annotations(text: str) -> str:
    """
    Remove pronunciation annotations, whole or piecewise when malformed.

    Order matters: complete annotations go first so that a later
    unterminated opener does not swallow the text between two
    well-formed ones.
    """
    s = _ANNOTATION_FULL_RE.sub("", text)
    s = _ANNOTATION_UNCLOSED_RE.sub("", s)
    s = _ANNOTATION_OPEN_ONLY_RE.sub("", s)
    s = _ANNOTATION_UNOPENED_RE.sub("", s)
    return _ANNOTATION_CHARS_RE.sub("", s)


def sanitize_for_speech(text: str) -> str:
    """
    Strip characters that are decorative or inert for speech synthesis.

    Never raises on malformed input; the result may be empty.

    Args:
        text: Raw text as shown to the learner.

    Returns:
        Sanitized text with whitespace collapsed and ends trimmed.
    """
    s = _EMOJI_RE.sub("", text)
    s = strip_annotations(s)
    s = _MUSIC_RE.sub("", s)
    s = _WS_RE.sub(" ", s).strip()

    verbose(_LOG, "sanitized", chars_in=len(text), chars_out=len(s), bytes_out=utf8_len(s))
    return s
