"""
Audio Reference Decoding.

The synthesis backend answers each chunk with an audio reference: either
a data URL ("data:audio/mp3;base64,....") or bare base64 content. These
helpers normalize and decode such references for players that need the
raw bytes.

Example:
    >>> to_data_url("SUQz", "audio/mpeg")
    'data:audio/mpeg;base64,SUQz'
    >>> decode_audio_ref("data:audio/mpeg;base64,SUQz")
    (b'ID3', 'audio/mpeg')
"""
from __future__ import annotations

import base64
import binascii
import re
from typing import Tuple

DEFAULT_MIME = "audio/mpeg"

# data:[<mime>][;base64],<payload>
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<payload>.*)$", re.DOTALL)

_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/ogg": "ogg",
    "audio/opus": "opus",
    "audio/webm": "webm",
    "audio/flac": "flac",
    "audio/l16": "pcm",
}


def is_data_url(ref: str) -> bool:
    return ref.startswith("data:")


def to_data_url(content: str, mime_type: str = DEFAULT_MIME) -> str:
    """Wrap bare base64 audio content into a data URL; data URLs pass through."""
    if is_data_url(content):
        return content
    return f"data:{mime_type};base64,{content}"


def decode_audio_ref(ref: str) -> Tuple[bytes, str]:
    """
    Decode a data URL (or bare base64) into (audio_bytes, mime_type).

    Raises:
        ValueError: If the reference is not valid base64 / data URL, or
            decodes to zero bytes.
    """
    mime = DEFAULT_MIME
    payload = ref.strip()

    if is_data_url(payload):
        m = _DATA_URL_RE.match(payload)
        if not m:
            raise ValueError("malformed data URL")
        if not m.group("b64"):
            raise ValueError("data URL is not base64 encoded")
        mime = (m.group("mime") or DEFAULT_MIME).lower()
        payload = m.group("payload")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64 audio payload: {e}") from e

    if not data:
        raise ValueError("empty audio payload")
    return data, mime


def extension_for_mime(mime_type: str) -> str | None:
    """File extension for a supported audio MIME type, else None."""
    return _EXTENSIONS.get(mime_type.lower())
