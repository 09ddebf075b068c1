"""
Synthesis Backend Client.

Each chunk is sent to the platform backend's text-to-speech endpoint and
comes back as a playable audio reference. Backend failures are turned
into typed errors here, so the playback layer never inspects message
text:

    "... too long ..." / "... sentence ..." / HTTP 413  -> TextTooLongError
    "... not configured ..." / "... credentials ..."    -> NotConfiguredError
    anything else, transport errors, malformed bodies  -> SynthesisError

Usage:
    async with HttpSynthesisClient("http://localhost:3000") as client:
        ref = await client.synthesize("你好。", "cmn-CN", "cmn-CN-Chirp3-HD-Despina")
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from tutor_tts.core.config import Defaults, SynthesisConfig
from tutor_tts.core.errors import SynthesisError, classify_synthesis_failure
from tutor_tts.core.logging import debug, get_logger, warn
from tutor_tts.tts.schemas import SynthesisRequest, SynthesisResponse
from tutor_tts.tts.sanitizer import utf8_len
from tutor_tts.utils.audio import DEFAULT_MIME, is_data_url, to_data_url

_LOG = get_logger("tutor-tts.synthesis")


@dataclass(frozen=True)
class AudioRef:
    """
    Playable audio returned for one chunk.

    Attributes:
        url: Data URL or remote URL of the audio.
        mime_type: MIME type when known (data URLs carry their own).
    """
    url: str
    mime_type: str = DEFAULT_MIME


class SynthesisClient(Protocol):
    """Anything that turns one chunk into an AudioRef."""

    async def synthesize(self, text: str, language: str, voice: str) -> AudioRef:
        ...


class HttpSynthesisClient:
    """
    httpx-based client for the backend /api/tts endpoint.

    Args:
        base_url: Backend root, e.g. "http://localhost:3000".
        endpoint: Path of the synthesis endpoint.
        timeout_s: Per-request timeout when the client owns its httpx client.
        client: Optional shared httpx.AsyncClient (not closed by aclose()).
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = Defaults.SYNTHESIS_ENDPOINT,
        timeout_s: float = Defaults.SYNTHESIS_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not base_url:
            raise ValueError("base_url must not be empty")
        self.url = base_url.rstrip("/") + "/" + endpoint.lstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_config(cls, config: SynthesisConfig, client: Optional[httpx.AsyncClient] = None) -> "HttpSynthesisClient":
        return cls(config.base_url, config.endpoint, config.timeout_s, client=client)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpSynthesisClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def synthesize(self, text: str, language: str, voice: str) -> AudioRef:
        """
        Synthesize one chunk.

        Raises:
            TextTooLongError: Backend rejected the chunk for its length.
            NotConfiguredError: Backend is missing credentials/configuration.
            SynthesisError: Any other failure.
        """
        request = SynthesisRequest(text=text, language=language, voice=voice)
        details: Dict[str, Any] = {"bytes": utf8_len(text)}

        try:
            resp = await self._client.post(self.url, json=request.model_dump(by_alias=True))
        except httpx.TimeoutException as e:
            raise SynthesisError(f"Synthesis request timed out: {e}", details) from e
        except httpx.HTTPError as e:
            raise SynthesisError(f"Network error while calling synthesis backend: {e}", details) from e

        if resp.is_error:
            details["status"] = resp.status_code
            message = _error_message(resp)
            warn(_LOG, "synthesis_rejected", status=resp.status_code, message=message, bytes=details["bytes"])
            raise classify_synthesis_failure(message, resp.status_code, details)

        try:
            body = SynthesisResponse.model_validate(resp.json())
        except ValueError as e:
            raise SynthesisError(f"Malformed synthesis response: {e}", details) from e

        if body.error:
            raise classify_synthesis_failure(body.error, resp.status_code, details)
        if body.data is None:
            raise SynthesisError("Synthesis response carries no data", details)

        ref = _to_audio_ref(body.data.audio_url, body.data.audio_content, body.data.mime_type)
        debug(_LOG, "synthesized", bytes=details["bytes"], mime=ref.mime_type)
        return ref


def _error_message(resp: httpx.Response) -> str:
    """Backend error text, falling back to the HTTP status line."""
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"Synthesis failed with status {resp.status_code}: {resp.reason_phrase}"


def _to_audio_ref(audio_url: Optional[str], audio_content: Optional[str], mime_type: Optional[str]) -> AudioRef:
    mime = mime_type or DEFAULT_MIME
    if audio_url:
        return AudioRef(url=audio_url, mime_type=_data_url_mime(audio_url) or mime)
    if not audio_content:
        raise SynthesisError("Synthesis response carries no audio")
    url = to_data_url(audio_content, mime)
    return AudioRef(url=url, mime_type=_data_url_mime(url) or mime)


def _data_url_mime(url: str) -> Optional[str]:
    if not is_data_url(url):
        return None
    head = url[len("data:"):].split(",", 1)[0]
    mime = head.split(";", 1)[0]
    return mime or None
