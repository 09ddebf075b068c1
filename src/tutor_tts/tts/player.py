"""
Audio Playback Primitives.

The playback sequencer plays one AudioRef at a time through an
AudioPlayer. A player opens a handle per reference; awaiting
handle.play_until_ended() is the suspension point between chunk i and
chunk i + 1.

Handle Contract:
    - play_until_ended() returns when the audio finished, or when the
      handle was stopped; it raises PlaybackError when the audio cannot
      be played (decode, network, unsupported format, not allowed).
    - pause() and stop() are synchronous and idempotent.

FileSinkPlayer is the concrete player used by the CLI: it "plays" each
reference by decoding it and writing chunk_001.mp3, chunk_002.mp3, ...
into an output directory, in playback order.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from tutor_tts.core.errors import MediaErrorCode, PlaybackError
from tutor_tts.core.logging import get_logger, verbose
from tutor_tts.tts.synthesis import AudioRef
from tutor_tts.utils.audio import decode_audio_ref, extension_for_mime, is_data_url

_LOG = get_logger("tutor-tts.player")


class AudioHandle(ABC):
    """One playable audio reference."""

    def __init__(self, ref: AudioRef):
        self.ref = ref
        self.paused = False
        self.stopped = False

    @abstractmethod
    async def play_until_ended(self) -> None:
        """Play the audio and return once it has ended or was stopped."""

    def pause(self) -> None:
        self.paused = True

    def stop(self) -> None:
        self.stopped = True


class AudioPlayer(ABC):
    """Factory of AudioHandles."""

    @abstractmethod
    def open(self, ref: AudioRef) -> AudioHandle:
        """Create a handle for ref; nothing plays until play_until_ended()."""


class FileSinkHandle(AudioHandle):
    def __init__(self, ref: AudioRef, path_stem: Path, written: List[Path]):
        super().__init__(ref)
        self._path_stem = path_stem
        self._written = written

    async def play_until_ended(self) -> None:
        if self.stopped:
            return
        if not is_data_url(self.ref.url):
            # Remote URLs would need a network fetch; this sink only handles inline audio
            raise PlaybackError(MediaErrorCode.SRC_NOT_SUPPORTED, details={"url": self.ref.url[:80]})

        try:
            data, mime = decode_audio_ref(self.ref.url)
        except ValueError as e:
            raise PlaybackError(MediaErrorCode.DECODE, str(e)) from e

        ext = extension_for_mime(mime)
        if ext is None:
            raise PlaybackError(MediaErrorCode.SRC_NOT_SUPPORTED, details={"mime": mime})

        path = self._path_stem.with_suffix(f".{ext}")
        path.write_bytes(data)
        self._written.append(path)
        verbose(_LOG, "chunk_written", path=str(path), bytes=len(data))


class FileSinkPlayer(AudioPlayer):
    """
    Writes every played reference to out_dir, numbered in playback order.

    Attributes:
        written: Paths written so far, in order.
    """

    def __init__(self, out_dir: str | Path):
        self.out_dir = Path(out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.written: List[Path] = []
        self._opened = 0

    def open(self, ref: AudioRef) -> AudioHandle:
        self._opened += 1
        return FileSinkHandle(ref, self.out_dir / f"chunk_{self._opened:03d}", self.written)
