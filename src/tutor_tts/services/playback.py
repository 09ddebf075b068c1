"""
PlaybackSequencer - Read-Aloud Orchestration.

Single entry point used by tutor and lesson screens to speak a piece of
text. It owns the whole request lifecycle:

    play(text) -> sanitize -> segment -> dispatch synthesis -> play in order

Cancellation:
    Every play() takes a new request id from the sequencer instance; stop()
    and the next play() bump it. A superseded request keeps running until
    its next suspension point, then notices its id is stale and returns
    without touching state or firing callbacks. In-flight synthesis calls
    are not aborted.

Retry Policy:
    A TextTooLongError from the backend re-segments the text with a smaller
    budget (budget - step, never below floor), up to max_retries times. If
    resegmenting yields exactly the same chunks twice in a row, retrying
    cannot help and the error is surfaced. A retry is only counted once its
    attempt is actually dispatched.

Error Surfacing:
    NotConfiguredError -> error = "Speech service is not configured; ..."
    any other error    -> error = str(exc)
    on_error(exc) is called in both cases; remaining chunks are abandoned.

Example:
    >>> sequencer = PlaybackSequencer(client, FileSinkPlayer("out"),
    ...                               on_play_end=lambda: print("done"))
    >>> outcome = await sequencer.play("你好。今天我们学习分数。")
    >>> outcome.status
    'played'
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from tutor_tts.core.config import SpeechConfig
from tutor_tts.core.errors import NotConfiguredError, SpeechError, TextTooLongError
from tutor_tts.core.logging import debug, error, get_logger, info, set_request_id, success, verbose, warn
from tutor_tts.tts.chunker import segment_text
from tutor_tts.tts.dispatcher import BoundedDispatcher
from tutor_tts.tts.player import AudioHandle, AudioPlayer
from tutor_tts.tts.sanitizer import sanitize_for_speech
from tutor_tts.tts.synthesis import AudioRef, SynthesisClient
from tutor_tts.utils.timeit import timeit

_LOG = get_logger("tutor-tts.playback")

NOT_CONFIGURED_MESSAGE = "Speech service is not configured; showing text only"


class PlayStatus:
    """Final status of one play() call."""
    PLAYED = "played"       # Every chunk played to the end
    EMPTY = "empty"         # Nothing speakable after sanitization
    STALE = "stale"         # Superseded by stop() or a newer play()
    FAILED = "failed"       # Error surfaced through on_error


@dataclass
class PlayOutcome:
    """
    Summary of one play() call.

    Attributes:
        status: One of PlayStatus.
        request_id: Sequencer request id assigned to this call.
        chunks: Number of chunks in the last segmentation attempt.
        max_bytes: Byte budget of the last attempt.
        retries: Budget-reduction retries performed.
        error: The surfaced error, for FAILED outcomes.
        timings: Per-stage seconds of the last attempt.
    """
    status: str
    request_id: int
    chunks: int = 0
    max_bytes: int = 0
    retries: int = 0
    error: Optional[Exception] = None
    timings: Dict[str, float] = field(default_factory=dict)


class PlaybackSequencer:
    """
    Speaks text through a synthesis client and an audio player.

    All state (request id, current handle, playing/loading flags) belongs
    to the instance, so independent sequencers never interfere.

    Args:
        client: Synthesis client used for every chunk.
        player: Audio player that opens one handle per chunk.
        language: Language tag; defaults to config.synthesis.language.
        voice: Voice identifier; defaults to config.synthesis.voice.
        config: Pipeline configuration; defaults to SpeechConfig().
        on_play_start: Called once when the first chunk starts playing.
        on_play_end: Called once when the last chunk has ended.
        on_error: Called with the exception when a request fails.
    """

    def __init__(
        self,
        client: SynthesisClient,
        player: AudioPlayer,
        *,
        language: Optional[str] = None,
        voice: Optional[str] = None,
        config: Optional[SpeechConfig] = None,
        on_play_start: Optional[Callable[[], None]] = None,
        on_play_end: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.config = config or SpeechConfig()
        self.language = language or self.config.synthesis.language
        self.voice = voice or self.config.synthesis.voice
        self._client = client
        self._player = player
        self._dispatcher = BoundedDispatcher(self.config.dispatch.limit)
        self._on_play_start = on_play_start
        self._on_play_end = on_play_end
        self._on_error = on_error

        self._request_id = 0
        self._current: Optional[AudioHandle] = None
        self._is_playing = False
        self._is_loading = False
        self._error: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        """User-facing message of the last surfaced error, if any."""
        return self._error

    @property
    def request_id(self) -> int:
        return self._request_id

    @property
    def dispatcher(self) -> BoundedDispatcher:
        return self._dispatcher

    def _is_stale(self, request_id: int) -> bool:
        return request_id != self._request_id

    # ─────────────────────────────────────────────────────────────────────────
    # Public controls
    # ─────────────────────────────────────────────────────────────────────────

    async def play(self, text: str) -> PlayOutcome:
        """
        Speak text, superseding any request in progress.

        Errors are not raised: they are surfaced through on_error, the
        error property and the returned outcome.
        """
        if not text.strip():
            return PlayOutcome(status=PlayStatus.EMPTY, request_id=self._request_id)

        self._request_id += 1
        request_id = self._request_id
        set_request_id(f"play-{request_id}")

        self._error = None
        self._is_loading = True
        self._silence_current()

        cleaned = sanitize_for_speech(text)
        if not cleaned:
            self._is_loading = False
            return PlayOutcome(status=PlayStatus.EMPTY, request_id=request_id)

        preview_chars = self.config.logging.text_preview_chars
        info(_LOG, "play_start", chars=len(text), chars_clean=len(cleaned), preview=cleaned[:preview_chars])

        outcome = PlayOutcome(status=PlayStatus.PLAYED, request_id=request_id)
        try:
            await self._play_with_retry(cleaned, request_id, outcome)
        except Exception as exc:
            if self._is_stale(request_id):
                debug(_LOG, "stale_error_suppressed", error=str(exc))
                outcome.status = PlayStatus.STALE
                return outcome
            self._fail(exc)
            outcome.status = PlayStatus.FAILED
            outcome.error = exc
            return outcome

        if self._is_stale(request_id):
            outcome.status = PlayStatus.STALE
        return outcome

    def stop(self) -> None:
        """Invalidate the current request and stop its audio."""
        self._request_id += 1
        self._is_loading = False
        if self._current is not None:
            self._current.stop()
            self._current = None
            self._is_playing = False
        verbose(_LOG, "stopped", request_id=self._request_id)

    def pause(self) -> None:
        """Pause the chunk currently playing, if any."""
        if self._current is not None and self._is_playing:
            self._current.pause()
            self._is_playing = False

    # ─────────────────────────────────────────────────────────────────────────
    # Pipeline
    # ─────────────────────────────────────────────────────────────────────────

    async def _play_with_retry(self, cleaned: str, request_id: int, outcome: PlayOutcome) -> None:
        retry = self.config.retry
        budget = self.config.segmentation.max_bytes
        previous: Optional[List[str]] = None
        last_error: Optional[TextTooLongError] = None
        repeats = 0
        retrying = False

        while True:
            seg = segment_text(cleaned, budget)
            chunks = seg.chunks
            outcome.timings = dict(seg.timings_s)

            if not chunks:
                self._is_loading = False
                outcome.status = PlayStatus.EMPTY
                return

            # Identical resegmentation twice in a row: a smaller budget cannot help
            repeats = repeats + 1 if previous is not None and chunks == previous else 0
            if repeats >= 2 and last_error is not None:
                warn(_LOG, "retry_no_progress", retry=outcome.retries, max_bytes=budget, chunks=len(chunks))
                raise last_error

            if retrying:
                outcome.retries += 1
                retrying = False
            previous = chunks
            outcome.chunks = len(chunks)
            outcome.max_bytes = budget

            try:
                with timeit("dispatch") as t:
                    refs = await self._dispatcher.map(chunks, self._synthesize_chunk)
            except TextTooLongError as exc:
                if self._is_stale(request_id) or outcome.retries >= retry.max_retries:
                    raise
                budget = max(retry.budget_floor, budget - retry.budget_step)
                last_error = exc
                retrying = True
                warn(_LOG, "retry_smaller_budget", retry=outcome.retries + 1, max_bytes=budget, code=exc.code)
                continue
            outcome.timings["dispatch"] = t.seconds

            with timeit("playback") as t:
                await self._play_sequence(refs, request_id)
            outcome.timings["playback"] = t.seconds
            return

    async def _synthesize_chunk(self, chunk: str, index: int) -> AudioRef:
        return await self._client.synthesize(chunk, self.language, self.voice)

    async def _play_sequence(self, refs: List[AudioRef], request_id: int) -> None:
        started = False

        for index, ref in enumerate(refs):
            if self._is_stale(request_id):
                return

            handle = self._player.open(ref)
            self._current = handle
            if not started:
                started = True
                self._is_playing = True
                self._is_loading = False
                if self._on_play_start:
                    self._on_play_start()

            verbose(_LOG, "chunk_play", index=index + 1, total=len(refs))
            await handle.play_until_ended()

        if started and not self._is_stale(request_id):
            self._is_playing = False
            self._current = None
            success(_LOG, "play_end", chunks=len(refs))
            if self._on_play_end:
                self._on_play_end()

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _silence_current(self) -> None:
        if self._current is not None:
            self._current.stop()
            self._current = None
        self._is_playing = False

    def _fail(self, exc: Exception) -> None:
        if isinstance(exc, NotConfiguredError):
            self._error = NOT_CONFIGURED_MESSAGE
        else:
            self._error = str(exc) or exc.__class__.__name__

        code = exc.code if isinstance(exc, SpeechError) else exc.__class__.__name__
        error(_LOG, "play_failed", code=code, message=self._error)

        self._is_loading = False
        self._is_playing = False
        if self._current is not None:
            self._current.stop()
            self._current = None

        if self._on_error:
            self._on_error(exc)
