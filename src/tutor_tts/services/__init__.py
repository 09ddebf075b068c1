"""
tutor-tts Services Layer.

Components:
    - playback.py: PlaybackSequencer (sanitize, segment, dispatch, play in order)

The PlaybackSequencer handles:
    - Last-request-wins cancellation
    - Budget-reduction retries on length rejections
    - Error classification and surfacing to the caller
"""
from .playback import (
    NOT_CONFIGURED_MESSAGE,
    PlaybackSequencer,
    PlayOutcome,
    PlayStatus,
)

__all__ = [
    "PlaybackSequencer",
    "PlayOutcome",
    "PlayStatus",
    "NOT_CONFIGURED_MESSAGE",
]
