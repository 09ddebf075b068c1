"""
tutor-tts: Read-aloud pipeline for the tutoring platform.

Turns a tutor reply or lesson passage into a sequence of speech-synthesis
requests that stay within the synthesis backend's byte limits, dispatches
them with bounded concurrency and plays the returned audio strictly in
order.

Pipeline:
    text -> sanitize -> segment (UTF-8 byte budget) -> dispatch (N in flight)
         -> ordered audio references -> sequential playback

Key Features:
    - Emoji, pinyin annotation and music-symbol stripping before synthesis
    - Sentence -> clause -> character segmentation under a byte budget
    - Order-preserving bounded-concurrency dispatcher
    - Last-request-wins playback with budget-reducing retry on
      "text too long" rejections

Example Usage:
    >>> from tutor_tts.tts.chunker import segment_text
    >>> segment_text("第一句。第二句。", max_bytes=800).chunks
    ['第一句。第二句。']
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
