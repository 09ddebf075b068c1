"""
Read-Aloud Building Blocks.

    - sanitizer.py: Strip emoji, pinyin annotations and music symbols
    - chunker.py: Byte-budgeted sentence/clause/character segmentation
    - dispatcher.py: Order-preserving bounded-concurrency async map
    - synthesis.py: Synthesis backend client and AudioRef
    - schemas.py: Pydantic wire schemas for the synthesis backend
    - player.py: Audio playback primitives
"""
