"""
Utility Modules for tutor-tts.

    - audio.py: Audio reference (data URL / base64) decoding
    - timeit.py: Performance measurement utilities
"""
