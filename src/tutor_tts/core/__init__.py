"""
Core Infrastructure for tutor-tts.

This package provides foundational components:
    - config.py: Configuration loading and validation
    - errors.py: Error codes and the SpeechError hierarchy
    - logging/: Structured logging with numeric levels
"""
