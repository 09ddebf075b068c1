"""
Log Formatters for JSON and Console Output.

    JsonlFormatter: one JSON object per line for the rotating log file.
    ColoredConsoleFormatter: human-readable, colored terminal lines.

Output Examples:
    JSONL (file):
        {"ts":"2026-01-15T14:30:05+03:00","level":2,"tag":"INFO","message":"segmented","request_id":"play-3","extra":{"chunks":4,"max_bytes":800}}

    Console:
        14:30:05 [ INFO  ] (play-3) segmented chunks=4 max_bytes=800 0.001s

Field coloring (console):
    seconds      green < 0.1s, yellow < 1s, red otherwise
    retry        yellow once a retry happens
    largest_bytes / max_bytes ratio: cyan below 75%, yellow above
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .colors import Colors, get_tag_color


def _use_colors() -> bool:
    """Read the parent module's color flag at format time (tests toggle it)."""
    import tutor_tts.core.logging as log_module
    return getattr(log_module, "_USE_COLORS", False)


def _paint(text: str, color: str) -> str:
    if not _use_colors():
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """
    Format log records as JSON Lines.

    Output Format:
        {
            "ts": "...",            # ISO timestamp, local timezone
            "level": 2,             # Numeric level (1-4)
            "tag": "INFO",
            "message": "played",
            "request_id": "play-3",
            "event": "...",         # Optional
            "seconds": 0.5,         # Optional
            "extra": {...}          # Optional
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat()

        payload: Dict[str, Any] = {
            "ts": ts,
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format log records for the console.

    Output Format:
        HH:MM:SS [ TAG   ] (rid) message key=value 0.123s
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            _paint(ts, Colors.DIM),
            _paint(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(_paint(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_paint(f"event={event}", Colors.BLUE))

        extra_data = getattr(record, "extra_data", None) or {}
        for k, v in extra_data.items():
            parts.append(_paint(f"{k}={v}", self._field_color(k, v, extra_data)))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 0.1:
                time_color = Colors.GREEN
            elif seconds < 1.0:
                time_color = Colors.YELLOW
            else:
                time_color = Colors.RED
            parts.append(_paint(f"{seconds:.3f}s", time_color))

        return " ".join(parts)

    @staticmethod
    def _field_color(key: str, value: Any, fields: Dict[str, Any]) -> str:
        """Pick a color for one extra field."""
        if key == "retry" and isinstance(value, int):
            return Colors.YELLOW if value > 0 else Colors.DIM

        if key == "largest_bytes" and isinstance(value, int):
            budget = fields.get("max_bytes")
            if isinstance(budget, int) and budget > 0:
                return Colors.YELLOW if value > budget * 0.75 else Colors.CYAN

        if key == "code":
            return Colors.RED

        return Colors.DIM
