"""
Command-Line Interface for tutor-tts.

Reads text aloud through the synthesis backend without a UI: every chunk
is synthesized and "played" into an output directory as numbered audio
files, in playback order. Dry-run mode shows how the text would be
sanitized and segmented without calling the backend.

Usage Examples:
    # Single text
    tutor-tts --text "你好。今天我们学习分数。" --out out/

    # Positional text (same as above)
    tutor-tts "你好。今天我们学习分数。" --out out/

    # Batch processing from file (1 line = 1 item, one subdirectory each)
    tutor-tts --file lesson.txt --out out/

    # Dry-run mode (no synthesis, shows segmentation)
    tutor-tts --text "第一句。第二句。" --dry-run --json

    # Smaller byte budget, other backend
    tutor-tts --text "..." --budget 500 --api-url http://tutor.local:3000

Environment Variables:
    TUTOR_TTS_SETTINGS: Settings file (default: config/settings.yaml)
    TUTOR_TTS_API_URL: Synthesis backend base URL
    TUTOR_TTS_LANGUAGE: Default language
    TUTOR_TTS_VOICE: Default voice
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from tutor_tts.core.config import ConfigValidationError, SpeechConfig, load_settings_or_defaults
from tutor_tts.core.logging import configure_logging, get_logger, info, set_request_id
from tutor_tts.services.playback import PlaybackSequencer, PlayStatus
from tutor_tts.tts.chunker import join_segments, segment_text
from tutor_tts.tts.player import FileSinkPlayer
from tutor_tts.tts.sanitizer import sanitize_for_speech
from tutor_tts.tts.synthesis import HttpSynthesisClient


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed argument namespace with all CLI options.
    """
    parser = argparse.ArgumentParser(description="tutor-tts CLI (read text aloud to files)")

    # Input options (mutually exclusive: text vs file)
    parser.add_argument("text_pos", nargs="?", help="Text to read (positional)")
    parser.add_argument("--text", help="Text to read")
    parser.add_argument("--file", help="Batch input file (1 line = 1 item)")

    # Output options
    parser.add_argument("--out", help="Output directory (default: out)")

    # Pipeline overrides
    parser.add_argument("--budget", type=int, help="Chunk byte budget override")
    parser.add_argument("--language", help="Language override")
    parser.add_argument("--voice", help="Voice override")
    parser.add_argument("--api-url", help="Synthesis backend base URL override")

    # Execution modes
    parser.add_argument("--dry-run", action="store_true",
                        help="Sanitize and segment without synthesis")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON summary")

    return parser.parse_args(argv)


def _load_texts(args: argparse.Namespace) -> List[str]:
    """
    Load input texts from arguments or file.

    Raises:
        SystemExit: If no input provided or conflicting options used.
    """
    text = args.text or args.text_pos

    if args.file:
        if text:
            raise SystemExit("Use --file without --text or positional text.")
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        items = [line.strip() for line in lines if line.strip()]
        if not items:
            raise SystemExit("Input file is empty.")
        return items

    if not text:
        raise SystemExit("Provide --text or a positional text.")
    return [text]


def _resolve_output_dirs(args: argparse.Namespace, count: int) -> List[Path]:
    """One output directory per item; batch mode numbers them item_001, item_002, ..."""
    out_dir = Path(args.out or "out")
    if args.file:
        return [out_dir / f"item_{i + 1:03d}" for i in range(count)]
    return [out_dir]


def _resolve_config(args: argparse.Namespace) -> SpeechConfig:
    """Load validated settings and apply command-line overrides."""
    settings = load_settings_or_defaults(os.getenv("TUTOR_TTS_SETTINGS", "config/settings.yaml"))
    config = settings.get_speech_config()

    if args.budget is not None:
        if args.budget <= 0:
            raise ConfigValidationError(f"--budget must be positive, got {args.budget}")
        config.segmentation = replace(config.segmentation, max_bytes=args.budget)
        # Retries never go below the floor, and never above the starting budget
        config.retry = replace(config.retry, budget_floor=min(config.retry.budget_floor, args.budget))

    if args.api_url:
        config.synthesis = replace(config.synthesis, base_url=args.api_url.rstrip("/"))
    return config


def _summary_for_text(text: str, max_bytes: int) -> Dict[str, Any]:
    """
    Sanitize and segment a text without synthesis.

    Returns:
        Dictionary with the sanitized text, chunks and their byte sizes.
    """
    cleaned = sanitize_for_speech(text)
    cr = segment_text(cleaned, max_bytes)
    return {
        "text_len": len(text),
        "clean_len": len(cleaned),
        "max_bytes": max_bytes,
        "chunks": cr.chunks,
        "byte_sizes": cr.byte_sizes,
        "preview": join_segments(cr.chunks),
    }


async def _speak_all(
    texts: List[str],
    out_dirs: List[Path],
    config: SpeechConfig,
    language: str,
    voice: str,
) -> List[Dict[str, Any]]:
    """Read every text through one shared backend client."""
    log = get_logger("tutor-tts.cli")
    results: List[Dict[str, Any]] = []

    async with HttpSynthesisClient.from_config(config.synthesis) as client:
        for text, out_dir in zip(texts, out_dirs):
            info(log, "speak_start", chars=len(text), out=str(out_dir))
            player = FileSinkPlayer(out_dir)
            sequencer = PlaybackSequencer(client, player, language=language, voice=voice, config=config)
            outcome = await sequencer.play(text)

            item: Dict[str, Any] = {
                "out": str(out_dir),
                "status": outcome.status,
                "chunks": outcome.chunks,
                "max_bytes": outcome.max_bytes,
                "retries": outcome.retries,
                "files": [str(p) for p in player.written],
            }
            if sequencer.error:
                item["error"] = sequencer.error
            results.append(item)

    return results


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Orchestrates the CLI workflow:
        1. Parse arguments and configure logging
        2. Load settings and apply overrides
        3. Handle dry-run mode (if requested)
        4. Read every text aloud into its output directory
        5. Output results in text or JSON format

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Exit code (0 for success, 1 when any item failed, 2 for bad configuration).
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("tutor-tts.cli")
    set_request_id(str(uuid4())[:12])

    try:
        config = _resolve_config(args)
    except ConfigValidationError as e:
        print(json.dumps({"ok": False, "error": "INVALID_CONFIG", "message": str(e)}, ensure_ascii=False))
        return 2

    language = args.language or config.synthesis.language
    voice = args.voice or config.synthesis.voice

    texts = _load_texts(args)
    out_dirs = _resolve_output_dirs(args, len(texts))

    if args.dry_run:
        summaries = [_summary_for_text(t, config.segmentation.max_bytes) for t in texts]
        payload = {"ok": True, "dry_run": True, "items": summaries}

        if args.json:
            print(json.dumps(payload, ensure_ascii=False))
        else:
            info(log, "dry_run", items=len(texts), max_bytes=config.segmentation.max_bytes,
                 language=language, voice=voice)
            print(payload)
        print("DRY_RUN_OK")
        return 0

    results = asyncio.run(_speak_all(texts, out_dirs, config, language, voice))
    ok = all(r["status"] != PlayStatus.FAILED for r in results)

    payload = {"ok": ok, "dry_run": False, "items": results}
    if args.json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)

    if not ok:
        return 1
    print("CLI_OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
