import json

import httpx
import pytest

from tutor_tts import cli
from tutor_tts.services.playback import NOT_CONFIGURED_MESSAGE


def _json_line(out: str) -> dict:
    return json.loads(next(line for line in out.splitlines() if line.startswith("{")))


def _mock_backend(monkeypatch, handler):
    """Route every httpx.AsyncClient the CLI creates through a MockTransport."""
    real = httpx.AsyncClient
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kw: real(transport=httpx.MockTransport(handler), **kw))


def test_cli_dry_run(capsys):
    code = cli.main(["--text", "dry run test", "--dry-run"])
    assert code == 0
    out = capsys.readouterr().out
    assert "DRY_RUN_OK" in out


def test_cli_dry_run_json(capsys):
    code = cli.main(["⟪汉字⧸hanzi⟫第一句。第二句。", "--dry-run", "--json", "--budget", "12"])
    assert code == 0

    out = capsys.readouterr().out
    payload = _json_line(out)
    item = payload["items"][0]

    assert payload["ok"] is True
    assert payload["dry_run"] is True
    assert item["max_bytes"] == 12
    assert item["chunks"] == ["第一句。", "第二句。"]
    assert item["byte_sizes"] == [12, 12]
    assert item["preview"] == "第一句。第二句。"
    assert "DRY_RUN_OK" in out


def test_cli_batch_dry_run(tmp_path, capsys):
    src = tmp_path / "lesson.txt"
    src.write_text("第一课。\n\n第二课。\n", encoding="utf-8")

    code = cli.main(["--file", str(src), "--dry-run", "--json"])
    assert code == 0
    payload = _json_line(capsys.readouterr().out)
    assert len(payload["items"]) == 2


def test_cli_requires_text():
    with pytest.raises(SystemExit):
        cli.main(["--dry-run"])


def test_cli_file_and_text_conflict(tmp_path):
    src = tmp_path / "lesson.txt"
    src.write_text("你好。\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        cli.main(["--file", str(src), "--text", "你好", "--dry-run"])


def test_cli_invalid_budget(capsys):
    code = cli.main(["你好。", "--dry-run", "--budget", "0"])
    assert code == 2
    assert _json_line(capsys.readouterr().out)["error"] == "INVALID_CONFIG"


def test_cli_bad_settings_value(tmp_path, monkeypatch, capsys):
    settings = tmp_path / "settings.yaml"
    settings.write_text("segmentation:\n  max_bytes: lots\n", encoding="utf-8")
    monkeypatch.setenv("TUTOR_TTS_SETTINGS", str(settings))

    code = cli.main(["你好。", "--dry-run"])

    assert code == 2
    payload = _json_line(capsys.readouterr().out)
    assert payload["error"] == "INVALID_CONFIG"
    assert "segmentation.max_bytes" in payload["message"]


def test_cli_malformed_settings_file(tmp_path, monkeypatch, capsys):
    settings = tmp_path / "settings.yaml"
    settings.write_text("segmentation: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("TUTOR_TTS_SETTINGS", str(settings))

    code = cli.main(["你好。", "--dry-run"])

    assert code == 2
    assert _json_line(capsys.readouterr().out)["error"] == "INVALID_CONFIG"


def test_cli_writes_chunks_in_order(tmp_path, monkeypatch, capsys):
    seen = []

    def handler(request):
        seen.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={"data": {"audioContent": "SUQzZmFrZQ=="}})

    _mock_backend(monkeypatch, handler)
    out_dir = tmp_path / "out"

    code = cli.main(["第一句。第二句。", "--out", str(out_dir), "--budget", "12", "--json"])
    assert code == 0

    out = capsys.readouterr().out
    assert "CLI_OK" in out
    item = _json_line(out)["items"][0]
    assert item["status"] == "played"
    assert item["chunks"] == 2
    assert sorted(seen) == ["第一句。", "第二句。"]
    assert (out_dir / "chunk_001.mp3").read_bytes() == b"ID3fake"
    assert (out_dir / "chunk_002.mp3").exists()


def test_cli_reports_not_configured(tmp_path, monkeypatch, capsys):
    def handler(request):
        return httpx.Response(500, json={"error": "TTS service not configured"})

    _mock_backend(monkeypatch, handler)

    code = cli.main(["你好。", "--out", str(tmp_path / "out"), "--json"])
    assert code == 1

    out = capsys.readouterr().out
    assert "CLI_OK" not in out
    payload = _json_line(out)
    assert payload["ok"] is False
    assert payload["items"][0]["error"] == NOT_CONFIGURED_MESSAGE
