"""Tests for pyproject.toml and package layout."""
from __future__ import annotations

import subprocess
import sys
import tomllib
from pathlib import Path

PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


class TestPackageInstallation:

    def test_version_defined(self):
        import tutor_tts
        assert isinstance(tutor_tts.__version__, str)
        assert tutor_tts.__version__

    def test_modules_importable(self):
        from tutor_tts.core import config, errors, logging
        from tutor_tts.services import playback
        from tutor_tts.tts import chunker, dispatcher, player, sanitizer, schemas, synthesis

        for module in (config, errors, logging, playback, chunker, dispatcher, player, sanitizer, schemas, synthesis):
            assert module is not None


class TestCLIEntryPoint:

    def test_cli_help_exits_zero(self):
        result = subprocess.run(
            [sys.executable, "-m", "tutor_tts.cli", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "tutor-tts CLI" in result.stdout


class TestPyprojectToml:

    def test_project_name(self):
        data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
        assert data["project"]["name"] == "tutor-tts"

    def test_dependencies(self):
        data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
        dep_names = [d.split(">=")[0].split("[")[0] for d in data["project"]["dependencies"]]
        assert "httpx" in dep_names
        assert "pydantic" in dep_names
        assert "pyyaml" in dep_names

    def test_script_entry_point(self):
        data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
        assert data["project"]["scripts"]["tutor-tts"] == "tutor_tts.cli:main"

    def test_declared_markers_are_used(self):
        data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
        markers = data["tool"]["pytest"]["ini_options"].get("markers", [])
        sources = "".join(p.read_text(encoding="utf-8") for p in Path(__file__).parent.glob("test_*.py"))
        for marker in markers:
            name = marker.split(":", 1)[0].strip()
            assert f"pytest.mark.{name}" in sources
