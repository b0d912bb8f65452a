"""Tests for response_analyzer.io."""

from __future__ import annotations

import json
from pathlib import Path

from response_analyzer.io import read_json, read_text, read_yaml, write_json, write_text, write_yaml


class TestJson:
    def test_write_and_read(self, tmp_path: Path) -> None:
        path = tmp_path / "sub" / "data.json"
        write_json(path, {"text": "Grüezi", "n": 1})
        assert read_json(path) == {"text": "Grüezi", "n": 1}
        assert "Grüezi" in path.read_text(encoding="utf-8")

    def test_compact(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        write_json(path, {"a": 1}, indent=None)
        assert path.read_text() == json.dumps({"a": 1})

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        write_json(tmp_path / "data.json", {"a": 1})
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]


class TestYaml:
    def test_keeps_key_order(self, tmp_path: Path) -> None:
        path = tmp_path / "data.yaml"
        write_yaml(path, {"zeta": 1, "alpha": 2})
        assert path.read_text().splitlines() == ["zeta: 1", "alpha: 2"]
        assert read_yaml(path) == {"zeta": 1, "alpha": 2}

    def test_empty_file_reads_none(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert read_yaml(path) is None


class TestText:
    def test_overwrite(self, tmp_path: Path) -> None:
        path = tmp_path / "out.txt"
        write_text(path, "first")
        write_text(path, "second")
        assert read_text(path) == "second"
