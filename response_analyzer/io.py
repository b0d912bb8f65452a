"""
response_analyzer.io - Atomic file writes and JSON/YAML/text helpers.

Shared by the completion cache, the state store and the report renderer.
Every write goes to a sibling temp file first so that readers in another
process never see a half-written cache entry or state file.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any

import yaml


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(content)
        except Exception:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def read_json(path: Path) -> dict[str, Any]:
    """Load a JSON document.

    Raises:
        OSError: If the file cannot be opened
        json.JSONDecodeError: If the content is not valid JSON
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: dict[str, Any], indent: int | None = 2) -> None:
    """Atomically write data as JSON. Pass indent=None for a single line."""
    _write_atomic(path, json.dumps(data, indent=indent, ensure_ascii=False))


def read_yaml(path: Path) -> Any:
    """Load a YAML document; an empty file yields None."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_yaml(path: Path, data: Any) -> None:
    """Atomically write data as block-style YAML, preserving key order."""
    content = yaml.safe_dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    _write_atomic(path, content)


def read_text(path: Path) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def write_text(path: Path, content: str) -> None:
    _write_atomic(path, content)
