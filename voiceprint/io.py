"""
voiceprint.io - JSON and text file helpers with atomic writes.

Persisted records are written to a temp file in the destination directory
and renamed into place, so readers never see a half-written profile.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def read_json(path: Path) -> dict[str, Any]:
    """Read a UTF-8 JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def read_text(path: Path) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def _atomic_write(path: Path, content: str) -> None:
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
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON atomically with pretty formatting."""
    _atomic_write(path, json.dumps(data, indent=indent, ensure_ascii=False) + "\n")


def write_text(path: Path, content: str) -> None:
    """Write a text file atomically."""
    _atomic_write(path, content)


def write_model(path: Path, model: BaseModel) -> None:
    """Persist a pydantic record using its camelCase wire names."""
    write_json(path, model.model_dump(mode="json", by_alias=True))


def read_model(path: Path, model_type: type[ModelT]) -> ModelT:
    """Load and validate a pydantic record written by write_model."""
    return model_type.model_validate(read_json(path))
