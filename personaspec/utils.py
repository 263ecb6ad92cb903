"""Shared utilities for PersonaSpec."""

from __future__ import annotations

import json
import os
import re
import time
import tomllib
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image

from .errors import ArtifactIOError


_MEDIA_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}
_SUFFIX_MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def now_local_display() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def epoch_ms() -> int:
    return int(time.time() * 1000)


def safe_filename(value: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_-]`` with ``-``."""
    return re.sub(r"[^A-Za-z0-9_-]", "-", value)


def persona_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def write_json(path: Path, payload: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise ArtifactIOError(f"Could not write {path}: {exc.strerror or exc}", path=path) from exc


def write_text(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ArtifactIOError(f"Could not write {path}: {exc.strerror or exc}", path=path) from exc


def image_media_type(data: bytes, *, filename: str | Path | None = None) -> str:
    """Best-effort media type for raw image bytes, defaulting to PNG."""
    try:
        with Image.open(BytesIO(data)) as image:
            fmt = image.format
    except (OSError, ValueError, Image.DecompressionBombError):
        fmt = None
    if fmt and fmt in _MEDIA_TYPES:
        return _MEDIA_TYPES[fmt]
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in _SUFFIX_MEDIA_TYPES:
            return _SUFFIX_MEDIA_TYPES[suffix]
    return "image/png"


def load_dotenv(path: Path | None = None, override: bool = False) -> bool:
    env_path = path or _default_env_path()
    if not env_path.exists():
        return False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        if value and value[0] == value[-1] and value.startswith(("\"", "'")):
            value = value[1:-1]
        if not override and key in os.environ:
            continue
        os.environ[key] = value
    return True


def _default_env_path() -> Path:
    cwd = Path.cwd()
    project_root = find_project_root(cwd)
    if project_root:
        env_path = project_root / ".env"
        if env_path.exists():
            return env_path
    return cwd / ".env"


def find_project_root(start: Path) -> Path | None:
    for current in (start,) + tuple(start.parents):
        if (current / "pyproject.toml").exists() or (current / ".env").exists():
            return current
    return None


def read_tool_config(start: Path | None = None) -> dict[str, Any]:
    """Return the ``[tool.personaspec]`` table of the nearest pyproject.toml."""
    root = find_project_root(start or Path.cwd())
    if root is None:
        return {}
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return {}
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    table = data.get("tool", {}).get("personaspec", {})
    return table if isinstance(table, dict) else {}
