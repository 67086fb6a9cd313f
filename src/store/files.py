"""JSON file helpers: lenient reads and atomic writes."""
import logging
import os
from pathlib import Path
from typing import Any

import orjson

logger = logging.getLogger(__name__)


def ensure_file_exists(path: Path, default: Any) -> None:
    """Create the file with `default` content when it does not exist yet."""
    if path.exists():
        return
    atomic_write_json(path, default)


def read_json(path: Path, fallback: Any) -> Any:
    """Parsed JSON, or `fallback` when the file is absent, empty or malformed."""
    try:
        if not path.exists():
            return fallback
        raw = path.read_bytes()
        if not raw.strip():
            return fallback
        return orjson.loads(raw)
    except (OSError, orjson.JSONDecodeError) as e:
        logger.warning(f"[STORE] Failed to read JSON {path}: {e}")
        return fallback


def atomic_write_json(path: Path, data: Any) -> None:
    """
    Write to `<path>.tmp` then replace `path` in one step.
    Readers see either the old file or the new one, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    payload = orjson.dumps(data, option=orjson.OPT_INDENT_2) + b"\n"
    try:
        with open(tmp_path, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
