from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path

# Characters that are unsafe or ambiguous in file names on the platforms we target
_UNSAFE_KEY_CHARS = re.compile(r"[/:?#\[\]@!$&'()*+,;=\\]")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def cache_key_for_url(url: str) -> str:
    """Deterministic flat file name for `url`; every unsafe character becomes `_`."""
    return _UNSAFE_KEY_CHARS.sub("_", url)


def format_bytes(size: int) -> str:
    """File-style, decimal units: `1.5 MB`, `2 GB`, `512 KB`."""
    value = float(size)
    for unit in ("KB", "MB", "GB"):
        value /= 1000.0
        if value < 1000.0 or unit == "GB":
            break
    if value >= 100 or value == int(value):
        return f"{value:.0f} {unit}"
    return f"{value:.1f} {unit}"


def atomic_write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp_path.replace(path)
