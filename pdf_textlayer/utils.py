from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any


def utc_now_iso() -> str:
    """Current UTC time, second precision, e.g. '2024-05-01T12:00:00+00:00'."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def ensure_dir(path: str | Path) -> Path:
    out = Path(path)
    out.mkdir(parents=True, exist_ok=True)
    return out


def scale_token(scale: float) -> str:
    """File-name form of a scale: 0.25 -> '0.25', 1.0 -> '1'."""
    return f"{float(scale):.4f}".rstrip("0").rstrip(".")


def write_json(path: str | Path, data: Any) -> None:
    target = Path(path)
    ensure_dir(target.parent)
    target.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def append_jsonl(path: str | Path, record: dict[str, Any]) -> None:
    target = Path(path)
    ensure_dir(target.parent)
    line = json.dumps(record, ensure_ascii=False)
    with target.open("a", encoding="utf-8") as f:
        f.write(f"{line}\n")


def load_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def ensure_job_relative_path(job_dir: str | Path, rel_path: str | Path, *, field: str = "path") -> Path:
    """Resolve a path recorded in a job artifact against the job directory.

    Raises ValueError('unsafe_<field>: <reason>: <path>') for empty, rooted
    or '..' paths and for anything that resolves outside job_dir.
    """
    raw = str(rel_path or "").strip()
    if not raw:
        raise ValueError(f"unsafe_{field}: empty")

    posix = PurePosixPath(raw.replace("\\", "/"))
    # 'C:/x' is relative to PurePosixPath, so the drive is checked by hand
    if posix.is_absolute() or (posix.parts and posix.parts[0].endswith(":")):
        raise ValueError(f"unsafe_{field}: absolute_or_drive_path: {posix}")
    if ".." in posix.parts:
        raise ValueError(f"unsafe_{field}: parent_traversal: {posix}")

    root = Path(job_dir).resolve()
    resolved = root.joinpath(*posix.parts).resolve()
    if resolved != root and root not in resolved.parents:
        raise ValueError(f"unsafe_{field}: escapes_job_dir: {posix}")
    return resolved
