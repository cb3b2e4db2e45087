"""Disk-backed writer for session traces.

Each :class:`SessionTrace` is written as its own JSON file so a session can
be inspected after the fact without re-running mpv.

- Default directory: ``MPVSTATE_TRACE_DIR`` setting, else ``artifacts/trace/``
- Filename pattern:  ``YYYYmmddTHHMMSSffffffZ_rev{rev:06d}.json``
- Content:           a JSON object mirroring the ``SessionTrace`` dataclass
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from mpvstate.core.settings import load_settings

from .trace import SessionTrace


def _default_dir() -> Path:
    """Return the configured trace directory or the fallback location."""
    configured = load_settings().trace_dir
    return configured if configured is not None else Path("artifacts") / "trace"


class TraceWriter:
    """Persist session traces to disk as JSON files."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir: Path = base_dir if base_dir is not None else _default_dir()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def write(self, trace: SessionTrace) -> Path:
        """Write ``trace`` to disk and return the created file path."""
        safe_ts = trace.timestamp.replace("-", "").replace(":", "").replace(".", "")
        path = self.base_dir / f"{safe_ts}_rev{trace.revision:06d}.json"

        with path.open("w", encoding="utf-8") as f:
            json.dump(asdict(trace), f, ensure_ascii=False, indent=2)
            f.write("\n")
        return path

    def write_all(self, traces: tuple[SessionTrace, ...]) -> list[Path]:
        """Write every trace in order and return the created paths."""
        return [self.write(trace) for trace in traces]
