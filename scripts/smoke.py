# scripts/smoke.py
"""
Smoke test: two real mpv sessions against one state file.

The first session plays the given files; quit mpv part way through (press
``q``). The second session should reopen the same entry at the same
position with the same tracks selected.

Usage
-----
    $ uv run python scripts/smoke.py ~/media/clip1.mkv ~/media/clip2.mkv

    # Headless check against audio-only output
    $ MPVSTATE_MPV_ARGS='["--no-video"]' uv run python scripts/smoke.py song.flac

Dependencies
------------
A working ``mpv`` on PATH (or MPVSTATE_MPV_BINARY pointing at one).
"""

import argparse
import json
import logging
import sys
import tempfile
import traceback
from pathlib import Path

from dotenv import load_dotenv

from mpvstate.host.ipc import MpvIpcError
from mpvstate.runner import SessionOutcome, run_session

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


def _report(label: str, outcome: SessionOutcome, state_file: Path) -> None:
    print("\n" + "=" * 60)
    print(f"✅ {label} finished (saved {outcome.saved}x, restored={outcome.restored})")
    print("=" * 60)
    for i, snap in enumerate(outcome.traces):
        if snap.note:
            print(f"  {i+1}. rev {snap.revision}: {snap.note}")
    if state_file.exists():
        print(f"\n💾 {state_file}:")
        print(json.dumps(json.loads(state_file.read_text(encoding="utf-8")), indent=2))


def main() -> None:
    """Run a recording session, then a restoring one."""
    parser = argparse.ArgumentParser(description="Run mpv-state smoke test")
    parser.add_argument("files", nargs="+", help="Media files or URLs to play")
    parser.add_argument(
        "--state-file", "-s", type=Path, help="State file to use (default: a temp file)"
    )
    args = parser.parse_args()

    state_file: Path = args.state_file or Path(tempfile.mkdtemp(prefix="mpvstate-smoke-")) / (
        "state.json"
    )
    print(f"\n📂 State file: {state_file}")

    for label, files in (("Recording session", args.files), ("Restoring session", [])):
        print(f"\n▶ {label}: quit mpv with 'q' to end it")
        try:
            outcome = run_session(files, state_file=state_file)
        except (MpvIpcError, OSError) as exc:
            print(f"\n❌ {label} crashed: {exc}")
            traceback.print_exc()
            return
        _report(label, outcome, state_file)


if __name__ == "__main__":
    main()
