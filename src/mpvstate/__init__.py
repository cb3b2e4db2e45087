"""mpv-state: persist and restore mpv playback state across sessions.

The package keeps a JSON snapshot of the playlist, the active entry, the
playback position, the selected tracks and the audio delay, and replays it
into the next mpv session.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
