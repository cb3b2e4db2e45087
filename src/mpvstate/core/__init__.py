"""Core package for mpv-state.

Holds the state synchronization engine (store, session model, sequencer,
observer, lifecycle) plus the settings conveniences:
    from mpvstate.core.settings import settings, load_settings, Settings, get_logger
"""

from __future__ import annotations

__all__ = ["__doc__"]
