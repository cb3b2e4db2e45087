"""
mpv JSON-IPC host adapter.

This module runs a real mpv process and exposes it through the
:class:`~mpvstate.host.ports.SessionHost` protocol, so the state engine can
drive it exactly as it drives the in-process test host.

Protocol
--------
mpv is started with ``--input-ipc-server=<socket>`` and speaks
newline-delimited JSON on that Unix socket:

- commands  : ``{"command": ["set_property", "time-pos", 12.5], "request_id": 7}``
- replies   : ``{"request_id": 7, "error": "success", "data": null}``
- events    : ``{"event": "file-loaded"}``, ``{"event": "end-file", "reason": "eof"}``,
  ``{"event": "property-change", "id": 3, "name": "time-pos", "data": 12.6}``

Threading
---------
A daemon reader thread decodes every line. Replies are handed to the
command waiting on that ``request_id``; events go into a FIFO queue.
:meth:`MpvIpcHost.run` drains that queue on the calling thread, one event at
a time, so every handler (and every session model mutation) runs on a
single thread. Handlers may issue commands: the reader thread keeps
delivering replies while the event thread waits.

The implementation uses only the standard library (``socket``,
``subprocess``, ``json``, ``threading``).
"""

from __future__ import annotations

import contextlib
import itertools
import json
import queue
import shutil
import socket
import subprocess
import tempfile
import threading
import time
from collections.abc import Sequence
from pathlib import Path
from types import TracebackType
from typing import Any

from mpvstate.core.settings import get_logger
from mpvstate.host.ports import (
    END_FILE,
    FILE_LOADED,
    EventHandler,
    HostCommandError,
    PropertyHandler,
)

logger = get_logger(__name__)


class MpvIpcError(HostCommandError):
    """An IPC command failed or the connection to mpv was lost."""


class _PendingReply:
    """Slot a command waits on until the reader thread fills it."""

    __slots__ = ("done", "reply")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.reply: dict[str, Any] = {}


class MpvIpcHost:
    """A :class:`SessionHost` backed by an mpv process over JSON IPC.

    Parameters
    ----------
    sock:
        A connected stream socket speaking mpv's IPC protocol.
    process:
        The mpv process owning the other end, if this host launched it.
        :meth:`close` stops it.
    socket_dir:
        Temporary directory holding the socket file; removed on close.
    """

    def __init__(
        self,
        sock: socket.socket,
        *,
        process: subprocess.Popen[bytes] | None = None,
        socket_dir: Path | None = None,
    ) -> None:
        self._sock = sock
        self._process = process
        self._socket_dir = socket_dir
        self._reader_file = sock.makefile("rb")
        self._send_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: dict[int, _PendingReply] = {}
        self._request_ids = itertools.count(1)
        self._observe_ids = itertools.count(1)
        self._observers: list[tuple[int, str, PropertyHandler]] = []
        self._event_handlers: dict[str, list[EventHandler]] = {}
        self._events: queue.Queue[dict[str, Any] | None] = queue.Queue()
        self._closed = False
        self._reader = threading.Thread(target=self._read_loop, name="mpv-ipc-reader", daemon=True)
        self._reader.start()

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #
    @classmethod
    def launch(
        cls,
        *,
        mpv_binary: str = "mpv",
        extra_args: Sequence[str] = (),
        connect_attempts: int = 50,
        poll_interval: float = 0.1,
    ) -> MpvIpcHost:
        """Start an idle mpv with an IPC socket and connect to it.

        mpv starts with an empty playlist (``--idle=once``) so nothing plays
        before the state engine has registered its handlers; it exits once
        the playlist it is given has finished.

        Raises
        ------
        MpvIpcError
            If mpv cannot be started, exits early, or never opens its socket.
        """
        socket_dir = Path(tempfile.mkdtemp(prefix="mpvstate-"))
        socket_path = socket_dir / "mpv.sock"
        argv = [
            mpv_binary,
            "--idle=once",
            f"--input-ipc-server={socket_path}",
            *extra_args,
        ]
        logger.debug("launching %s", " ".join(argv))
        try:
            process = subprocess.Popen(argv, stdin=subprocess.DEVNULL)
        except OSError as exc:
            shutil.rmtree(socket_dir, ignore_errors=True)
            raise MpvIpcError(f"cannot start {mpv_binary}: {exc}") from exc

        for _ in range(connect_attempts):
            if process.poll() is not None:
                shutil.rmtree(socket_dir, ignore_errors=True)
                raise MpvIpcError(f"{mpv_binary} exited with status {process.returncode}")
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.connect(str(socket_path))
            except (FileNotFoundError, ConnectionRefusedError):
                sock.close()
                time.sleep(poll_interval)
                continue
            logger.info("connected to mpv (pid %s)", process.pid)
            return cls(sock, process=process, socket_dir=socket_dir)

        process.terminate()
        process.wait()
        shutil.rmtree(socket_dir, ignore_errors=True)
        raise MpvIpcError(f"mpv did not open its IPC socket at {socket_path}")

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    @property
    def closed(self) -> bool:
        return self._closed

    def command(self, *args: Any) -> Any:
        """Send one IPC command and block until mpv replies.

        Returns the reply's ``data`` field.

        Raises
        ------
        MpvIpcError
            If the connection is gone or mpv reports an error.
        """
        request_id = next(self._request_ids)
        pending = _PendingReply()
        with self._pending_lock:
            if self._closed:
                raise MpvIpcError(f"not connected to mpv; cannot run {args[0]!r}")
            self._pending[request_id] = pending

        line = json.dumps({"command": list(args), "request_id": request_id}) + "\n"
        try:
            with self._send_lock:
                self._sock.sendall(line.encode("utf-8"))
        except OSError as exc:
            with self._pending_lock:
                self._pending.pop(request_id, None)
            raise MpvIpcError(f"cannot send {args[0]!r} to mpv: {exc}") from exc

        pending.done.wait()
        reply = pending.reply
        status = reply.get("error")
        if status != "success":
            raise MpvIpcError(f"mpv command {list(args)!r} failed: {status}")
        return reply.get("data")

    def clear_playlist(self) -> None:
        self.command("playlist-clear")

    def append_file(self, path: str) -> None:
        # append-play starts playback when mpv is idle, appends otherwise.
        self.command("loadfile", path, "append-play")

    def get_property(self, name: str) -> Any:
        return self.command("get_property", name)

    def set_property(self, name: str, value: Any) -> None:
        self.command("set_property", name, value)

    def observe_property(self, name: str, handler: PropertyHandler) -> None:
        observe_id = next(self._observe_ids)
        self._observers.append((observe_id, name, handler))
        self.command("observe_property", observe_id, name)

    def unobserve_property(self, handler: PropertyHandler) -> None:
        """Remove every subscription delivering to ``handler``.

        Queued notifications for the removed subscriptions are dropped. Once
        mpv has gone away the subscriptions are only forgotten locally.
        """
        removed = [entry for entry in self._observers if entry[2] == handler]
        self._observers = [entry for entry in self._observers if entry[2] != handler]
        if self._closed:
            return
        for observe_id, _name, _handler in removed:
            try:
                self.command("unobserve_property", observe_id)
            except MpvIpcError as exc:
                logger.debug("unobserve_property %s failed: %s", observe_id, exc)

    def register_event(self, name: str, handler: EventHandler) -> None:
        self._event_handlers.setdefault(name, []).append(handler)

    # ------------------------------------------------------------------ #
    # Event loop
    # ------------------------------------------------------------------ #
    def run(self) -> None:
        """Dispatch events on this thread until mpv closes the connection.

        A command rejected by mpv inside a handler (an out-of-range
        ``playlist-pos``, a connection lost while quitting) is logged and
        the loop moves on to the next event, so a queued ``end-file`` is
        still delivered.
        """
        while True:
            message = self._events.get()
            if message is None:
                break
            try:
                self.dispatch(message)
            except MpvIpcError as exc:
                logger.error("handler for %s failed: %s", message.get("event"), exc)
        logger.debug("mpv event loop finished")

    def dispatch(self, message: dict[str, Any]) -> None:
        """Deliver one decoded event message to its handlers."""
        event = message.get("event")
        if event == "property-change":
            observe_id = message.get("id")
            name = str(message.get("name", ""))
            value = message.get("data")
            for entry_id, _name, handler in list(self._observers):
                if entry_id == observe_id:
                    handler(name, value)
        elif event == FILE_LOADED:
            for handler in list(self._event_handlers.get(FILE_LOADED, [])):
                handler()
        elif event == END_FILE:
            reason = message.get("reason")
            for handler in list(self._event_handlers.get(END_FILE, [])):
                handler(reason)
        else:
            logger.debug("ignoring mpv event %s", event)

    def _read_loop(self) -> None:
        try:
            for raw in self._reader_file:
                try:
                    message = json.loads(raw.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    logger.warning("discarding malformed IPC line: %r", raw[:200])
                    continue
                if not isinstance(message, dict):
                    continue
                if "event" in message:
                    self._events.put(message)
                elif "request_id" in message:
                    self._resolve(message)
        except OSError as exc:
            logger.debug("IPC reader stopped: %s", exc)
        finally:
            self._shutdown_pending()
            self._events.put(None)

    def _resolve(self, message: dict[str, Any]) -> None:
        with self._pending_lock:
            pending = self._pending.pop(message.get("request_id", -1), None)
        if pending is None:
            return
        pending.reply = message
        pending.done.set()

    def _shutdown_pending(self) -> None:
        with self._pending_lock:
            self._closed = True
            waiting = list(self._pending.values())
            self._pending.clear()
        for pending in waiting:
            pending.reply = {"error": "connection closed"}
            pending.done.set()

    # ------------------------------------------------------------------ #
    # Teardown
    # ------------------------------------------------------------------ #
    def close(self) -> None:
        """Ask mpv to quit (if still running), drop the socket, reap the process."""
        if self._process is not None and self._process.poll() is None and not self._closed:
            with contextlib.suppress(MpvIpcError):
                self.command("quit")
        with contextlib.suppress(OSError):
            self._sock.shutdown(socket.SHUT_RDWR)
        self._sock.close()
        self._reader.join()
        self._reader_file.close()
        if self._process is not None:
            self._process.wait()
        if self._socket_dir is not None:
            shutil.rmtree(self._socket_dir, ignore_errors=True)

    def __enter__(self) -> MpvIpcHost:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["MpvIpcError", "MpvIpcHost"]
