"""Microphone permission service based on probing an input stream.

PortAudio has no permission API. Opening an input stream is what makes the
OS ask the user, and failing to open one is the only sign of a refusal, so
the state stays ``prompt`` until the first check.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

from logger import setup_logger
from models import PermissionState

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = setup_logger(__name__)


class StreamCheckPermissionService:
    def __init__(self, sample_rate: int = 16000, channels: int = 1) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._lock = threading.Lock()
        self._state = PermissionState.PROMPT
        self._listeners: List[Callable[[PermissionState], None]] = []
        self._thread: Optional[threading.Thread] = None

    def query(self) -> PermissionState:
        return self._state

    def subscribe(self, on_change: Callable[[PermissionState], None]) -> None:
        with self._lock:
            if on_change not in self._listeners:
                self._listeners.append(on_change)

    def request(self) -> None:
        if sd is None:
            raise RuntimeError("sounddevice is not installed")
        with self._lock:
            # Listeners run on the worker, so a request made from one of them
            # must start a fresh attempt instead of joining the finishing one.
            current = self._thread
            if current and current.is_alive() and current is not threading.current_thread():
                return
            self._thread = threading.Thread(
                target=self._check_access, name="permission-check", daemon=True
            )
            self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the running attempt and any attempt its listeners started."""
        while True:
            thread = self._thread
            if thread is None or thread is threading.current_thread():
                return
            thread.join(timeout=timeout)
            if self._thread is thread:
                return

    def _check_access(self) -> None:
        try:
            stream = sd.InputStream(
                samplerate=self._sample_rate,
                channels=self._channels,
                dtype="int16",
            )
            stream.close()
            state = PermissionState.GRANTED
        except (sd.PortAudioError, OSError) as exc:
            logger.info("Microphone access check failed: %s", exc)
            state = PermissionState.DENIED
        self._set_state(state)

    def _set_state(self, state: PermissionState) -> None:
        with self._lock:
            if state == self._state:
                return
            self._state = state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state)
