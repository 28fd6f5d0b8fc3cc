"""One active capture: turns a live stream into a chunk buffer.

The capture service pushes ``CaptureEvent`` messages onto the session's
queue from whatever thread it likes. A single consumer thread drains the
queue, so chunks are appended in arrival order and the completion event is
always processed after every chunk queued before it.
"""

from __future__ import annotations

import threading
from queue import Queue
from typing import Callable, List, Optional, Tuple

from errors import AudioManagerError, CaptureStartFailure, HardwareDisconnected
from interfaces import CaptureService, StreamHandle
from logger import setup_logger
from models import CaptureEvent, CaptureEventKind, Chunk

logger = setup_logger(__name__)

FinishCallback = Callable[
    ["RecordingSession", Tuple[Chunk, ...], Optional[AudioManagerError]], None
]


class RecordingSession:
    def __init__(
        self,
        stream: StreamHandle,
        capture: CaptureService,
        on_finished: FinishCallback,
    ) -> None:
        self._stream = stream
        self._capture = capture
        self._on_finished = on_finished
        self._events: Queue[CaptureEvent] = Queue()
        self._chunks: List[Chunk] = []
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stop_requested = False
        self.media_type = getattr(capture, "media_type", "application/octet-stream")

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    def start(self) -> None:
        try:
            self._capture.start(self._stream, self._events.put)
        except Exception as exc:
            self._release_stream()
            self._done.set()
            raise CaptureStartFailure(f"capture start failed: {exc}") from exc
        self._thread = threading.Thread(
            target=self._worker, name="recording-session", daemon=True
        )
        self._thread.start()

    def request_stop(self) -> None:
        with self._lock:
            if self._stop_requested or self._done.is_set():
                return
            self._stop_requested = True
        try:
            self._capture.stop(self._stream)
        except Exception as exc:
            logger.warning("Capture stop failed, finishing with buffered chunks: %s", exc)
            self.force_complete()

    def force_complete(self) -> None:
        """Queue a completion behind every event already emitted."""
        self._events.put(CaptureEvent(kind=CaptureEventKind.COMPLETE.value))

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout=timeout)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(self) -> None:
        error: Optional[AudioManagerError] = None
        while True:
            event = self._events.get()
            if event.kind == CaptureEventKind.CHUNK.value:
                if event.data:
                    self._chunks.append(Chunk(bytes(event.data)))
                continue
            if event.kind == CaptureEventKind.ERROR.value:
                error = HardwareDisconnected(event.message)
            break
        self._finish(error)

    def _finish(self, error: Optional[AudioManagerError]) -> None:
        chunks = tuple(self._chunks)
        if error is not None:
            logger.warning(
                "Capture ended abnormally after %d chunk(s): %s", len(chunks), error
            )
        else:
            logger.info("Capture complete: %d chunk(s)", len(chunks))
        try:
            self._on_finished(self, chunks, error)
        except Exception:
            logger.exception("Finish callback failed")
        finally:
            self._release_stream()
            self._done.set()

    def _release_stream(self) -> None:
        try:
            self._stream.release()
        except Exception:
            logger.exception("Stream release failed")
