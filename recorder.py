"""Microphone capture adapter."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from errors import HARDWARE_DISCONNECTED, DeviceUnavailable
from logger import setup_logger
from models import CaptureEvent, CaptureEventKind

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = setup_logger(__name__)


def pcm_media_type(sample_rate: int, channels: int) -> str:
    return f"audio/L16;rate={sample_rate};channels={channels}"


class SoundDeviceStream:
    """Live int16 input stream; released exactly once."""

    def __init__(
        self,
        device: Optional[int] = None,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
    ) -> None:
        if sd is None:
            raise RuntimeError("sounddevice is not installed")
        self.device = device
        self.sample_rate = sample_rate
        self.channels = channels
        self._lock = threading.Lock()
        self._on_event: Optional[Callable[[CaptureEvent], None]] = None
        self._running = False
        self._stopping = False
        self._released = False
        blocksize = int(sample_rate * (chunk_ms / 1000.0))
        try:
            self._stream: Any = sd.InputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="int16",
                blocksize=blocksize,
                device=device,
                callback=self._on_audio,
                finished_callback=self._on_stream_finished,
            )
        except Exception as exc:
            raise DeviceUnavailable(f"cannot open input device {device}: {exc}") from exc

    @property
    def released(self) -> bool:
        return self._released

    def attach(self, on_event: Callable[[CaptureEvent], None]) -> None:
        self._on_event = on_event

    def start(self) -> None:
        with self._lock:
            if self._running or self._stopping or self._released:
                return
            # Set first: the audio callback may fire before start() returns.
            self._running = True
            try:
                self._stream.start()
            except Exception:
                self._running = False
                raise

    def stop(self) -> None:
        with self._lock:
            if not self._running or self._stopping:
                return
            self._stopping = True
            # Callbacks drained by stop() still deliver their chunks.
            try:
                self._stream.stop()
            finally:
                self._running = False

    def emit(self, event: CaptureEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            self._stopping = True
            self._running = False
            try:
                self._stream.stop()
            finally:
                self._stream.close()
        logger.debug("Input stream on device %s released", self.device)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        if not self._running or np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        if payload:
            self.emit(CaptureEvent(kind=CaptureEventKind.CHUNK.value, data=payload))

    def _on_stream_finished(self) -> None:
        if self._stopping:
            return
        self._running = False
        self.emit(
            CaptureEvent(
                kind=CaptureEventKind.ERROR.value,
                code=HARDWARE_DISCONNECTED,
                message="input stream ended unexpectedly",
            )
        )


class SoundDeviceCapture:
    """Turns a SoundDeviceStream into chunk events plus a completion event."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1) -> None:
        self.media_type = pcm_media_type(sample_rate, channels)

    def start(self, stream: SoundDeviceStream, on_event: Callable[[CaptureEvent], None]) -> None:
        stream.attach(on_event)
        stream.start()

    def stop(self, stream: SoundDeviceStream) -> None:
        # Stopping drains pending callbacks, so every chunk precedes completion.
        stream.stop()
        stream.emit(CaptureEvent(kind=CaptureEventKind.COMPLETE.value))
