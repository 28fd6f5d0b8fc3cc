"""Input device enumeration and stream opening via sounddevice."""

from __future__ import annotations

from typing import List, Optional

from errors import DeviceUnavailable
from logger import setup_logger
from models import DEFAULT_DEVICE_ID, AudioDevice, CaptureConstraints
from recorder import SoundDeviceStream

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = setup_logger(__name__)


def _default_input_index() -> Optional[int]:
    try:
        index = sd.default.device[0]
    except (IndexError, TypeError):
        return None
    if index is None or int(index) < 0:
        return None
    return int(index)


class SoundDeviceDeviceService:
    def __init__(self, sample_rate: int = 16000, channels: int = 1, chunk_ms: int = 100) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms

    def enumerate_devices(self) -> List[AudioDevice]:
        if sd is None:
            raise RuntimeError("sounddevice is not installed")
        devices = sd.query_devices()
        found: List[AudioDevice] = []

        default_index = _default_input_index()
        if default_index is not None and default_index < len(devices):
            info = devices[default_index]
            if info["max_input_channels"] > 0:
                found.append(AudioDevice(id=DEFAULT_DEVICE_ID, name=f"Default - {info['name']}"))

        for index, info in enumerate(devices):
            if info["max_input_channels"] > 0:
                found.append(AudioDevice(id=str(index), name=str(info["name"])))
        logger.debug("Enumerated %d input device(s)", len(found))
        return found

    def open_stream(self, constraints: CaptureConstraints) -> SoundDeviceStream:
        device_id = constraints.device_id
        if device_id is None or device_id == DEFAULT_DEVICE_ID:
            device = None
        else:
            try:
                device = int(device_id)
            except ValueError as exc:
                raise DeviceUnavailable(f"unknown device id {device_id!r}") from exc
        return SoundDeviceStream(
            device=device,
            sample_rate=self.sample_rate,
            channels=self.channels,
            chunk_ms=self.chunk_ms,
        )
