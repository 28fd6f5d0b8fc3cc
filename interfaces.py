"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol, Sequence

from models import AudioDevice, CaptureConstraints, CaptureEvent, PermissionState


class PermissionService(Protocol):
    def query(self) -> PermissionState: ...

    def subscribe(self, on_change: Callable[[PermissionState], None]) -> None: ...

    def request(self) -> None: ...


class StreamHandle(Protocol):
    def release(self) -> None: ...


class DeviceService(Protocol):
    def enumerate_devices(self) -> Sequence[AudioDevice]: ...

    def open_stream(self, constraints: CaptureConstraints) -> StreamHandle: ...


class CaptureService(Protocol):
    media_type: str

    def start(
        self,
        stream: StreamHandle,
        on_event: Callable[[CaptureEvent], None],
    ) -> None: ...

    def stop(self, stream: StreamHandle) -> None: ...


class ConfigStore(Protocol):
    def get_export_dir(self) -> Path: ...

    def set_export_dir(self, path: Path) -> None: ...

    def get_sample_rate(self) -> int: ...

    def get_channels(self) -> int: ...

    def get_chunk_ms(self) -> int: ...

    def get_max_auto_requests(self) -> int: ...

    def get_finalize_timeout_s(self) -> float: ...

    def get_log_level(self) -> str: ...
