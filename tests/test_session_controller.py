from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

import numpy as np
import soundfile as sf

from errors import (
    CAPTURE_START_FAILED,
    CAPTURE_TIMEOUT,
    DEVICE_ENUMERATION_FAILED,
    DEVICE_UNAVAILABLE,
    HARDWARE_DISCONNECTED,
    PERMISSION_QUERY_FAILED,
    DeviceUnavailable,
)
from models import (
    DEFAULT_DEVICE_ID,
    AppSnapshot,
    AudioDevice,
    CaptureConstraints,
    CaptureEvent,
    CaptureEventKind,
    PermissionState,
)
from session_controller import SessionController

PCM = "audio/L16;rate=16000;channels=1"


class FakePermissionService:
    def __init__(self, state: PermissionState = PermissionState.PROMPT) -> None:
        self.state = state
        self.listeners: list[Callable[[PermissionState], None]] = []
        self.requests = 0
        self.query_error: Exception | None = None

    def query(self) -> PermissionState:
        if self.query_error is not None:
            raise self.query_error
        return self.state

    def subscribe(self, on_change) -> None:  # noqa: ANN001
        self.listeners.append(on_change)

    def request(self) -> None:
        self.requests += 1

    def emit(self, state: PermissionState) -> None:
        self.state = state
        for listener in list(self.listeners):
            listener(state)


class FakeStream:
    def __init__(self, constraints: CaptureConstraints) -> None:
        self.constraints = constraints
        self.release_count = 0

    def release(self) -> None:
        self.release_count += 1


class FakeDeviceService:
    def __init__(self, devices: list[AudioDevice] | None = None) -> None:
        self.devices = devices if devices is not None else [
            AudioDevice(id=DEFAULT_DEVICE_ID, name="Default - Built-in"),
            AudioDevice(id="1", name="USB Mic"),
        ]
        self.streams: list[FakeStream] = []
        self.open_error: Exception | None = None
        self.enumerate_error: Exception | None = None

    def enumerate_devices(self) -> list[AudioDevice]:
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.devices)

    def open_stream(self, constraints: CaptureConstraints) -> FakeStream:
        if self.open_error is not None:
            raise self.open_error
        stream = FakeStream(constraints)
        self.streams.append(stream)
        return stream


class FakeCapture:
    media_type = PCM

    def __init__(self, complete_on_stop: bool = True) -> None:
        self.complete_on_stop = complete_on_stop
        self.start_error: Exception | None = None
        self.on_event = None
        self.stopped = 0

    def start(self, stream, on_event) -> None:  # noqa: ANN001
        if self.start_error is not None:
            raise self.start_error
        self.on_event = on_event

    def stop(self, stream) -> None:  # noqa: ANN001
        self.stopped += 1
        if self.complete_on_stop:
            self.on_event(CaptureEvent(kind=CaptureEventKind.COMPLETE.value))

    def emit_chunk(self, data: bytes) -> None:
        assert self.on_event is not None
        self.on_event(CaptureEvent(kind=CaptureEventKind.CHUNK.value, data=data))

    def emit_disconnect(self) -> None:
        assert self.on_event is not None
        self.on_event(
            CaptureEvent(
                kind=CaptureEventKind.ERROR.value,
                code=HARDWARE_DISCONNECTED,
                message="unplugged",
            )
        )


def _make(
    state: PermissionState = PermissionState.GRANTED,
    devices: list[AudioDevice] | None = None,
    finalize_timeout_s: float = 1.0,
    max_auto_requests: int = 1,
):
    permissions = FakePermissionService(state)
    device_service = FakeDeviceService(devices)
    capture = FakeCapture()
    errors: list[tuple[str, str]] = []
    snapshots: list[AppSnapshot] = []
    controller = SessionController(
        permission_service=permissions,
        device_service=device_service,
        capture_service=capture,
        finalize_timeout_s=finalize_timeout_s,
        max_auto_requests=max_auto_requests,
        on_change=snapshots.append,
        on_error=lambda c, m: errors.append((c, m)),
    )
    return controller, permissions, device_service, capture, errors, snapshots


def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return
        time.sleep(0.01)


def _record(controller: SessionController, capture: FakeCapture, *payloads: bytes) -> None:
    controller.start_recording()
    for payload in payloads:
        capture.emit_chunk(payload)
    controller.stop_recording()


# ---------------------------------------------------------------
# Permission policy
# ---------------------------------------------------------------

def test_request_then_grant_populates_catalog_and_default_selection() -> None:
    controller, permissions, _, _, _, _ = _make(state=PermissionState.PROMPT)
    controller.initialize()
    assert controller.catalog.devices == ()

    controller.request_permission()
    assert permissions.requests == 1

    permissions.emit(PermissionState.GRANTED)

    assert controller.permission == PermissionState.GRANTED
    assert len(controller.catalog.devices) >= 1
    assert controller.catalog.selected_device_id == DEFAULT_DEVICE_ID


def test_permission_mirrors_latest_notification() -> None:
    controller, permissions, _, _, _, _ = _make(state=PermissionState.PROMPT)
    controller.initialize()

    for state in (
        PermissionState.GRANTED,
        PermissionState.PROMPT,
        PermissionState.DENIED,
        PermissionState.GRANTED,
    ):
        permissions.emit(state)
        assert controller.permission == state
        assert controller.snapshot().permission == state


def test_denied_reprompts_once_until_granted() -> None:
    controller, permissions, _, _, _, _ = _make(state=PermissionState.DENIED)
    controller.initialize()
    assert permissions.requests == 1

    permissions.emit(PermissionState.DENIED)
    assert permissions.requests == 1

    permissions.emit(PermissionState.GRANTED)
    permissions.emit(PermissionState.DENIED)
    assert permissions.requests == 2


def test_permission_query_failure_becomes_notice() -> None:
    controller, permissions, _, _, errors, _ = _make()
    permissions.query_error = RuntimeError("no permission api")

    controller.initialize()

    assert errors and errors[0][0] == PERMISSION_QUERY_FAILED
    assert controller.permission == PermissionState.PROMPT


def test_enumeration_failure_becomes_notice() -> None:
    controller, _, devices, _, errors, _ = _make()
    devices.enumerate_error = OSError("portaudio not initialized")

    controller.initialize()

    assert controller.permission == PermissionState.GRANTED
    assert [code for code, _ in errors] == [DEVICE_ENUMERATION_FAILED]
    assert controller.catalog.devices == ()


# ---------------------------------------------------------------
# Start guards
# ---------------------------------------------------------------

def test_start_is_noop_without_permission() -> None:
    controller, permissions, devices, _, _, _ = _make(state=PermissionState.PROMPT)
    controller.initialize()
    controller.select_device("1")

    controller.start_recording()

    assert controller.is_recording is False
    assert controller.has_session is False
    assert devices.streams == []


def test_start_is_noop_without_selection() -> None:
    controller, _, devices, _, _, _ = _make(devices=[AudioDevice(id="1", name="USB Mic")])
    controller.initialize()
    assert controller.catalog.selected_device_id is None

    controller.start_recording()

    assert controller.is_recording is False
    assert devices.streams == []


def test_second_start_is_noop() -> None:
    controller, _, devices, capture, _, _ = _make()
    controller.initialize()

    controller.start_recording()
    controller.start_recording()
    assert len(devices.streams) == 1

    controller.stop_recording()
    assert len(controller.library) == 1


def test_empty_selection_records_from_any_input() -> None:
    controller, _, devices, capture, _, _ = _make()
    controller.initialize()
    controller.select_device("")

    _record(controller, capture, b"abc")

    assert devices.streams[0].constraints == CaptureConstraints(device_id=None)
    assert len(controller.library) == 1


def test_stale_selection_does_not_crash() -> None:
    controller, _, devices, capture, _, _ = _make()
    controller.initialize()
    controller.select_device("gone")
    assert controller.catalog.selected_device is None

    _record(controller, capture, b"abc")

    assert devices.streams[0].constraints == CaptureConstraints(device_id="gone")


# ---------------------------------------------------------------
# Recording lifecycle
# ---------------------------------------------------------------

def test_three_chunks_become_one_recording() -> None:
    controller, _, devices, capture, _, snapshots = _make()
    controller.initialize()

    controller.start_recording()
    assert controller.is_recording is True
    for size in (10, 20, 5):
        capture.emit_chunk(b"x" * size)
    controller.stop_recording()

    assert controller.is_recording is False
    assert controller.has_session is False
    assert len(controller.library) == 1
    recording = controller.library.get(0)
    assert recording.chunk_count == 3
    assert recording.size == 35
    assert recording.media_type == PCM
    assert devices.streams[0].release_count == 1
    assert any(s.is_recording for s in snapshots)
    assert snapshots[-1].is_recording is False
    assert snapshots[-1].recording_count == 1


def test_stop_without_chunks_still_saves_recording() -> None:
    controller, _, _, capture, _, _ = _make()
    controller.initialize()

    _record(controller, capture)

    assert len(controller.library) == 1
    assert controller.library.get(0).chunk_count == 0


def test_stop_without_session_is_noop() -> None:
    controller, _, _, capture, _, _ = _make()
    controller.initialize()

    controller.stop_recording()

    assert capture.stopped == 0
    assert len(controller.library) == 0


def test_two_cycles_then_delete_first() -> None:
    controller, _, _, capture, _, _ = _make()
    controller.initialize()

    _record(controller, capture, b"first")
    _record(controller, capture, b"second", b"-take")
    assert len(controller.library) == 2
    assert controller.library.materialize(0) == b"first"
    assert controller.library.materialize(1) == b"second-take"

    controller.delete_recording(0)

    assert len(controller.library) == 1
    assert controller.library.materialize(0) == b"second-take"
    assert controller.snapshot().recording_count == 1


def test_export_names_by_current_position(tmp_path: Path) -> None:
    controller, _, _, capture, _, _ = _make()
    controller.initialize()
    _record(controller, capture, b"first")
    _record(controller, capture, b"second")
    controller.delete_recording(0)

    path = controller.export_recording(0, tmp_path)

    assert path == tmp_path / "Audio 1.wav"
    frames, rate = sf.read(str(path), dtype="int16")
    assert rate == 16000
    assert frames.tolist() == np.frombuffer(b"second", dtype="<i2").tolist()


def test_export_defaults_to_configured_dir(tmp_path: Path) -> None:
    permissions = FakePermissionService(PermissionState.GRANTED)
    capture = FakeCapture()
    controller = SessionController(
        permission_service=permissions,
        device_service=FakeDeviceService(),
        capture_service=capture,
        export_dir=tmp_path / "exports",
    )
    controller.initialize()
    _record(controller, capture, b"data")

    path = controller.export_recording(0)

    assert path == tmp_path / "exports" / "Audio 1.wav"


# ---------------------------------------------------------------
# Failures
# ---------------------------------------------------------------

def test_open_stream_failure_becomes_notice() -> None:
    controller, _, devices, _, errors, _ = _make()
    controller.initialize()
    devices.open_error = DeviceUnavailable("busy")

    controller.start_recording()

    assert controller.is_recording is False
    assert controller.has_session is False
    assert errors == [(DEVICE_UNAVAILABLE, "busy")]


def test_capture_start_failure_releases_stream() -> None:
    controller, _, devices, capture, errors, _ = _make()
    controller.initialize()
    capture.start_error = RuntimeError("encoder missing")

    controller.start_recording()

    assert controller.is_recording is False
    assert controller.has_session is False
    assert devices.streams[0].release_count == 1
    assert errors[0][0] == CAPTURE_START_FAILED


def test_hardware_disconnect_keeps_captured_chunks() -> None:
    controller, _, devices, capture, errors, _ = _make()
    controller.initialize()

    controller.start_recording()
    capture.emit_chunk(b"before")
    capture.emit_disconnect()
    _wait_until(lambda: devices.streams[0].release_count == 1)

    assert controller.is_recording is False
    assert len(controller.library) == 1
    assert controller.library.materialize(0) == b"before"
    assert devices.streams[0].release_count == 1
    assert [code for code, _ in errors] == [HARDWARE_DISCONNECTED]

    controller.stop_recording()
    assert len(controller.library) == 1


def test_missing_completion_times_out_and_keeps_chunks() -> None:
    controller, _, devices, capture, errors, _ = _make(finalize_timeout_s=0.05)
    controller.initialize()
    capture.complete_on_stop = False

    _record(controller, capture, b"partial")

    assert len(controller.library) == 1
    assert controller.library.materialize(0) == b"partial"
    assert devices.streams[0].release_count == 1
    assert errors[0][0] == CAPTURE_TIMEOUT


def test_shutdown_stops_session_and_releases_handles() -> None:
    controller, _, devices, capture, _, _ = _make()
    controller.initialize()
    _record(controller, capture, b"kept")
    handle = controller.create_playback_handle(0)

    controller.start_recording()
    capture.emit_chunk(b"in flight")
    controller.shutdown()

    assert controller.has_session is False
    assert len(controller.library) == 2
    assert handle.valid is False
    assert all(stream.release_count == 1 for stream in devices.streams)
