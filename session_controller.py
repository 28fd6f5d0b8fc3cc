"""Orchestration of permission, devices, recording session and library."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional, Tuple

from device_catalog import DeviceCatalog
from errors import (
    CAPTURE_TIMEOUT,
    ERROR_MESSAGES,
    AudioManagerError,
    DeviceUnavailable,
    ExportFailure,
)
from interfaces import CaptureService, DeviceService, PermissionService
from logger import setup_logger
from models import AppSnapshot, AudioDevice, CaptureConstraints, Chunk, PermissionState
from permission_tracker import PermissionTracker
from recording_library import PlaybackHandle, RecordingLibrary
from recording_session import RecordingSession

logger = setup_logger(__name__)

ChangeCallback = Callable[[AppSnapshot], None]
ErrorCallback = Callable[[str, str], None]


class SessionController:
    def __init__(
        self,
        permission_service: PermissionService,
        device_service: DeviceService,
        capture_service: CaptureService,
        export_dir: Optional[Path] = None,
        finalize_timeout_s: float = 3.0,
        max_auto_requests: int = 1,
        on_change: Optional[ChangeCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._devices = device_service
        self._capture = capture_service
        self._export_dir = export_dir
        self._finalize_timeout_s = finalize_timeout_s
        self._on_change = on_change
        self._on_error = on_error

        self._lock = threading.RLock()
        self._permission = PermissionTracker(
            permission_service,
            on_change=self._handle_permission_change,
            max_auto_requests=max_auto_requests,
        )
        self._catalog = DeviceCatalog(device_service)
        self._library = RecordingLibrary()
        self._session: Optional[RecordingSession] = None
        self._is_recording = False

    @property
    def permission(self) -> PermissionState:
        return self._permission.state

    @property
    def catalog(self) -> DeviceCatalog:
        return self._catalog

    @property
    def library(self) -> RecordingLibrary:
        return self._library

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def snapshot(self) -> AppSnapshot:
        with self._lock:
            return AppSnapshot(
                permission=self._permission.state,
                devices=self._catalog.devices,
                selected_device_id=self._catalog.selected_device_id,
                is_recording=self._is_recording,
                recording_count=len(self._library),
            )

    # ------------------------------------------------------------------
    # Permission and devices
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        try:
            self._permission.initialize()
        except AudioManagerError as exc:
            self._emit_error(exc)
        self._notify()

    def request_permission(self) -> None:
        try:
            self._permission.request_permission()
        except AudioManagerError as exc:
            self._emit_error(exc)

    def refresh_devices(self) -> Tuple[AudioDevice, ...]:
        with self._lock:
            try:
                devices = self._catalog.refresh()
            except AudioManagerError as exc:
                self._emit_error(exc)
                return self._catalog.devices
            self._notify()
            return devices

    def select_device(self, device_id: Optional[str]) -> None:
        with self._lock:
            self._catalog.select(device_id)
            self._notify()

    def _handle_permission_change(
        self, old_state: PermissionState, new_state: PermissionState
    ) -> None:
        with self._lock:
            if new_state == PermissionState.GRANTED:
                try:
                    self._catalog.refresh()
                except AudioManagerError as exc:
                    self._emit_error(exc)
            elif new_state == PermissionState.DENIED:
                try:
                    self._permission.request_permission_automatically()
                except AudioManagerError as exc:
                    self._emit_error(exc)
            self._notify()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_recording(self) -> None:
        with self._lock:
            if self._session is not None:
                return
            if self._permission.state != PermissionState.GRANTED:
                return
            device_id = self._catalog.selected_device_id
            if device_id is None:
                return

            # An empty id still counts as a selection but does not pin a device.
            constraints = CaptureConstraints(device_id=device_id or None)
            try:
                stream = self._devices.open_stream(constraints)
            except AudioManagerError as exc:
                self._emit_error(exc)
                return
            except Exception as exc:
                self._emit_error(DeviceUnavailable(f"could not open stream: {exc}"))
                return

            session = RecordingSession(stream, self._capture, self._handle_session_finished)
            try:
                session.start()
            except AudioManagerError as exc:
                self._emit_error(exc)
                return

            self._session = session
            self._is_recording = True
            logger.info("Recording started on %s", device_id or "any input")
            self._notify()

    def stop_recording(self) -> None:
        with self._lock:
            session = self._session
            if session is None or not self._is_recording:
                return
            self._is_recording = False
            self._notify()

        session.request_stop()
        if session.wait(timeout=self._finalize_timeout_s):
            return

        logger.warning("Capture did not complete within %.1fs", self._finalize_timeout_s)
        session.force_complete()
        if session.wait(timeout=self._finalize_timeout_s):
            self._emit_code(CAPTURE_TIMEOUT, ERROR_MESSAGES[CAPTURE_TIMEOUT])
        else:
            self._emit_code(CAPTURE_TIMEOUT, "recording session is not responding")

    def _handle_session_finished(
        self,
        session: RecordingSession,
        chunks: Tuple[Chunk, ...],
        error: Optional[AudioManagerError],
    ) -> None:
        with self._lock:
            self._library.finalize(chunks, session.media_type)
            if self._session is session:
                self._session = None
                self._is_recording = False
            if error is not None:
                self._emit_error(error)
            self._notify()

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    def create_playback_handle(self, position: int) -> PlaybackHandle:
        return self._library.create_playback_handle(position)

    def export_recording(
        self, position: int, directory: Optional[Path] = None
    ) -> Optional[Path]:
        target_dir = directory or self._export_dir or Path.cwd()
        try:
            return self._library.export_file(position, target_dir)
        except ExportFailure as exc:
            self._emit_error(exc)
            return None

    def delete_recording(self, position: int) -> None:
        with self._lock:
            self._library.delete(position)
            self._notify()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        self.stop_recording()
        self._library.release_all()

    def _emit_error(self, exc: AudioManagerError) -> None:
        self._emit_code(exc.code, exc.message)

    def _emit_code(self, code: str, message: str) -> None:
        logger.warning("%s: %s", code, message)
        if self._on_error:
            self._on_error(code, message)

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self.snapshot())
