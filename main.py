"""Application entrypoint."""

from __future__ import annotations

import sys
import threading
from typing import List, Optional

from config import JsonConfigStore
from devices import SoundDeviceDeviceService
from errors import AudioManagerError
from logger import set_log_level, setup_logger
from models import AppSnapshot, PermissionState
from permissions import StreamCheckPermissionService
from player import SoundDevicePlayer
from recorder import SoundDeviceCapture
from recording_library import PlaybackHandle
from session_controller import SessionController

try:
    from PySide6.QtCore import QObject, Signal
    from PySide6.QtWidgets import (
        QApplication,
        QComboBox,
        QHBoxLayout,
        QLabel,
        QListWidget,
        QMessageBox,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = setup_logger(__name__)

PERMISSION_TEXT = {
    PermissionState.GRANTED: "Has microphone permission",
    PermissionState.PROMPT: "Does not have microphone permission yet",
    PermissionState.DENIED: "User declined permission",
}


class UIBridge(QObject):
    snapshot_signal = Signal(object)
    error_signal = Signal(str)


class MainWindow(QWidget):
    def __init__(self, controller: SessionController, player: SoundDevicePlayer) -> None:
        super().__init__()
        self._controller = controller
        self._player = player
        self._handle: Optional[PlaybackHandle] = None
        self._device_ids: List[str] = []
        self.setWindowTitle("Audio Manager")

        self._status = QLabel("")
        self._request_button = QPushButton("Request permission")
        self._request_button.clicked.connect(controller.request_permission)
        self._record_button = QPushButton("Record")
        self._record_button.clicked.connect(self._toggle_recording)

        self._devices = QComboBox()
        self._devices.activated.connect(self._on_device_chosen)

        self._recordings = QListWidget()
        play = QPushButton("Play")
        play.clicked.connect(self._play_selected)
        export = QPushButton("Export")
        export.clicked.connect(self._export_selected)
        delete = QPushButton("Delete")
        delete.clicked.connect(self._delete_selected)

        actions = QHBoxLayout()
        for button in (play, export, delete):
            actions.addWidget(button)

        layout = QVBoxLayout()
        layout.addWidget(self._status)
        layout.addWidget(self._request_button)
        layout.addWidget(QLabel("Devices"))
        layout.addWidget(self._devices)
        layout.addWidget(self._record_button)
        layout.addWidget(QLabel("Audios"))
        layout.addWidget(self._recordings)
        layout.addLayout(actions)
        self.setLayout(layout)

    def render(self, snapshot: AppSnapshot) -> None:
        status = PERMISSION_TEXT[snapshot.permission]
        if snapshot.is_recording:
            status += " - Recording"
        self._status.setText(status)

        granted = snapshot.permission == PermissionState.GRANTED
        self._request_button.setVisible(snapshot.permission == PermissionState.PROMPT)
        self._devices.setEnabled(granted and not snapshot.is_recording)
        self._record_button.setEnabled(granted)
        self._record_button.setText("Stop" if snapshot.is_recording else "Record")

        self._device_ids = [device.id for device in snapshot.devices]
        self._devices.clear()
        for device in snapshot.devices:
            self._devices.addItem(device.name or device.id)
        if snapshot.selected_device_id in self._device_ids:
            self._devices.setCurrentIndex(self._device_ids.index(snapshot.selected_device_id))
        else:
            self._devices.setCurrentIndex(-1)

        if self._recordings.count() != snapshot.recording_count:
            self._release_handle()
            self._recordings.clear()
            for position in range(snapshot.recording_count):
                self._recordings.addItem(f"Audio {position + 1}")

    def show_error(self, message: str) -> None:
        QMessageBox.warning(self, "Audio Manager", message)

    def release(self) -> None:
        self._player.stop()
        self._release_handle()

    def _toggle_recording(self) -> None:
        if self._controller.is_recording:
            # Stopping waits for the capture to finish, so keep it off the UI thread.
            threading.Thread(target=self._controller.stop_recording, daemon=True).start()
        else:
            self._controller.start_recording()

    def _on_device_chosen(self, index: int) -> None:
        if 0 <= index < len(self._device_ids):
            self._controller.select_device(self._device_ids[index])

    def _selected_position(self) -> Optional[int]:
        row = self._recordings.currentRow()
        return row if row >= 0 else None

    def _play_selected(self) -> None:
        position = self._selected_position()
        if position is None:
            return
        self._release_handle()
        try:
            self._handle = self._controller.create_playback_handle(position)
            self._player.play(self._handle)
        except (AudioManagerError, ValueError, RuntimeError) as exc:
            self.show_error(str(exc))

    def _export_selected(self) -> None:
        position = self._selected_position()
        if position is None:
            return
        path = self._controller.export_recording(position)
        if path is not None:
            QMessageBox.information(self, "Exported", f"Saved to {path}")

    def _delete_selected(self) -> None:
        position = self._selected_position()
        if position is None:
            return
        self._player.stop()
        self._controller.delete_recording(position)

    def _release_handle(self) -> None:
        if self._handle is not None:
            self._handle.release()
            self._handle = None


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        set_log_level(self.config_store.get_log_level())
        self.ui = UIBridge()

        sample_rate = self.config_store.get_sample_rate()
        channels = self.config_store.get_channels()
        self.controller = SessionController(
            permission_service=StreamCheckPermissionService(sample_rate, channels),
            device_service=SoundDeviceDeviceService(
                sample_rate, channels, self.config_store.get_chunk_ms()
            ),
            capture_service=SoundDeviceCapture(sample_rate, channels),
            export_dir=self.config_store.get_export_dir(),
            finalize_timeout_s=self.config_store.get_finalize_timeout_s(),
            max_auto_requests=self.config_store.get_max_auto_requests(),
            on_change=self._on_change,
            on_error=self._on_error,
        )
        self.window = MainWindow(self.controller, SoundDevicePlayer())
        self.ui.snapshot_signal.connect(self.window.render)
        self.ui.error_signal.connect(self.window.show_error)
        self.app.aboutToQuit.connect(self.quit)

    # ------------------------------------------------------------------
    # Callbacks (may arrive on worker threads -> emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_change(self, snapshot: AppSnapshot) -> None:
        self.ui.snapshot_signal.emit(snapshot)

    def _on_error(self, code: str, message: str) -> None:
        self.ui.error_signal.emit(f"{code}: {message}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.window.render(self.controller.snapshot())
        self.window.show()
        self.controller.initialize()
        logger.info("Audio Manager started")
        return self.app.exec()

    def quit(self) -> None:
        self.window.release()
        self.controller.shutdown()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
