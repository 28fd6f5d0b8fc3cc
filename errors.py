"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

PERMISSION_QUERY_FAILED = "PERMISSION_QUERY_FAILED"
PERMISSION_REQUEST_FAILED = "PERMISSION_REQUEST_FAILED"
DEVICE_ENUMERATION_FAILED = "DEVICE_ENUMERATION_FAILED"
DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
CAPTURE_START_FAILED = "CAPTURE_START_FAILED"
CAPTURE_TIMEOUT = "CAPTURE_TIMEOUT"
HARDWARE_DISCONNECTED = "HARDWARE_DISCONNECTED"
RECORDING_NOT_FOUND = "RECORDING_NOT_FOUND"
STALE_PLAYBACK_HANDLE = "STALE_PLAYBACK_HANDLE"
EXPORT_FAILED = "EXPORT_FAILED"

ERROR_MESSAGES = {
    PERMISSION_QUERY_FAILED: "Could not read the microphone permission.",
    PERMISSION_REQUEST_FAILED: "Could not ask for microphone permission.",
    DEVICE_ENUMERATION_FAILED: "Could not list audio input devices.",
    DEVICE_UNAVAILABLE: "The selected input device is not available.",
    CAPTURE_START_FAILED: "Recording could not be started.",
    CAPTURE_TIMEOUT: "Recording did not finish in time, kept what was captured.",
    HARDWARE_DISCONNECTED: "Input device stopped, kept what was captured.",
    RECORDING_NOT_FOUND: "That recording no longer exists.",
    STALE_PLAYBACK_HANDLE: "Playback handle is no longer valid.",
    EXPORT_FAILED: "Recording could not be exported.",
}


class AudioManagerError(Exception):
    """Base class; ``code`` maps into ERROR_MESSAGES."""

    code = ""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES.get(self.code, ""))

    @property
    def message(self) -> str:
        return str(self)


class PermissionQueryFailure(AudioManagerError):
    code = PERMISSION_QUERY_FAILED


class PermissionRequestFailure(AudioManagerError):
    code = PERMISSION_REQUEST_FAILED


class DeviceEnumerationFailure(AudioManagerError):
    code = DEVICE_ENUMERATION_FAILED


class DeviceUnavailable(AudioManagerError):
    code = DEVICE_UNAVAILABLE


class CaptureStartFailure(AudioManagerError):
    code = CAPTURE_START_FAILED


class HardwareDisconnected(AudioManagerError):
    code = HARDWARE_DISCONNECTED


class RecordingNotFound(AudioManagerError, IndexError):
    code = RECORDING_NOT_FOUND


class StalePlaybackHandle(AudioManagerError):
    code = STALE_PLAYBACK_HANDLE


class ExportFailure(AudioManagerError):
    code = EXPORT_FAILED
