"""Known audio input devices and the current selection."""

from __future__ import annotations

from typing import Optional, Tuple

from errors import AudioManagerError, DeviceEnumerationFailure
from interfaces import DeviceService
from logger import setup_logger
from models import DEFAULT_DEVICE_ID, AudioDevice

logger = setup_logger(__name__)


class DeviceCatalog:
    def __init__(self, service: DeviceService) -> None:
        self._service = service
        self._devices: Tuple[AudioDevice, ...] = ()
        self._selected_id: Optional[str] = None

    @property
    def devices(self) -> Tuple[AudioDevice, ...]:
        return self._devices

    @property
    def selected_device_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_device(self) -> Optional[AudioDevice]:
        """Catalog entry for the selection; None when unset or stale."""
        if self._selected_id is None:
            return None
        for device in self._devices:
            if device.id == self._selected_id:
                return device
        return None

    def refresh(self) -> Tuple[AudioDevice, ...]:
        """Replace the catalog wholesale and reset the selection to the default input."""
        try:
            devices = tuple(self._service.enumerate_devices())
        except AudioManagerError:
            raise
        except Exception as exc:
            raise DeviceEnumerationFailure(f"device enumeration failed: {exc}") from exc

        self._devices = devices
        if any(device.id == DEFAULT_DEVICE_ID for device in devices):
            self._selected_id = DEFAULT_DEVICE_ID
        else:
            self._selected_id = None
        logger.info(
            "Found %d input device(s), selected: %s", len(devices), self._selected_id
        )
        return devices

    def select(self, device_id: Optional[str]) -> None:
        # Not validated against the catalog; stale ids are tolerated.
        self._selected_id = device_id
