"""Local mirror of the platform microphone permission."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from errors import AudioManagerError, PermissionQueryFailure, PermissionRequestFailure
from interfaces import PermissionService
from logger import setup_logger
from models import PermissionState

logger = setup_logger(__name__)

PermissionCallback = Callable[[PermissionState, PermissionState], None]


class PermissionTracker:
    """Tri-state permission value owned by the platform permission service.

    The service is authoritative: every change it reports replaces the local
    value. Requests are fire-and-forget and their outcome only ever arrives
    through a later change notification.
    """

    def __init__(
        self,
        service: PermissionService,
        on_change: Optional[PermissionCallback] = None,
        max_auto_requests: int = 1,
    ) -> None:
        self._service = service
        self._on_change = on_change
        self._max_auto_requests = max(0, max_auto_requests)
        self._lock = threading.RLock()
        self._state = PermissionState.PROMPT
        self._initialized = False
        self._auto_requests = 0
        self._generation = 0

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def auto_requests_left(self) -> int:
        return self._max_auto_requests - self._auto_requests

    def initialize(self) -> PermissionState:
        with self._lock:
            if self._initialized:
                return self._state
            try:
                initial = PermissionState(self._service.query())
            except AudioManagerError:
                raise
            except Exception as exc:
                raise PermissionQueryFailure(f"permission query failed: {exc}") from exc
            old_state = self._state
            self._state = initial
            if initial == PermissionState.GRANTED:
                self._auto_requests = 0
            self._initialized = True
            self._generation += 1
            generation = self._generation
        logger.info("Initial microphone permission: %s", initial.value)
        try:
            self._service.subscribe(self.on_external_change)
        except Exception as exc:
            with self._lock:
                self._initialized = False
            if isinstance(exc, AudioManagerError):
                raise
            raise PermissionQueryFailure(f"permission subscribe failed: {exc}") from exc
        # A notification delivered during subscribe is newer than the query.
        if self._on_change and self._generation == generation:
            self._on_change(old_state, initial)
        return self._state

    def on_external_change(self, new_state: PermissionState) -> None:
        new_state = PermissionState(new_state)
        with self._lock:
            old_state = self._state
            self._state = new_state
            self._generation += 1
            if new_state == PermissionState.GRANTED:
                self._auto_requests = 0
        if old_state != new_state:
            logger.info("Microphone permission %s -> %s", old_state.value, new_state.value)
        if self._on_change:
            self._on_change(old_state, new_state)

    def request_permission(self) -> None:
        try:
            self._service.request()
        except AudioManagerError:
            raise
        except Exception as exc:
            raise PermissionRequestFailure(f"permission request failed: {exc}") from exc

    def request_permission_automatically(self) -> bool:
        """Re-prompt after a decline, at most ``max_auto_requests`` times per grant."""
        with self._lock:
            if self._auto_requests >= self._max_auto_requests:
                logger.info("Automatic permission request skipped, limit reached")
                return False
            self._auto_requests += 1
        self.request_permission()
        return True
