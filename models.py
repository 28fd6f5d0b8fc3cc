"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

DEFAULT_DEVICE_ID = "default"


class PermissionState(str, Enum):
    PROMPT = "prompt"
    GRANTED = "granted"
    DENIED = "denied"


class CaptureEventKind(str, Enum):
    CHUNK = "chunk"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class AudioDevice:
    id: str
    name: str = ""


@dataclass(frozen=True)
class CaptureConstraints:
    # None means any available input
    device_id: Optional[str] = None


@dataclass(frozen=True)
class Chunk:
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class CaptureEvent:
    kind: str
    data: bytes = b""
    code: str = ""
    message: str = ""


@dataclass(frozen=True)
class SavedRecording:
    chunks: Tuple[Chunk, ...] = ()
    media_type: str = "application/octet-stream"

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def size(self) -> int:
        return sum(chunk.size for chunk in self.chunks)


@dataclass(frozen=True)
class AppSnapshot:
    permission: PermissionState = PermissionState.PROMPT
    devices: Tuple[AudioDevice, ...] = field(default_factory=tuple)
    selected_device_id: Optional[str] = None
    is_recording: bool = False
    recording_count: int = 0
