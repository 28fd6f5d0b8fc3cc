"""Ordered collection of finished recordings.

Recordings have no identity of their own: they are addressed by position,
and deleting one shifts everything after it down by one. Playback handles
created for shifted entries are revoked on delete.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from errors import ExportFailure, RecordingNotFound, StalePlaybackHandle
from logger import setup_logger
from models import Chunk, SavedRecording
from pcm import is_pcm, write_wav

logger = setup_logger(__name__)

EXTENSIONS = {
    "audio/l16": "wav",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
}


def extension_for(media_type: str) -> str:
    base = media_type.split(";", 1)[0].strip().lower()
    return EXTENSIONS.get(base, "bin")


def export_name(position: int, media_type: str) -> str:
    return f"Audio {position + 1}.{extension_for(media_type)}"


class PlaybackHandle:
    """Revocable reference to a materialized recording."""

    def __init__(
        self,
        library: "RecordingLibrary",
        position: int,
        data: bytes,
        media_type: str,
    ) -> None:
        self._library = library
        self.position = position
        self.media_type = media_type
        self._data: Optional[bytes] = data

    @property
    def valid(self) -> bool:
        return self._data is not None

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise StalePlaybackHandle(
                f"playback handle for position {self.position} was released"
            )
        return self._data

    def release(self) -> None:
        if self._data is None:
            return
        self._library._forget(self)
        self._data = None

    def _revoke(self) -> None:
        self._data = None

    def __enter__(self) -> "PlaybackHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class RecordingLibrary:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._recordings: List[SavedRecording] = []
        self._handles: List[PlaybackHandle] = []

    def __len__(self) -> int:
        return len(self._recordings)

    @property
    def recordings(self) -> Tuple[SavedRecording, ...]:
        return tuple(self._recordings)

    @property
    def open_handles(self) -> int:
        return len(self._handles)

    def finalize(
        self,
        chunks: Sequence[Chunk],
        media_type: str = "application/octet-stream",
    ) -> int:
        recording = SavedRecording(chunks=tuple(chunks), media_type=media_type)
        with self._lock:
            self._recordings.append(recording)
            position = len(self._recordings) - 1
        logger.info(
            "Saved recording at position %d (%d chunk(s), %d bytes)",
            position,
            recording.chunk_count,
            recording.size,
        )
        return position

    def get(self, position: int) -> SavedRecording:
        with self._lock:
            self._check(position)
            return self._recordings[position]

    def materialize(self, position: int) -> bytes:
        recording = self.get(position)
        return b"".join(chunk.data for chunk in recording.chunks)

    def create_playback_handle(self, position: int) -> PlaybackHandle:
        with self._lock:
            recording = self.get(position)
            handle = PlaybackHandle(
                self, position, self.materialize(position), recording.media_type
            )
            self._handles.append(handle)
        return handle

    def export_file(self, position: int, directory: Path) -> Path:
        """Write the recording to ``directory``, named by its current position."""
        with self._lock:
            recording = self.get(position)
            blob = self.materialize(position)
        target = Path(directory) / export_name(position, recording.media_type)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if is_pcm(recording.media_type):
                write_wav(target, blob, recording.media_type)
            else:
                target.write_bytes(blob)
        except (OSError, RuntimeError) as exc:
            raise ExportFailure(f"could not write {target}: {exc}") from exc
        logger.info("Exported recording %d to %s", position, target)
        return target

    def delete(self, position: int) -> None:
        with self._lock:
            self._check(position)
            del self._recordings[position]
            kept: List[PlaybackHandle] = []
            for handle in self._handles:
                if handle.position >= position:
                    handle._revoke()
                else:
                    kept.append(handle)
            self._handles = kept
        logger.info("Deleted recording at position %d", position)

    def release_all(self) -> None:
        with self._lock:
            for handle in self._handles:
                handle._revoke()
            self._handles = []

    def _forget(self, handle: PlaybackHandle) -> None:
        with self._lock:
            self._handles = [h for h in self._handles if h is not handle]

    def _check(self, position: int) -> None:
        if not 0 <= position < len(self._recordings):
            raise RecordingNotFound(f"no recording at position {position}")
