"""Playback of materialized recordings through sounddevice."""

from __future__ import annotations

from logger import setup_logger
from pcm import parse_pcm_media_type, pcm_frames
from recording_library import PlaybackHandle

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = setup_logger(__name__)

__all__ = ["SoundDevicePlayer", "parse_pcm_media_type"]


class SoundDevicePlayer:
    def play(self, handle: PlaybackHandle) -> None:
        if sd is None:
            raise RuntimeError("sounddevice is not installed")
        sample_rate, channels = parse_pcm_media_type(handle.media_type)
        samples = pcm_frames(handle.data, channels)
        logger.debug("Playing recording %d (%d frames)", handle.position, len(samples))
        sd.play(samples, samplerate=sample_rate)

    def stop(self) -> None:
        if sd is not None:
            sd.stop()
