"""Helpers for raw ``audio/L16`` recordings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore

L16 = "audio/l16"


def is_pcm(media_type: str) -> bool:
    return media_type.split(";", 1)[0].strip().lower() == L16


def parse_pcm_media_type(media_type: str) -> Tuple[int, int]:
    """Return (sample_rate, channels) from an ``audio/L16`` media type."""
    parts = [part.strip() for part in media_type.split(";")]
    if parts[0].lower() != L16:
        raise ValueError(f"unsupported media type: {media_type}")
    params: Dict[str, str] = {}
    for part in parts[1:]:
        key, _, value = part.partition("=")
        params[key.strip().lower()] = value.strip()
    return int(params.get("rate", 16000)), int(params.get("channels", 1))


def pcm_frames(data: bytes, channels: int) -> Any:
    """Little-endian int16 bytes as a (frames, channels) array; a partial frame is dropped."""
    if np is None:
        raise RuntimeError("numpy is not installed")
    usable = len(data) // (2 * channels) * 2 * channels
    return np.frombuffer(data[:usable], dtype="<i2").reshape(-1, channels)


def write_wav(path: Path, data: bytes, media_type: str) -> None:
    if sf is None:
        raise RuntimeError("soundfile is not installed")
    sample_rate, channels = parse_pcm_media_type(media_type)
    sf.write(str(path), pcm_frames(data, channels), sample_rate, subtype="PCM_16")
