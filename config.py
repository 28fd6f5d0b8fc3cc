"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_EXPORT_DIR = Path.home() / "Music" / "Audio Manager"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "audio_manager" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_export_dir(self) -> Path:
        data = self._read_all()
        value = data.get("export_dir")
        return Path(value).expanduser() if value else DEFAULT_EXPORT_DIR

    def set_export_dir(self, path: Path) -> None:
        data = self._read_all()
        data["export_dir"] = str(path)
        self._write_all(data)

    def get_sample_rate(self) -> int:
        return self._get_int("sample_rate", 16000)

    def get_channels(self) -> int:
        return self._get_int("channels", 1)

    def get_chunk_ms(self) -> int:
        return self._get_int("chunk_ms", 100)

    def get_max_auto_requests(self) -> int:
        return self._get_int("max_auto_requests", 1)

    def set_max_auto_requests(self, count: int) -> None:
        data = self._read_all()
        data["max_auto_requests"] = int(count)
        self._write_all(data)

    def get_finalize_timeout_s(self) -> float:
        data = self._read_all()
        try:
            return float(data.get("finalize_timeout_s", 3.0))
        except (TypeError, ValueError):
            return 3.0

    def get_log_level(self) -> str:
        data = self._read_all()
        return str(data.get("log_level", "INFO")).upper()

    def set_log_level(self, level: str) -> None:
        data = self._read_all()
        data["log_level"] = level.upper()
        self._write_all(data)

    def _get_int(self, key: str, default: int) -> int:
        data = self._read_all()
        try:
            return int(data.get(key, default))
        except (TypeError, ValueError):
            return default

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
