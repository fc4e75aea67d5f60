from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from ..models import ProcessingMode
from ..policy.rules import ContentRule

logger = logging.getLogger(__name__)

SETTINGS_KEY = "ProcessingModeSettings"


class ProcessingModeSettings(BaseModel):
    preferred_mode: ProcessingMode = ProcessingMode.HYBRID
    privacy_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    cost_threshold: float = Field(default=0.1, ge=0.0)
    time_threshold: float = Field(default=10.0, gt=0.0)
    quality_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    auto_switch_enabled: bool = True
    notifications_enabled: bool = True
    analytics_enabled: bool = True
    content_rules: list[ContentRule] = Field(default_factory=list)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Flat string key-value store kept in one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            loaded = json.load(handle)
        if not isinstance(loaded, dict):
            raise ValueError(f"{self.path} must contain a JSON object")
        return loaded

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_target = self.path.with_suffix(".tmp")
        with tmp_target.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, sort_keys=True, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_target, self.path)


class SettingsRepository:
    def __init__(self, store: KeyValueStore, key: str = SETTINGS_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> ProcessingModeSettings:
        """Stored settings, or the defaults when nothing usable is stored."""
        try:
            raw = self.store.get(self.key)
        except (OSError, ValueError) as exc:
            logger.warning("Settings store unreadable, using defaults: %s", exc)
            return ProcessingModeSettings()
        if raw is None:
            return ProcessingModeSettings()
        try:
            return ProcessingModeSettings.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Stored settings invalid, using defaults: %s", exc.errors()[:1])
            return ProcessingModeSettings()

    def save(self, settings: ProcessingModeSettings) -> None:
        self.store.set(self.key, settings.model_dump_json())
