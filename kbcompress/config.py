from __future__ import annotations

import os
from pathlib import Path

from PySide6.QtCore import QSettings

ORGANIZATION = "Kbcompress"
APPLICATION = "Kbcompress"
LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_LOG_LEVEL = "INFO"


def get_log_level() -> str:
    level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    if level not in LOG_LEVELS:
        return DEFAULT_LOG_LEVEL
    return level


class AppSettings:

    def __init__(self, settings: QSettings | None = None) -> None:
        self.settings = settings or QSettings(ORGANIZATION, APPLICATION)

    @property
    def output_dir(self) -> Path | None:
        value = self.settings.value("output_dir", "")
        if not value:
            return None
        return Path(str(value))

    @output_dir.setter
    def output_dir(self, path: Path | None) -> None:
        if path is None:
            self.settings.remove("output_dir")
        else:
            self.settings.setValue("output_dir", str(path))

    @property
    def last_target_kb(self) -> int | None:
        value = self.settings.value("last_target_kb", "")
        try:
            target_kb = int(value)
        except (TypeError, ValueError):
            return None
        return target_kb if target_kb > 0 else None

    @last_target_kb.setter
    def last_target_kb(self, target_kb: int | None) -> None:
        if target_kb is None:
            self.settings.remove("last_target_kb")
        else:
            self.settings.setValue("last_target_kb", int(target_kb))

    def sync(self) -> None:
        self.settings.sync()
