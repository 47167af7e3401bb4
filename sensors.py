"""Sensorfunktionen (CPU-Temperatur)."""
from __future__ import annotations

import logging

LOGGER = logging.getLogger(__name__)


class TemperatureReadError(RuntimeError):
    """Der Temperatursensor lieferte keinen verwertbaren Wert."""


def read_cpu_temperature_c(path: str) -> float:
    """Liest die CPU-Temperatur in °C aus einer Milligrad-Datei."""
    try:
        with open(path, "r", encoding="utf-8") as file:
            line = file.readline()
    except (OSError, UnicodeDecodeError) as exc:
        raise TemperatureReadError(f"Temperaturdatei {path} nicht lesbar: {exc}") from exc

    if not line:
        raise TemperatureReadError(f"Temperaturdatei {path} ist leer")

    raw = line.strip()
    try:
        milli_c = int(raw)
    except ValueError as exc:
        raise TemperatureReadError(
            f"Temperaturwert {raw!r} aus {path} ist keine Ganzzahl"
        ) from exc
    return milli_c / 1000.0


class TemperatureSource:
    """Liest bei jedem Aufruf frisch vom Sensor, ohne Cache."""

    def __init__(self, path: str) -> None:
        self.path = path

    def read(self) -> float:
        temperature_c = read_cpu_temperature_c(self.path)
        LOGGER.debug("CPU %.3f °C (%s)", temperature_c, self.path)
        return temperature_c
