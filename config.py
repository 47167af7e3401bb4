"""Zentrale Konfiguration für den Lüfterdaemon.

Die Konstanten sind die Standardwerte, eine YAML-Datei kann sie für einen
Lauf überschreiben. Ergebnis ist immer ein unveränderliches FanConfig.
"""
from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from pathlib import Path

import yaml

# GPIO
CHIP_NAME = "gpiochip1"
LINE_NUMBER = 78
CONSUMER = "cpu_temp_fan_control"
BACKEND = "auto"
BACKENDS = ("auto", "gpiod", "sysfs", "blinka")

# Sysfs-GPIO (Legacy)
SYSFS_GPIO_BASE = "/sys/class/gpio"
EXPORT_SETTLE_SECONDS = 0.1

# Lüftersteuerung
FAN_ON_TEMP_C = 56.0
FAN_OFF_TEMP_C = 55.5
POLL_INTERVAL_SECONDS = 3.0
TEMP_PATH = "/sys/class/thermal/thermal_zone2/temp"

# Konfigurationsdatei
CONFIG_PATH = "/etc/fan-daemon/config.yaml"

# Logging
LOG_PATH = "/var/log/fan-daemon/fan-daemon.log"
LOG_MAX_BYTES = 1 * 1024 * 1024
LOG_BACKUP_COUNT = 3


class ConfigError(ValueError):
    """Ungültige oder unlesbare Konfiguration."""


def _as_float(value: object, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{label} muss eine Zahl sein, nicht {value!r}")
    result = float(value)
    if not math.isfinite(result):
        raise ConfigError(f"{label} muss endlich sein, nicht {value!r}")
    return result


def _as_text(value: object, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{label} muss ein nicht-leerer Text sein, nicht {value!r}")
    return value


@dataclass(frozen=True)
class FanConfig:
    """Parameter eines Laufs. Wird beim Erzeugen validiert."""

    chip: str = CHIP_NAME
    line: int = LINE_NUMBER
    consumer: str = CONSUMER
    on_threshold: float = FAN_ON_TEMP_C
    off_threshold: float = FAN_OFF_TEMP_C
    poll_interval: float = POLL_INTERVAL_SECONDS
    sensor_path: str = TEMP_PATH
    backend: str = BACKEND
    sysfs_base: str = SYSFS_GPIO_BASE
    export_settle_delay: float = EXPORT_SETTLE_SECONDS

    def __post_init__(self) -> None:
        _as_text(self.chip, "chip")
        _as_text(self.consumer, "consumer")
        _as_text(self.sensor_path, "sensor_path")
        _as_text(self.sysfs_base, "sysfs_base")
        if isinstance(self.line, bool) or not isinstance(self.line, int) or self.line < 0:
            raise ConfigError(f"line muss eine Ganzzahl >= 0 sein, nicht {self.line!r}")
        if self.backend not in BACKENDS:
            raise ConfigError(
                f"backend muss eines von {', '.join(BACKENDS)} sein, nicht {self.backend!r}"
            )

        # Frozen: normalisierte Werte nur über object.__setattr__
        for name in ("on_threshold", "off_threshold", "poll_interval", "export_settle_delay"):
            object.__setattr__(self, name, _as_float(getattr(self, name), name))

        if self.on_threshold <= self.off_threshold:
            raise ConfigError(
                "on_threshold muss größer als off_threshold sein "
                f"({self.on_threshold} <= {self.off_threshold})"
            )
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval muss positiv sein, nicht {self.poll_interval}")
        if self.export_settle_delay < 0:
            raise ConfigError(
                f"export_settle_delay darf nicht negativ sein, nicht {self.export_settle_delay}"
            )

    def replace(self, **changes: object) -> FanConfig:
        """Kopie mit geänderten Feldern, z. B. für CLI-Overrides."""
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc


FIELD_NAMES = frozenset(field.name for field in dataclasses.fields(FanConfig))


def load_config(path: str | Path) -> FanConfig:
    """Liest eine YAML-Datei und liefert die validierte Konfiguration.

    Fehlende Schlüssel übernehmen die Standardwerte, unbekannte Schlüssel
    sind ein Fehler.
    """
    config_path = Path(path)
    try:
        with config_path.open("r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except OSError as exc:
        raise ConfigError(f"Konfiguration {config_path} nicht lesbar: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Konfiguration {config_path} ist kein gültiges YAML: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Konfiguration {config_path} muss ein Mapping sein")

    unknown = sorted(str(key) for key in data if key not in FIELD_NAMES)
    if unknown:
        raise ConfigError(f"Unbekannte Schlüssel in {config_path}: {', '.join(unknown)}")

    return FanConfig(**data)
