"""Lüftersteuerung per GPIO mit Hysterese."""
from __future__ import annotations

import enum
import logging
import threading

from actuators import Actuator, ActuatorAcquireError, ActuatorWriteError, create_actuator
from config import FanConfig
from sensors import TemperatureReadError, TemperatureSource

LOGGER = logging.getLogger(__name__)


class FanState(enum.Enum):
    OFF = "AUS"
    ON = "EIN"


def next_state(current: FanState, temperature_c: float, config: FanConfig) -> FanState:
    """Schmitt-Trigger: zwischen off_threshold und on_threshold kein Wechsel.

    Beide Schwellen sind inklusiv, d. h. genau on_threshold schaltet ein und
    genau off_threshold schaltet aus.
    """
    if current is FanState.OFF and temperature_c >= config.on_threshold:
        return FanState.ON
    if current is FanState.ON and temperature_c <= config.off_threshold:
        return FanState.OFF
    return current


class FanController:
    """Steuert einen Lüfter mit sicherem Start-/Stopp-Zustand.

    Der Aktor muss bereits belegt sein, der Zustand startet daher bei AUS.
    """

    def __init__(
        self, config: FanConfig, sensor: TemperatureSource, actuator: Actuator
    ) -> None:
        self._config = config
        self._sensor = sensor
        self._actuator = actuator
        self.state = FanState.OFF

    def step(self) -> FanState:
        """Ein Regelzyklus ohne Warten: lesen, entscheiden, ggf. schalten."""
        try:
            cpu_temp = self._sensor.read()
        except TemperatureReadError as exc:
            LOGGER.warning("Zyklus übersprungen: %s", exc)
            return self.state

        target = next_state(self.state, cpu_temp, self._config)
        if target is self.state:
            return self.state

        try:
            self._actuator.set(target is FanState.ON)
        except ActuatorWriteError as exc:
            # Zustand bleibt, der Wechsel wird im nächsten Zyklus wiederholt
            LOGGER.error("%s", exc)
            return self.state

        self.state = target
        LOGGER.info("Lüfter %s (CPU %.2f °C)", target.value, cpu_temp)
        return self.state

    def run_loop(self, stop_event: threading.Event) -> None:
        """Prüft die CPU-Temperatur und steuert den Lüfter bis stop_event gesetzt ist."""
        LOGGER.info(
            "Lüftersteuerung läuft: EIN ab %.1f °C, AUS ab %.1f °C, alle %.1f s",
            self._config.on_threshold,
            self._config.off_threshold,
            self._config.poll_interval,
        )
        while not stop_event.is_set():
            self.step()
            stop_event.wait(self._config.poll_interval)


def run(
    config: FanConfig,
    stop_event: threading.Event,
    sensor: TemperatureSource | None = None,
    actuator: Actuator | None = None,
) -> int:
    """Belegt den Aktor, regelt bis zum Stopp und gibt ihn garantiert frei.

    Rückgabe ist der Exit-Code: 0 bei normalem Ende, 1 wenn der Aktor nicht
    belegt werden konnte.
    """
    if sensor is None:
        sensor = TemperatureSource(config.sensor_path)
    if actuator is None:
        actuator = create_actuator(config)

    try:
        actuator.acquire()
    except ActuatorAcquireError as exc:
        LOGGER.critical("%s", exc)
        return 1

    controller = FanController(config, sensor, actuator)
    try:
        controller.run_loop(stop_event)
    finally:
        actuator.release()
        controller.state = FanState.OFF
    LOGGER.info("Lüftersteuerung beendet")
    return 0
