from __future__ import annotations

import threading

import pytest

from actuators import ActuatorWriteError
from config import FanConfig
from sensors import TemperatureReadError


class FakeSensor:
    """Liefert nacheinander Werte, Exceptions werden geworfen."""

    def __init__(self, readings):
        self._readings = list(readings)
        self.calls = 0

    def read(self) -> float:
        self.calls += 1
        value = self._readings.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


class FakeActuator:
    def __init__(self, fail_writes: int = 0, fail_acquire: Exception | None = None):
        self.writes: list[bool] = []
        self.acquire_calls = 0
        self.release_calls = 0
        self.final_writes: list[bool] = []
        self._fail_writes = fail_writes
        self._fail_acquire = fail_acquire

    def acquire(self) -> None:
        self.acquire_calls += 1
        if self._fail_acquire is not None:
            raise self._fail_acquire

    def set(self, on: bool) -> None:
        if self._fail_writes:
            self._fail_writes -= 1
            raise ActuatorWriteError("schreiben fehlgeschlagen")
        self.writes.append(on)

    def release(self) -> None:
        self.release_calls += 1
        self.final_writes.append(False)


class StopAfter(threading.Event):
    """Event, das sich nach n Wartevorgängen selbst setzt, ohne zu schlafen."""

    def __init__(self, cycles: int) -> None:
        super().__init__()
        self.cycles = cycles
        self.waits: list[float] = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        if len(self.waits) >= self.cycles:
            self.set()
        return self.is_set()


@pytest.fixture
def fan_config() -> FanConfig:
    return FanConfig(on_threshold=56.0, off_threshold=55.5, poll_interval=3.0)


@pytest.fixture
def read_error() -> TemperatureReadError:
    return TemperatureReadError("Sensor weg")
