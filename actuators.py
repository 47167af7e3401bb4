"""GPIO-Ausgänge für den Lüfter (libgpiod, sysfs, Blinka)."""
from __future__ import annotations

import abc
import logging
import time
from pathlib import Path

import gpiod
from gpiod.line import Direction, Value

from config import FanConfig

LOGGER = logging.getLogger(__name__)

WRITE_ERRORS = (OSError, RuntimeError, ValueError)


class ActuatorAcquireError(RuntimeError):
    """GPIO-Leitung konnte nicht belegt werden."""


class ActuatorWriteError(RuntimeError):
    """Schreiben auf die GPIO-Leitung ist fehlgeschlagen."""


def chip_path(chip: str) -> str:
    """Gerätepfad zum Chipnamen, absolute Pfade bleiben unverändert."""
    return chip if chip.startswith("/") else f"/dev/{chip}"


class Actuator(abc.ABC):
    """Exklusiver Besitz einer GPIO-Leitung für die Laufzeit des Prozesses.

    acquire() darf genau einmal aufgerufen werden und lässt die Leitung auf
    AUS. release() schreibt AUS und gibt die Leitung frei, weitere Aufrufe
    sind wirkungslos. Backends implementieren _acquire, _write und _close;
    _acquire räumt bei einem Fehler selbst alles bereits Belegte auf.
    """

    name = "actuator"

    def __init__(self, config: FanConfig) -> None:
        self._config = config
        self._acquire_called = False
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def acquire(self) -> None:
        if self._acquire_called:
            raise ActuatorAcquireError(
                f"GPIO-Leitung {self._config.line} wurde bereits angefordert"
            )
        self._acquire_called = True
        self._acquire()
        self._active = True
        LOGGER.info(
            "GPIO-Leitung %s belegt (%s, Lüfter AUS)", self._config.line, self.name
        )

    def set(self, on: bool) -> None:
        if not self._active:
            raise ActuatorWriteError(f"GPIO-Leitung {self._config.line} ist nicht belegt")
        try:
            self._write(on)
        except WRITE_ERRORS as exc:
            raise ActuatorWriteError(
                f"GPIO-Leitung {self._config.line} konnte nicht auf "
                f"{'EIN' if on else 'AUS'} gesetzt werden: {exc}"
            ) from exc

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self._write(False)
        except WRITE_ERRORS as exc:
            LOGGER.warning(
                "GPIO-Leitung %s vor Freigabe nicht auf AUS gesetzt: %s",
                self._config.line,
                exc,
            )
        self._close()
        LOGGER.info("GPIO-Leitung %s freigegeben", self._config.line)

    def __enter__(self) -> Actuator:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    @abc.abstractmethod
    def _acquire(self) -> None:
        ...

    @abc.abstractmethod
    def _write(self, on: bool) -> None:
        ...

    @abc.abstractmethod
    def _close(self) -> None:
        ...


class GpiodActuator(Actuator):
    """Zeichengerät /dev/gpiochipN über libgpiod (v2-API)."""

    name = "gpiod"

    def __init__(self, config: FanConfig) -> None:
        super().__init__(config)
        self._chip: gpiod.Chip | None = None
        self._request: gpiod.LineRequest | None = None

    def _acquire(self) -> None:
        path = chip_path(self._config.chip)
        line = self._config.line
        try:
            self._chip = gpiod.Chip(path)
        except (OSError, ValueError) as exc:
            raise ActuatorAcquireError(
                f"GPIO-Chip '{self._config.chip}' nicht zu öffnen: {exc}. "
                "Chipname und Rechte prüfen (ggf. mit sudo starten)."
            ) from exc

        try:
            self._chip.get_line_info(line)
        except (OSError, ValueError) as exc:
            self._close()
            raise ActuatorAcquireError(
                f"GPIO-Leitung {line} auf Chip '{self._config.chip}' existiert nicht: {exc}"
            ) from exc

        try:
            self._request = self._chip.request_lines(
                config={
                    line: gpiod.LineSettings(
                        direction=Direction.OUTPUT, output_value=Value.INACTIVE
                    )
                },
                consumer=self._config.consumer,
            )
        except (OSError, ValueError) as exc:
            self._close()
            raise ActuatorAcquireError(
                f"GPIO-Leitung {line} auf Chip '{self._config.chip}' nicht als Ausgang "
                f"anforderbar: {exc}. Leitung evtl. schon belegt."
            ) from exc

    def _write(self, on: bool) -> None:
        self._request.set_value(self._config.line, Value.ACTIVE if on else Value.INACTIVE)

    def _close(self) -> None:
        if self._request is not None:
            try:
                self._request.release()
            except OSError as exc:
                LOGGER.warning("Line-Request nicht freigegeben: %s", exc)
            self._request = None
        if self._chip is not None:
            self._chip.close()
            self._chip = None


class SysfsActuator(Actuator):
    """Legacy-Schnittstelle /sys/class/gpio (export, direction, value)."""

    name = "sysfs"

    def __init__(self, config: FanConfig) -> None:
        super().__init__(config)
        self._base = Path(config.sysfs_base)
        self._pin_dir = self._base / f"gpio{config.line}"
        self._exported = False

    @staticmethod
    def _write_file(path: Path, text: str) -> None:
        with open(path, "w", encoding="ascii") as file:
            file.write(text)

    def _acquire(self) -> None:
        line = self._config.line
        try:
            self._write_file(self._base / "export", str(line))
        except OSError as exc:
            raise ActuatorAcquireError(
                f"GPIO {line} nicht exportierbar: {exc}. "
                "Bereits exportiert oder fehlende Rechte?"
            ) from exc
        self._exported = True

        # Der Kernel legt gpioN/ asynchron an, einmal kurz warten
        time.sleep(self._config.export_settle_delay)

        try:
            self._write_file(self._pin_dir / "direction", "out")
            self._write_file(self._pin_dir / "value", "0")
        except OSError as exc:
            self._close()
            raise ActuatorAcquireError(
                f"GPIO {line} nicht als Ausgang konfigurierbar: {exc}"
            ) from exc

    def _write(self, on: bool) -> None:
        self._write_file(self._pin_dir / "value", "1" if on else "0")

    def _close(self) -> None:
        if not self._exported:
            return
        self._exported = False
        try:
            self._write_file(self._base / "unexport", str(self._config.line))
        except OSError as exc:
            LOGGER.warning("GPIO %s nicht unexportiert: %s", self._config.line, exc)


class BlinkaActuator(Actuator):
    """Raspberry-Pi-Pin D<line> über Adafruit Blinka (board/digitalio)."""

    name = "blinka"

    def __init__(self, config: FanConfig) -> None:
        super().__init__(config)
        self._pin = None

    def _acquire(self) -> None:
        line = self._config.line
        # board erkennt beim Import die Plattform und scheitert außerhalb eines Pi
        try:
            import board
            import digitalio
        except (ImportError, NotImplementedError, RuntimeError) as exc:
            raise ActuatorAcquireError(f"Blinka nicht verfügbar: {exc}") from exc

        try:
            pin = getattr(board, f"D{line}")
        except AttributeError as exc:
            raise ActuatorAcquireError(f"Pin D{line} auf diesem Board unbekannt") from exc

        try:
            self._pin = digitalio.DigitalInOut(pin)
            self._pin.direction = digitalio.Direction.OUTPUT
            self._pin.value = False
        except WRITE_ERRORS as exc:
            self._close()
            raise ActuatorAcquireError(f"Pin D{line} nicht als Ausgang nutzbar: {exc}") from exc

    def _write(self, on: bool) -> None:
        self._pin.value = on

    def _close(self) -> None:
        if self._pin is not None:
            self._pin.deinit()
            self._pin = None


BACKEND_CLASSES: dict[str, type[Actuator]] = {
    GpiodActuator.name: GpiodActuator,
    SysfsActuator.name: SysfsActuator,
    BlinkaActuator.name: BlinkaActuator,
}


def detect_backend(config: FanConfig) -> str:
    """Wählt für backend=auto: Zeichengerät, sonst sysfs, sonst gpiod."""
    if Path(chip_path(config.chip)).exists():
        return GpiodActuator.name
    if (Path(config.sysfs_base) / "export").exists():
        return SysfsActuator.name
    return GpiodActuator.name


def create_actuator(config: FanConfig) -> Actuator:
    backend = config.backend
    if backend == "auto":
        backend = detect_backend(config)
        LOGGER.info("GPIO-Backend automatisch gewählt: %s", backend)
    return BACKEND_CLASSES[backend](config)
