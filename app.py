"""Startpunkt des Lüfterdaemons."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config import (
    BACKENDS,
    CONFIG_PATH,
    LOG_BACKUP_COUNT,
    LOG_MAX_BYTES,
    LOG_PATH,
    ConfigError,
    FanConfig,
    load_config,
)
from fan import run

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_path: str | None = LOG_PATH, verbose: bool = False) -> None:
    """Konfiguriert Logging auf stderr und optional rotierend in eine Datei."""
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if not log_path:
        return
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT
        )
    except OSError as exc:
        LOGGER.warning("Logdatei %s nicht nutzbar, nur stderr: %s", log_path, exc)
        return
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fan-daemon",
        description="Schaltet einen CPU-Lüfter per GPIO mit Temperatur-Hysterese.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=f"YAML-Konfiguration (Standard: {CONFIG_PATH}, falls vorhanden)",
    )
    parser.add_argument("--backend", choices=BACKENDS, help="GPIO-Backend erzwingen")
    parser.add_argument(
        "--log-file",
        default=LOG_PATH,
        help="Logdatei, leer für nur stderr (Standard: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug-Ausgaben")
    return parser


def resolve_config(args: argparse.Namespace) -> FanConfig:
    if args.config:
        config = load_config(args.config)
    elif Path(CONFIG_PATH).is_file():
        config = load_config(CONFIG_PATH)
    else:
        LOGGER.info("Keine Konfigurationsdatei, verwende Standardwerte")
        config = FanConfig()

    if args.backend:
        config = config.replace(backend=args.backend)
    return config


def install_signal_handlers(stop_event: threading.Event) -> None:
    """SIGINT/SIGTERM beenden die Schleife an der nächsten Wartegrenze."""

    def handle(signum, frame):
        LOGGER.info("Signal %s empfangen, beende", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    try:
        config = resolve_config(args)
    except ConfigError as exc:
        LOGGER.critical("Konfigurationsfehler: %s", exc)
        return 1

    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    return run(config, stop_event)


def main_entry() -> None:
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
