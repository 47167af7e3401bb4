from __future__ import annotations

import logging
import signal
import threading

import pytest

import app
from config import FanConfig


@pytest.fixture
def captured(monkeypatch):
    """Fängt run() und Signal-Handler ab, damit main() nichts anfasst."""
    calls = {}

    def fake_run(config, stop_event):
        calls["config"] = config
        calls["stop_event"] = stop_event
        return 0

    monkeypatch.setattr(app, "run", fake_run)
    monkeypatch.setattr(app, "install_signal_handlers", lambda event: None)
    monkeypatch.setattr(app, "CONFIG_PATH", "/nonexistent/fan-daemon.yaml")
    yield calls
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.StreamHandler) and handler.formatter is not None:
            if handler.formatter._fmt == app.LOG_FORMAT:
                root.removeHandler(handler)
                handler.close()


def test_defaults_without_config_file(captured):
    assert app.main(["--log-file", ""]) == 0
    assert captured["config"] == FanConfig()
    assert isinstance(captured["stop_event"], threading.Event)


def test_config_file_and_backend_override(captured, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("line: 17\nbackend: gpiod\n")

    assert app.main(["-c", str(path), "--backend", "sysfs", "--log-file", ""]) == 0
    assert captured["config"].line == 17
    assert captured["config"].backend == "sysfs"


def test_config_error_exits_1(captured, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("on_threshold: 50\noff_threshold: 55\n")

    assert app.main(["-c", str(path), "--log-file", ""]) == 1
    assert "config" not in captured


def test_missing_config_file_exits_1(captured, tmp_path):
    assert app.main(["-c", str(tmp_path / "fehlt.yaml"), "--log-file", ""]) == 1


def test_run_exit_code_is_returned(captured, monkeypatch):
    monkeypatch.setattr(app, "run", lambda config, stop_event: 1)

    assert app.main(["--log-file", ""]) == 1


def test_log_file_is_written(captured, tmp_path):
    log_file = tmp_path / "logs" / "fan.log"

    app.main(["--log-file", str(log_file)])

    assert log_file.exists()
    assert "Standardwerte" in log_file.read_text(encoding="utf-8")


def test_signal_handlers_set_stop_event(monkeypatch):
    installed = {}
    monkeypatch.setattr(signal, "signal", lambda signum, handler: installed.update({signum: handler}))
    stop_event = threading.Event()

    app.install_signal_handlers(stop_event)
    installed[signal.SIGTERM](signal.SIGTERM, None)

    assert set(installed) == {signal.SIGINT, signal.SIGTERM}
    assert stop_event.is_set()
