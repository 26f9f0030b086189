import logging
import os
import queue
from datetime import datetime
from unittest.mock import patch

import pytest

from LOGLENS.log_analysis import alert
from LOGLENS.log_analysis.alert_manager import AlertManager
from LOGLENS.rules import EventRule, compile_ruleset
from LOGLENS.store import LogStore


@pytest.fixture
def alert_manager():
    return AlertManager()


@pytest.fixture
def store(alert_manager):
    ruleset = compile_ruleset([], [
        EventRule(name="Error", pattern="ERROR", critical=True),
        EventRule(name="Warn", pattern="WARN"),
    ], [])
    store = LogStore(ruleset)
    store.subscribe(alert_manager)
    return store


def make_alert(message="Suspicious activity detected"):
    return alert.Alert(
        timestamp="2023-11-07 10:00:00",
        alertLevel="High",
        message=message,
        detected_by="LogStore",
    )


def test_alert_level_registered():
    assert logging.getLevelName(alert.ALERT) == "ALERT"


def test_add_and_drain(alert_manager):
    alert_manager.add_alert(make_alert("one"))
    alert_manager.add_alert(make_alert("two"))
    assert alert_manager.number_of_alerts == 2
    assert [a.message for a in alert_manager.drain()] == ["one", "two"]
    assert alert_manager.drain() == []
    assert alert_manager.number_of_alerts == 2


def test_full_queue_drops_alert():
    manager = AlertManager(maxsize=1)
    manager.add_alert(make_alert("kept"))
    manager.add_alert(make_alert("dropped"))
    assert manager.dropped == 1
    assert [a.message for a in manager.drain()] == ["kept"]


def test_empty_queue(alert_manager):
    alert_manager.add_alert(make_alert())
    alert_manager.empty_queue()
    assert alert_manager.pending == 0


def test_shared_queue():
    shared = queue.Queue()
    manager = AlertManager(alert_queue=shared)
    manager.add_alert(make_alert())
    assert shared.qsize() == 1


def test_critical_line_raises_alert(store, alert_manager):
    store.extend([
        "2024-01-15 10:30:45 INFO fine",
        "2024-01-15 10:30:46 WARN slow",
        "2024-01-15 10:30:47 ERROR disk full",
    ])
    alerts = alert_manager.drain()
    assert len(alerts) == 1
    assert alerts[0].seq == 2
    assert alerts[0].detected_by == "Error"
    assert alerts[0].message.endswith("ERROR disk full")
    assert alerts[0].timestamp == datetime.fromisoformat("2024-01-15T10:30:47+00:00")


def test_alert_logged_at_alert_level(store, alert_manager):
    with patch.object(alert_manager.logger, 'log') as log:
        store.append("ERROR boom")
    log.assert_called_once()
    assert log.call_args[0][0] == alert.ALERT


def test_setup_logging_creates_directory(tmp_path):
    log_dir = tmp_path / "logs"
    with patch('LOGLENS.log_analysis.alert.logging.basicConfig') as basic_config:
        log_path = alert.setup_logging(str(log_dir))
    assert os.path.isdir(log_dir)
    assert log_path == os.path.join(str(log_dir), alert.LOG_FILE)
    assert basic_config.call_args.kwargs['filename'] == log_path
    assert basic_config.call_args.kwargs['format'] == "%(asctime)s - %(levelname)s - %(message)s"
