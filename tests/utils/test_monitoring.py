import logging
from datetime import datetime, timedelta
from unittest.mock import call, patch

import pytest

from utils.monitoring import AgentMonitor

# --- Test Fixtures --- #


@pytest.fixture
def monitor() -> AgentMonitor:
    return AgentMonitor(
        "agent_SKU-1",
        metric_thresholds={"transfer_success_rate": (0.5, 1.0), "total_profit": (0.0, 10_000.0)},
        drift_window=5,
        drift_threshold_percent=10.0,
    )


def _populate_history(monitor: AgentMonitor, metric: str, values: list[float]):
    base_time = datetime(2026, 1, 1)
    monitor.metrics_history[metric] = [(base_time + timedelta(minutes=i), float(v)) for i, v in enumerate(values)]


# --- record_metrics --- #


@patch("utils.monitoring.datetime")
def test_record_metrics_uses_clock(mock_dt, monitor: AgentMonitor):
    fixed_time = datetime(2026, 1, 10, 10, 0, 0)
    mock_dt.now.return_value = fixed_time

    monitor.record_metrics({"transfer_success_rate": 0.75})
    monitor.record_metrics({"total_profit": 120}, timestamp=fixed_time + timedelta(hours=1))

    assert monitor.metrics_history["transfer_success_rate"] == [(fixed_time, 0.75)]
    assert monitor.metrics_history["total_profit"] == [(fixed_time + timedelta(hours=1), 120.0)]
    assert monitor.latest("total_profit") == 120.0
    assert monitor.latest("unknown") is None


def test_record_metrics_skips_non_numeric(monitor: AgentMonitor, caplog):
    with caplog.at_level(logging.WARNING):
        monitor.record_metrics({"transfer_success_rate": "high", "total_profit": None})

    assert monitor.metrics_history == {}
    assert "has non-numeric value: high. Skipping." in caplog.text


@patch.object(AgentMonitor, "detect_drift", return_value=False)
@patch.object(AgentMonitor, "trigger_alert")
def test_out_of_range_values_alert(mock_trigger_alert, mock_detect_drift, monitor: AgentMonitor):
    monitor.record_metrics({"transfer_success_rate": 0.8, "untracked": 5})
    mock_trigger_alert.assert_not_called()

    monitor.record_metrics({"transfer_success_rate": 0.2})
    mock_trigger_alert.assert_called_once_with("transfer_success_rate", 0.2, 0.5, 1.0)
    mock_detect_drift.assert_has_calls([call("transfer_success_rate"), call("untracked")], any_order=True)


def test_trigger_alert_records_and_logs(monitor: AgentMonitor, caplog):
    with caplog.at_level(logging.WARNING):
        monitor.trigger_alert("total_profit", -5.0, 0.0, 10_000.0)

    assert len(monitor.alerts) == 1
    assert monitor.alerts[0]["metric"] == "total_profit"
    assert "ALERT [agent_SKU-1]" in caplog.text


# --- detect_drift --- #


@pytest.mark.parametrize(
    "values, expected",
    [
        ([0.7] * 9, False),  # not enough samples for two windows
        ([0.7] * 10, False),
        ([0.7] * 5 + [0.72] * 5, False),
        ([0.7] * 5 + [0.5] * 5, True),
        ([0.0] * 5 + [0.0] * 5, False),
        ([0.0] * 5 + [0.1] * 5, True),
    ],
)
def test_detect_drift(monitor: AgentMonitor, values, expected):
    _populate_history(monitor, "transfer_success_rate", values)
    assert monitor.detect_drift("transfer_success_rate") is expected


def test_drift_is_logged_on_record(monitor: AgentMonitor, caplog):
    _populate_history(monitor, "total_profit", [100.0] * 5 + [300.0] * 4)
    with caplog.at_level(logging.WARNING):
        monitor.record_metrics({"total_profit": 300.0})
    assert "Drift detected for metric 'total_profit'" in caplog.text
