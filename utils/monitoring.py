"""
Monitoring of agent performance metrics: range alerts and drift detection.
"""

import logging
from collections import defaultdict
from datetime import datetime

import numpy as np

logger = logging.getLogger(__name__)


class AgentMonitor:
    """Keeps a per-metric history for one agent and flags out-of-range values and drift."""

    def __init__(
        self,
        agent_id: str,
        metric_thresholds: dict[str, tuple[float, float]] | None = None,
        drift_window: int = 10,
        drift_threshold_percent: float = 15.0,
    ):
        """
        Args:
            agent_id: ID of the agent being monitored.
            metric_thresholds: Metric name -> (min_value, max_value) acceptable range.
            drift_window: Number of samples per window compared for drift.
            drift_threshold_percent: Relative change between windows that counts as drift.
        """
        self.agent_id = agent_id
        self.metric_thresholds = metric_thresholds or {}
        self.drift_window = drift_window
        self.drift_threshold_percent = drift_threshold_percent
        self.metrics_history: dict[str, list[tuple[datetime, float]]] = defaultdict(list)
        self.alerts: list[dict] = []

    def record_metrics(self, metrics: dict[str, float], timestamp: datetime | None = None) -> None:
        ts = timestamp or datetime.now()
        for metric, value in metrics.items():
            if not isinstance(value, int | float):
                logger.warning(
                    f"Metric '{metric}' for agent {self.agent_id} has non-numeric value: {value}. Skipping."
                )
                continue
            self.metrics_history[metric].append((ts, float(value)))

            if metric in self.metric_thresholds:
                min_val, max_val = self.metric_thresholds[metric]
                if not (min_val <= value <= max_val):
                    self.trigger_alert(metric, value, min_val, max_val)

            if self.detect_drift(metric):
                logger.warning(f"Drift detected for metric '{metric}' in agent {self.agent_id}")

    def detect_drift(self, metric: str) -> bool:
        """Compare the mean of the latest window against the window before it."""
        history = self.metrics_history.get(metric, [])
        window = self.drift_window
        if len(history) < window * 2:
            return False
        recent_avg = np.mean([v for _, v in history[-window:]])
        previous_avg = np.mean([v for _, v in history[-window * 2 : -window]])
        if previous_avg == 0:
            return bool(recent_avg != 0)
        percent_change = abs((recent_avg - previous_avg) / previous_avg) * 100
        return bool(percent_change > self.drift_threshold_percent)

    def trigger_alert(self, metric: str, value: float, min_threshold: float, max_threshold: float) -> None:
        message = (
            f"ALERT [{self.agent_id}] - Metric '{metric}' value {value:.2f} outside acceptable range "
            f"[{min_threshold:.2f}, {max_threshold:.2f}]"
        )
        logger.warning(message)
        self.alerts.append(
            {"timestamp": datetime.now(), "metric": metric, "value": value, "message": message}
        )

    def latest(self, metric: str) -> float | None:
        history = self.metrics_history.get(metric)
        if not history:
            return None
        return history[-1][1]
