# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Alerting on processed telemetry. An alert is raised either because the detector
predicts an attack (anomaly alert), or because a device has drifted too far from
its baseline (drift alert). If both hold, the anomaly takes priority, while the
drift score is still attached to the alert.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from fidsim.registry import Device


class AlertType(Enum):
    ANOMALY = "anomaly"
    DRIFT = "drift"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Alert:
    """Immutable alert raised for a single telemetry event of a device."""

    id: str
    device_id: str
    device_name: str
    timestamp: str
    type: AlertType
    severity: Severity
    score: float
    drift_score: float
    message: str
    quarantined: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "severity": self.severity.value,
            "score": self.score,
            "drift_score": self.drift_score,
            "message": self.message,
            "quarantined": self.quarantined,
        }


class AlertPolicy:
    """Decides whether a processed sample results in an alert and at which severity.
    Since the policy is a pure function of its inputs, it can be called directly.
    """

    _logger: logging.Logger

    _drift_threshold: float
    _high_score: float
    _medium_score: float

    def __init__(
        self,
        drift_threshold: float = 0.55,
        high_score: float = 0.80,
        medium_score: float = 0.60,
        name: str = "AlertPolicy",
        log_level: int = None,
    ):
        """Creates a new alert policy.

        :param drift_threshold: Drift score from which drift alerts are raised.
        :param high_score: Anomaly score from which anomaly alerts are high severity.
        :param medium_score: Anomaly score from which anomaly alerts are medium
        severity.
        :param name: Name of policy for logging purposes.
        :param log_level: Logging level of policy.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        self._drift_threshold = drift_threshold
        self._high_score = high_score
        self._medium_score = medium_score

    def severity(
        self, score: float, drift_score: float, predicted_attack: bool
    ) -> Severity:
        if predicted_attack and score >= self._high_score:
            return Severity.HIGH
        if predicted_attack and score >= self._medium_score:
            return Severity.MEDIUM
        if drift_score >= self._drift_threshold:
            return Severity.MEDIUM
        return Severity.LOW

    def evaluate(
        self,
        device: "Device",
        score: float,
        drift_score: float,
        predicted_attack: bool,
        timestamp: str,
    ) -> Alert | None:
        """Evaluates a processed sample of a device.

        :param device: Device that reported the sample.
        :param score: Anomaly score of the sample.
        :param drift_score: Current drift score of the device.
        :param predicted_attack: Whether the sample was predicted to be an attack.
        :param timestamp: ISO timestamp of the sample.
        :return: New alert, None if no alert condition holds.
        """
        is_drift_alert = drift_score >= self._drift_threshold
        if not predicted_attack and not is_drift_alert:
            return None

        if predicted_attack:
            alert_type = AlertType.ANOMALY
            message = f"Anomaly detected (score={score:.2f} > threshold)."
        else:
            alert_type = AlertType.DRIFT
            message = f"Concept drift detected (driftScore={drift_score:.2f})."

        alert = Alert(
            id=uuid4().hex[:16],
            device_id=device.id,
            device_name=device.name,
            timestamp=timestamp,
            type=alert_type,
            severity=self.severity(score, drift_score, predicted_attack),
            score=round(score, 3),
            drift_score=round(drift_score, 3),
            message=message,
            quarantined=device.quarantined,
        )
        self._logger.debug(f"Alert raised for {device.name}: {alert}")
        return alert

    def __call__(self, *args, **kwargs) -> Alert | None:
        return self.evaluate(*args, **kwargs)
