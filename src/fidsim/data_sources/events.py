# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Labels and telemetry events. A telemetry event is the immutable record of a
single processed sample: the features of a device at a point in time, its ground
truth as known by the simulation, and the detector's verdict on it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Self
from uuid import uuid4

from .telemetry import FeatureVector


class Label(Enum):
    """Binary class of a sample, both for ground truth and predictions."""

    NORMAL = "Normal"
    ATTACK = "Attack"

    @classmethod
    def coerce(cls, value) -> Self:
        """Accepts labels, their names, or booleans (True meaning attack).

        :param value: Label-like value.
        :return: Matching label.
        :raises ValueError: If the value cannot be interpreted as label.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, (bool, int)):
            return cls.ATTACK if value else cls.NORMAL
        return cls(str(value).strip().capitalize())

    @property
    def is_attack(self) -> bool:
        return self is Label.ATTACK


@dataclass(frozen=True)
class TelemetryEvent:
    """Telemetry sample of a device after scoring. Score and threshold are stored
    rounded to three decimals, as reported to any observer.
    """

    id: str
    device_id: str
    device_name: str
    timestamp: str
    features: FeatureVector
    true_label: Label
    predicted: Label
    score: float
    threshold: float

    @classmethod
    def create(
        cls,
        device_id: str,
        device_name: str,
        timestamp: str,
        features: FeatureVector,
        true_label: Label,
        predicted: Label,
        score: float,
        threshold: float,
    ) -> Self:
        """Creates a new telemetry event with a fresh identifier.

        :param device_id: Identifier of the reporting device.
        :param device_name: Name of the reporting device.
        :param timestamp: ISO timestamp of the sample.
        :param features: Feature vector of the sample.
        :param true_label: Ground truth of the sample.
        :param predicted: Detector verdict of the sample.
        :param score: Anomaly score of the sample.
        :param threshold: Threshold the score was compared against.
        :return: Telemetry event.
        """
        return cls(
            id=uuid4().hex,
            device_id=device_id,
            device_name=device_name,
            timestamp=timestamp,
            features=features,
            true_label=true_label,
            predicted=predicted,
            score=round(score, 3),
            threshold=round(threshold, 3),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "timestamp": self.timestamp,
            "features": self.features.to_dict(),
            "true_label": self.true_label.value,
            "predicted": self.predicted.value,
            "score": self.score,
            "threshold": self.threshold,
        }
