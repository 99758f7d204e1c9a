# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Concept drift estimation for individual devices, by comparing the statistics of
a device's most recent telemetry (its sliding window) against a reference of its
"day-1 normal" behavior (its baseline). The baseline is captured lazily, once,
when enough samples have been seen, and is frozen afterward. The growing gap
between the sliding window and the static baseline is the drift signal.
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

from fidsim.data_sources import FEATURE_NAMES, TelemetryEvent
from fidsim.utils import clamp
from .anomaly_scorer import FeatureStats

if TYPE_CHECKING:
    from fidsim.registry import Device


class DriftTracker:
    """Estimates a drift score within [0, 1] from a device's window of telemetry
    events. With too few samples, the last known drift score of the device is kept.
    Otherwise, the drift score is the average deviation of the window means to the
    baseline means (in baseline standard deviations) over all features, normalized.
    """

    _logger: logging.Logger

    _min_samples: int
    _baseline_samples: int
    _normalizer: float
    _default_drift: float

    def __init__(
        self,
        min_samples: int = 30,
        baseline_samples: int = 60,
        normalizer: float = 3.0,
        default_drift: float = 0.05,
        name: str = "DriftTracker",
        log_level: int = None,
    ):
        """Creates a new drift tracker.

        :param min_samples: Minimum window length before any drift is computed.
        :param baseline_samples: Window length at which the baseline is captured.
        :param normalizer: Average deviation that corresponds to a drift of 1.
        :param default_drift: Drift score of a device without any known drift.
        :param name: Name of tracker for logging purposes.
        :param log_level: Logging level of tracker.
        :raises ValueError: If the sample counts are inconsistent.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        if min_samples < 1 or baseline_samples < min_samples:
            raise ValueError(
                "Drift tracking requires 1 <= min_samples <= baseline_samples!"
            )
        self._min_samples = min_samples
        self._baseline_samples = baseline_samples
        self._normalizer = normalizer
        self._default_drift = default_drift

    @property
    def default_drift(self) -> float:
        return self._default_drift

    @staticmethod
    def window_stats(window: Sequence[TelemetryEvent]) -> dict[str, FeatureStats]:
        """Computes mean and (population) standard deviation of each feature over a
        window of events. Zero deviations are replaced by 1.

        :param window: Non-empty sequence of telemetry events.
        :return: Statistics per feature.
        """
        values = np.array([e.features.as_array() for e in window], dtype=float)
        means = values.mean(axis=0)
        stds = values.std(axis=0)
        return {
            f: FeatureStats(mean=float(means[i]), std=float(stds[i]) or 1.0)
            for i, f in enumerate(FEATURE_NAMES)
        }

    def drift(
        self, recent: dict[str, FeatureStats], baseline: dict[str, FeatureStats]
    ) -> float:
        """Computes the drift score of recent statistics against a baseline.

        :param recent: Statistics of the current window.
        :param baseline: Frozen statistics of the baseline.
        :return: Drift score within [0, 1].
        """
        deviation = np.mean(
            [
                abs(recent[f].mean - baseline[f].mean) / (baseline[f].std or 1.0)
                for f in FEATURE_NAMES
            ]
        )
        return clamp(float(deviation) / self._normalizer, 0.0, 1.0)

    def update(self, device: "Device") -> float:
        """Updates the drift score of a device from its current window, capturing
        its baseline if the window has grown large enough for the first time.

        :param device: Device whose window has already been extended by the latest
        telemetry event.
        :return: New drift score of the device.
        """
        last = device.drift_score
        if last is None:
            last = self._default_drift
        if len(device.window) < self._min_samples:
            return last

        recent = self.window_stats(device.window)
        if device.baseline is None and len(device.window) >= self._baseline_samples:
            self._logger.info(
                f"Capturing drift baseline of device {device.name} ({device.id}) "
                f"after {len(device.window)} samples."
            )
            device.baseline = recent
        if device.baseline is None:
            return last

        device.drift_score = self.drift(recent, device.baseline)
        return device.drift_score
