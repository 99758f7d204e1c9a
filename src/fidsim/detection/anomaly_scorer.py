# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Stateless anomaly scoring of feature vectors. The score is the multivariate
distance of a sample to a fixed benign reference (per-feature mean and standard
deviation), which is combined with a threshold that grows with the known concept
drift to derive a predicted label.

Note the reference is never adapted, i.e. the detector cannot learn. This keeps the
scoring reproducible for any given sample and is a deliberate simplification.
"""

import logging
from dataclasses import dataclass

import numpy as np

from fidsim.data_sources import FEATURE_NAMES, FeatureVector, Label
from fidsim.utils import clamp


@dataclass(frozen=True)
class FeatureStats:
    """Mean and standard deviation of a single feature."""

    mean: float
    std: float

    def to_dict(self) -> dict[str, float]:
        return {"mean": self.mean, "std": self.std}


BENIGN_BASELINE = {
    "packets_per_sec": FeatureStats(mean=200.0, std=40.0),
    "failed_auth": FeatureStats(mean=0.5, std=0.7),
    "bytes_out": FeatureStats(mean=25000.0, std=8000.0),
}


class AnomalyScorer:
    """Maps feature vectors to anomaly scores within [0, 1], by computing the
    z-score of each feature against the benign reference, combining them via the
    euclidean norm and normalizing the distance. A sample is predicted to be an
    attack iff its score exceeds the dynamic threshold for the current drift level.
    """

    _logger: logging.Logger

    _means: np.ndarray
    _stds: np.ndarray
    _normalizer: float

    _base_threshold: float
    _drift_gain: float
    _min_threshold: float
    _max_threshold: float

    def __init__(
        self,
        baseline: dict[str, FeatureStats] = None,
        normalizer: float = 4.0,
        base_threshold: float = 0.55,
        drift_gain: float = 0.15,
        min_threshold: float = 0.45,
        max_threshold: float = 0.85,
        name: str = "AnomalyScorer",
        log_level: int = None,
    ):
        """Creates a new anomaly scorer.

        :param baseline: Benign reference per feature. Defaults to BENIGN_BASELINE.
        :param normalizer: Distance that corresponds to the maximum score of 1.
        :param base_threshold: Threshold without any drift.
        :param drift_gain: Increase of threshold per unit of drift.
        :param min_threshold: Lower bound of threshold.
        :param max_threshold: Upper bound of threshold.
        :param name: Name of scorer for logging purposes.
        :param log_level: Logging level of scorer.
        :raises ValueError: If the baseline is incomplete or has negative deviations.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        if baseline is None:
            baseline = BENIGN_BASELINE
        missing = [f for f in FEATURE_NAMES if f not in baseline]
        if missing:
            raise ValueError(f"Baseline is missing features: {missing}")
        if any(baseline[f].std < 0 for f in FEATURE_NAMES):
            raise ValueError("Baseline standard deviations must not be negative!")
        if normalizer <= 0:
            raise ValueError("Normalizer must be positive!")

        self._means = np.array([baseline[f].mean for f in FEATURE_NAMES], dtype=float)
        # zero deviations would blow up the z-scores
        self._stds = np.array(
            [baseline[f].std or 1e-6 for f in FEATURE_NAMES], dtype=float
        )
        self._normalizer = normalizer

        self._base_threshold = base_threshold
        self._drift_gain = drift_gain
        self._min_threshold = min_threshold
        self._max_threshold = max_threshold

    def score(self, features: FeatureVector) -> float:
        """Computes the anomaly score of a sample.

        :param features: Feature vector to score.
        :return: Anomaly score within [0, 1].
        """
        z = (features.as_array() - self._means) / self._stds
        return clamp(float(np.linalg.norm(z)) / self._normalizer, 0.0, 1.0)

    def threshold(self, drift_level: float) -> float:
        """Computes the dynamic threshold, raised under drift to tolerate the known
        shift of the benign distribution.

        :param drift_level: Concept drift within [0, 1].
        :return: Threshold within [min_threshold, max_threshold].
        """
        return clamp(
            self._base_threshold + drift_level * self._drift_gain,
            self._min_threshold,
            self._max_threshold,
        )

    def predict(
        self, features: FeatureVector, drift_level: float
    ) -> tuple[float, float, Label]:
        """Scores a sample and derives its predicted label.

        :param features: Feature vector to score.
        :param drift_level: Concept drift within [0, 1].
        :return: Tuple of score, threshold, and predicted label.
        """
        score = self.score(features)
        threshold = self.threshold(drift_level)
        predicted = Label.ATTACK if score > threshold else Label.NORMAL
        self._logger.debug(
            f"Scored sample {features}: score={score:.3f}, "
            f"threshold={threshold:.3f} -> {predicted.value}"
        )
        return score, threshold, predicted
