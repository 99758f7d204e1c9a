# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Detection components applied to every processed telemetry sample:

    * AnomalyScorer - Fixed-reference multivariate distance plus dynamic threshold.
    * DriftTracker - Sliding window vs. frozen baseline drift estimation per device.
    * FeatureStats - Mean and standard deviation of a single feature.
    * BENIGN_BASELINE - The fixed benign reference of the anomaly scorer.
"""

__all__ = ["AnomalyScorer", "BENIGN_BASELINE", "DriftTracker", "FeatureStats"]

from .anomaly_scorer import BENIGN_BASELINE, AnomalyScorer, FeatureStats
from .drift_tracker import DriftTracker
