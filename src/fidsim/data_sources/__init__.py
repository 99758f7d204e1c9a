# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Origin of any data point processed by the simulation. Since there is no real
device to measure, every data point is synthesized:

    * TelemetrySynthesizer - Draws benign and attack feature vectors.
    * FeatureVector - Single observation (packet rate, failed auths, bytes out).
    * AttackType - Attack families that can be emulated.
    * Label - Binary class of a sample (Normal/Attack).
    * TelemetryEvent - Immutable record of a scored sample.
"""

__all__ = [
    "FEATURE_NAMES",
    "AttackType",
    "FeatureVector",
    "TelemetrySynthesizer",
    "Label",
    "TelemetryEvent",
]

from .events import Label, TelemetryEvent
from .telemetry import FEATURE_NAMES, AttackType, FeatureVector, TelemetrySynthesizer
