# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Synthetic telemetry of IoT devices, the only observable signal of the simulation.
Each sample is a three-dimensional feature vector (packet rate, failed
authentications, outgoing bytes) that is either drawn from a benign distribution,
whose mean and spread move upwards with the configured concept drift, or from one
of several attack families, which amplify the features relevant to the attack on
top of a benign sample.

Note that benign and attack samples intentionally overlap in parts, so that any
detector working on them keeps a non-trivial confusion matrix.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Self

import numpy as np

from fidsim.utils import clamp

FEATURE_NAMES = ("packets_per_sec", "failed_auth", "bytes_out")


class AttackType(Enum):
    """Attack families the synthesizer is able to emulate. NONE disables attack
    samples entirely, GENERIC is used for anything unknown.
    """

    NONE = "none"
    PORT_SCAN = "port_scan"
    BRUTEFORCE = "bruteforce"
    DDOS = "ddos"
    EXFILTRATION = "exfiltration"
    GENERIC = "generic"

    @classmethod
    def coerce(cls, value) -> Self:
        """Maps any control input onto an attack type, never failing: missing or
        empty values disable attacks, unknown names fall back to a generic attack.

        :param value: Attack type, its name, or None.
        :return: Matching attack type.
        """
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERIC


@dataclass(frozen=True)
class FeatureVector:
    """Single synthetic telemetry observation of a device."""

    packets_per_sec: float
    failed_auth: float
    bytes_out: float

    def as_array(self) -> np.ndarray:
        return np.array(
            [self.packets_per_sec, self.failed_auth, self.bytes_out], dtype=float
        )

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


class TelemetrySynthesizer:
    """Generator for benign and attack feature vectors. All randomness is drawn
    from the given numpy generator, so that a seeded generator results in a
    reproducible stream of samples. Gaussian noise is produced via the Box-Muller
    transform from two independent uniform samples.

    Every output is clamped into a plausible range of its feature, benign samples
    into the benign ranges, attack samples into separate (higher) ranges for each
    attack family.
    """

    _logger: logging.Logger
    _rng: np.random.Generator

    def __init__(
        self,
        rng: np.random.Generator = None,
        name: str = "TelemetrySynthesizer",
        log_level: int = None,
    ):
        """Creates a new telemetry synthesizer.

        :param rng: Random source to draw samples from. Defaults to an unseeded one.
        :param name: Name of synthesizer for logging purposes.
        :param log_level: Logging level of synthesizer.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        self._rng = rng if rng is not None else np.random.default_rng()

    def randn(self) -> float:
        """Draws a standard normal sample using the Box-Muller transform.

        :return: Sample of N(0, 1).
        """
        u = 1.0 - self._rng.random()
        v = 1.0 - self._rng.random()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def benign(self, drift_level: float) -> FeatureVector:
        """Draws a benign sample. Drift shifts the means and widens the spread of
        all features, simulating non-adversarial changes in the device's behavior.

        :param drift_level: Concept drift within [0, 1].
        :return: Benign feature vector.
        """
        drift_boost = 1 + drift_level * 0.8

        packets = 200 * drift_boost + self.randn() * (40 + drift_level * 25)
        failed = max(0.0, 0.5 + self.randn() * (0.7 + drift_level * 0.4))
        bytes_out = max(
            0.0, 25000 * drift_boost + self.randn() * (8000 + drift_level * 6000)
        )

        return FeatureVector(
            packets_per_sec=float(round(clamp(packets, 20, 1400))),
            failed_auth=round(clamp(failed, 0, 80), 1),
            bytes_out=float(round(clamp(bytes_out, 1000, 400000))),
        )

    def attack(
        self, attack_type: AttackType, intensity: float, drift_level: float
    ) -> FeatureVector:
        """Draws an attack sample by amplifying the features of a benign sample that
        are relevant for the given attack family, scaled by the attack intensity.

        :param attack_type: Attack family to emulate. NONE is treated as GENERIC.
        :param intensity: Attack intensity within [0, 1].
        :param drift_level: Concept drift within [0, 1] of the underlying benign
        sample.
        :return: Attack feature vector.
        """
        base = self.benign(drift_level)
        k = 1 + intensity * 2.2
        packets, failed, bytes_out = (
            base.packets_per_sec,
            base.failed_auth,
            base.bytes_out,
        )

        match attack_type:
            case AttackType.PORT_SCAN:
                packets = clamp(packets * (1.5 * k), 80, 3500)
                failed = clamp(failed + self.randn() * 0.6, 0, 10)
            case AttackType.BRUTEFORCE:
                failed = clamp(failed + 6 * k + abs(self.randn()) * 3, 0, 120)
                packets = clamp(packets * (1.15 * k), 40, 2500)
            case AttackType.DDOS:
                packets = clamp(packets + 900 * k + abs(self.randn()) * 600, 250, 8000)
                bytes_out = clamp(
                    bytes_out + 70000 * k + abs(self.randn()) * 50000, 8000, 1200000
                )
            case AttackType.EXFILTRATION:
                bytes_out = clamp(
                    bytes_out + 150000 * k + abs(self.randn()) * 80000, 15000, 1500000
                )
                packets = clamp(packets * (1.2 * k), 50, 2600)
            case _:
                packets = clamp(packets * (1.35 * k), 60, 3500)
                failed = clamp(failed + 2 * k + abs(self.randn()), 0, 100)

        return FeatureVector(
            packets_per_sec=float(round(packets)),
            failed_auth=round(failed, 1),
            bytes_out=float(round(bytes_out)),
        )

    def synthesize(
        self,
        drift_level: float,
        attack_type: AttackType = AttackType.NONE,
        intensity: float = 0.0,
    ) -> FeatureVector:
        """Draws a single sample for the given conditions, benign if no attack type
        is set, of the attack family otherwise.

        :param drift_level: Concept drift within [0, 1].
        :param attack_type: Attack family, NONE for a benign sample.
        :param intensity: Attack intensity within [0, 1].
        :return: Feature vector.
        """
        if attack_type is AttackType.NONE:
            features = self.benign(drift_level)
        else:
            features = self.attack(attack_type, intensity, drift_level)
        self._logger.debug(
            f"Synthesized sample ({attack_type.value}, intensity={intensity}, "
            f"drift={drift_level}): {features}"
        )
        return features
