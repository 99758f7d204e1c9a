# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Stand-in for the global model of a federated IDS. There is no actual model and
no actual aggregation: the tracker only counts aggregation rounds and keeps an
accuracy value that is nudged with every round and drifts towards a target that
depends on whether an attack is active. It exists to give observers a plausible
federated learning signal to display.
"""

import logging

import numpy as np

from fidsim.utils import clamp


class GlobalModelTracker:
    """Round counter with an accuracy value bounded to [min_accuracy, max_accuracy].

    Every federated round perturbs the accuracy slightly at random; every simulation
    tick exponentially smooths it towards target + offset (no attack) or
    target - offset (attack active).
    """

    _logger: logging.Logger
    _rng: np.random.Generator

    _round: int
    _accuracy: float

    _initial_accuracy: float
    _min_accuracy: float
    _max_accuracy: float
    _perturbation: float
    _smoothing: float
    _target: float
    _target_offset: float

    def __init__(
        self,
        rng: np.random.Generator = None,
        initial_accuracy: float = 0.92,
        min_accuracy: float = 0.70,
        max_accuracy: float = 0.99,
        perturbation: float = 0.01,
        smoothing: float = 0.02,
        target: float = 0.90,
        target_offset: float = 0.05,
        name: str = "GlobalModelTracker",
        log_level: int = None,
    ):
        """Creates a new global model tracker at round 1.

        :param rng: Random source for round perturbations.
        :param initial_accuracy: Accuracy at round 1 and after every reset.
        :param min_accuracy: Lower bound of accuracy.
        :param max_accuracy: Upper bound of accuracy.
        :param perturbation: Width of the uniform perturbation of each round.
        :param smoothing: Smoothing factor of the per-tick update.
        :param target: Center of the per-tick target accuracy.
        :param target_offset: Distance of the per-tick targets from the center.
        :param name: Name of tracker for logging purposes.
        :param log_level: Logging level of tracker.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        self._rng = rng if rng is not None else np.random.default_rng()
        self._initial_accuracy = initial_accuracy
        self._min_accuracy = min_accuracy
        self._max_accuracy = max_accuracy
        self._perturbation = perturbation
        self._smoothing = smoothing
        self._target = target
        self._target_offset = target_offset
        self.reset()

    @property
    def round(self) -> int:
        return self._round

    @property
    def accuracy(self) -> float:
        return self._accuracy

    def advance_round(self) -> dict:
        """Performs a (toy) federated round: increments the round counter and
        perturbs the accuracy.

        :return: State of the global model after the round.
        """
        self._round += 1
        delta = (self._rng.random() - 0.5) * self._perturbation
        self._accuracy = clamp(
            self._accuracy + delta, self._min_accuracy, self._max_accuracy
        )
        self._logger.info(
            f"Federated round {self._round} completed "
            f"(accuracy={self._accuracy:.4f})."
        )
        return self.to_dict()

    def smooth(self, attack_active: bool) -> float:
        """Moves the accuracy a step towards its target for the current conditions.

        :param attack_active: Whether an attack type is configured.
        :return: New accuracy.
        """
        if attack_active:
            target = self._target - self._target_offset
        else:
            target = self._target + self._target_offset
        self._accuracy = clamp(
            self._accuracy + (target - self._accuracy) * self._smoothing,
            self._min_accuracy,
            self._max_accuracy,
        )
        return self._accuracy

    def reset(self):
        self._round = 1
        self._accuracy = self._initial_accuracy

    def to_dict(self) -> dict:
        return {"round": self._round, "accuracy": self._accuracy}
