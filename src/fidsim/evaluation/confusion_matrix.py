# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Online evaluation of the detection quality of the entire fleet, accumulating
the confusion matrix of all true/predicted label pairs since the last reset and
deriving its scalar metrics after every update.
"""

import logging
from collections.abc import Iterable

from fidsim.data_sources import Label


def _divide_no_nan(x: float, y: float) -> float:
    return x / y if y != 0 else 0.0


class ConfusionMatrixEvaluation:
    """Evaluation metric that counts the confusion matrix over every predicted
    binary label to evaluate the detector's overall performance on them in
    point-wise manner. Counters are monotone; only reset_state() sets them back.

    Derived metrics (precision, recall, f1, false positive rate) are pure functions
    of the four counters and are zero whenever their denominator is zero.
    """

    _logger: logging.Logger

    _tp: int
    _fp: int
    _tn: int
    _fn: int

    _precision: float
    _recall: float
    _f1: float
    _fp_rate: float

    def __init__(self, name: str = "ConfMatrixEvaluation", log_level: int = None):
        """Creates a new confusion matrix evaluation metric.

        :param name: Name of metric for logging purposes.
        :param log_level: Logging level of metric.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)
        self.reset_state()

    def record(self, true_label: Label | bool, predicted_label: Label | bool):
        """Adds a single data point/pair to the confusion matrix and recomputes the
        derived metrics.

        :param true_label: True label of single input (label or attack flag).
        :param predicted_label: Predicted label of single input (label or attack
        flag).
        """
        self._update(
            Label.coerce(true_label).is_attack, Label.coerce(predicted_label).is_attack
        )
        self._recompute()

    def update_state(self, y_true: Iterable, y_pred: Iterable):
        """Adds a mini-batch of inputs to the confusion matrix.

        :param y_true: Sequence of true labels of inputs.
        :param y_pred: Sequence of predicted labels of inputs.
        """
        for t_label, p_label in zip(y_true, y_pred):
            self._update(
                Label.coerce(t_label).is_attack, Label.coerce(p_label).is_attack
            )
        self._recompute()

    def _update(self, t_label: bool, p_label: bool):
        """Increments exactly one cell of the confusion matrix.

        :param t_label: Whether the input is truly an attack.
        :param p_label: Whether the input is predicted to be an attack.
        """
        if t_label:
            if p_label:
                self._tp += 1
            else:
                self._fn += 1
        else:
            if not p_label:
                self._tn += 1
            else:
                self._fp += 1

    def _recompute(self):
        self._precision = _divide_no_nan(self._tp, self._tp + self._fp)
        self._recall = _divide_no_nan(self._tp, self._tp + self._fn)
        self._f1 = _divide_no_nan(2 * self._tp, 2 * self._tp + self._fp + self._fn)
        self._fp_rate = _divide_no_nan(self._fp, self._fp + self._tn)
        self._logger.debug(f"Confusion matrix updated: {self.result()}")

    def reset_state(self):
        """Zeroes the confusion matrix."""
        self._tp = 0
        self._fp = 0
        self._tn = 0
        self._fn = 0
        self._precision = 0.0
        self._recall = 0.0
        self._f1 = 0.0
        self._fp_rate = 0.0

    @property
    def total_events(self) -> int:
        return self._tp + self._fp + self._tn + self._fn

    @property
    def f1(self) -> float:
        return self._f1

    @property
    def fp_rate(self) -> float:
        return self._fp_rate

    def result(self) -> dict[str, int | float]:
        """Returns the accumulated confusion matrix and its derived metrics.

        :return: Dictionary of counters and derived scalar metrics.
        """
        return {
            "total_events": self.total_events,
            "tp": self._tp,
            "fp": self._fp,
            "tn": self._tn,
            "fn": self._fn,
            "precision": self._precision,
            "recall": self._recall,
            "f1": self._f1,
            "fp_rate": self._fp_rate,
        }
