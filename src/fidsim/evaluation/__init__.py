# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Toolbox for the evaluation of the (simulated) intrusion detection:

    * ConfusionMatrixEvaluation - Evaluator that accumulates the confusion matrix
    of all processed samples and derives precision, recall, f1, and false positive
    rate from it.
"""

__all__ = ["ConfusionMatrixEvaluation"]

from .confusion_matrix import ConfusionMatrixEvaluation
