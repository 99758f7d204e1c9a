# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Federated learning as seen by the simulation. No model is trained or aggregated;
the package merely provides a tracker of a global model's round and accuracy:

    * GlobalModelTracker - Round counter and smoothed accuracy value.
"""

__all__ = ["GlobalModelTracker"]

from .global_model import GlobalModelTracker
