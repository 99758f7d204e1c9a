# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Core of the simulation, tying all other components together:

    * SimulationEngine - Owner of all state, control/query facade and processing
    pipeline.
    * SimulationScheduler - Periodic (or synchronous) driver of simulation ticks.
    * Environment - Attack and drift conditions of the simulation.
    * TimeSeries - Bounded metric history.
    * TickResult - Outcome of processing a single sample.
"""

__all__ = [
    "Environment",
    "SimulationEngine",
    "SimulationScheduler",
    "TickResult",
    "TimeSeries",
]

from .engine import Environment, SimulationEngine, TickResult, TimeSeries
from .scheduler import SimulationScheduler
