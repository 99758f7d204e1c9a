# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Collection of executable scripts to start up the simulation, pre-configured by
the respective script for ease of use and demonstration purposes. Alternatively one
can also launch these scripts directly via the command line.

Currently, the following scripts are provided:

    * simulation_server - Simulation of an IoT fleet, in real time or in batch.
"""

__all__ = ["simulation_server"]

from .simulation_server import create_server as simulation_server
