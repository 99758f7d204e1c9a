# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Pre-configured simulation server, running a fleet of simulated IoT devices under
the given attack and drift conditions. By default, the simulation runs in real time
(one tick per interval) until stopped, optionally forwarding all its events to an
external dashboard server. Alternatively, a fixed number of ticks can be run as
fast as possible, printing the final overview of the simulation afterwards, e.g.
to evaluate the detection under certain conditions.

Note that the dashboard does not have to be up for the server to run; events that
cannot be delivered are simply dropped.
"""

import argparse
import json
import logging

from fidsim.data_sources import AttackType
from fidsim.simulation import SimulationEngine


def _parse_args() -> argparse.Namespace:
    """Creates a parser for the server arguments and parses them.

    :return: Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description=__doc__, formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--debug", type=bool, default=False, metavar="", help="Show debug outputs"
    )

    sim_options = parser.add_argument_group("Simulation Options")
    sim_options.add_argument(
        "--interval",
        type=int,
        default=800,
        metavar="",
        help="Interval between two simulation ticks (ms)",
    )
    sim_options.add_argument(
        "--devices",
        type=int,
        default=3,
        metavar="",
        help="Number of simulated devices",
    )
    sim_options.add_argument(
        "--seed",
        type=int,
        default=None,
        metavar="",
        help="Seed of the random source, for reproducible runs",
    )
    sim_options.add_argument(
        "--ticks",
        type=int,
        default=None,
        metavar="",
        help="Number of ticks to run at once instead of running in real time",
    )

    env_options = parser.add_argument_group("Environment Options")
    env_options.add_argument(
        "--attackType",
        type=str,
        choices=[a.value for a in AttackType],
        default=AttackType.NONE.value,
        metavar="",
        help="Attack family to emulate",
    )
    env_options.add_argument(
        "--attackLevel",
        type=float,
        default=0.0,
        metavar="",
        help="Attack intensity within [0, 1]",
    )
    env_options.add_argument(
        "--driftLevel",
        type=float,
        default=0.0,
        metavar="",
        help="Concept drift of benign traffic within [0, 1]",
    )

    dashboard_options = parser.add_argument_group("Dashboard Options")
    dashboard_options.add_argument(
        "--dashboardURL",
        default=None,
        metavar="",
        help="IP or hostname of (external) dashboard server",
    )
    dashboard_options.add_argument(
        "--dashboardPort",
        type=int,
        default=8000,
        choices=range(1, 65535),
        metavar="",
        help="Port of (external) dashboard server",
    )

    return parser.parse_args()


def create_server():
    """Creates and runs a pre-configured simulation server.
    Entry point of this module's functionality.

    See the header doc string of this module for more details about the preset
    configuration.
    """
    # Args parsing
    args = _parse_args()
    if args.debug:
        logging.basicConfig(
            format="%(asctime)s %(levelname)-8s %(name)-10s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            level=logging.DEBUG,
        )
    else:
        logging.basicConfig(
            format="%(asctime)s %(levelname)-8s %(name)-10s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            level=logging.INFO,
        )

    with SimulationEngine(
        seed=args.seed,
        default_devices=args.devices,
        interval_ms=args.interval,
        dashboard_url=args.dashboardURL,
        dashboard_port=args.dashboardPort,
    ) as engine:
        engine.set_attack(args.attackType, args.attackLevel)
        engine.set_drift(args.driftLevel)

        if args.ticks is not None:
            engine.seed_devices()
            engine.run_ticks(args.ticks)
            print(json.dumps(engine.get_overview(), indent=2))
            return

        engine.start(args.interval)
        input("Press Enter to stop server...")
        engine.stop()


if __name__ == "__main__":
    create_server()
