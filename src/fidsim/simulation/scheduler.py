# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Periodic driver of the simulation. Every tick selects the devices that report
telemetry in it, draws the ground truth of each sample, and has the engine run the
processing pipeline (synthesize, score, track, record, alert) for each of them.

Ticks run in a background daemon thread while the scheduler is started, but can
also be run synchronously, e.g. for batch simulations or tests. Either way, a tick
holds the engine lock for its entire duration, so ticks never interleave with each
other or with control operations on the engine.
"""

import logging
import threading
from typing import TYPE_CHECKING

import numpy as np

from fidsim.data_sources import AttackType, Label
from fidsim.registry import Device
from fidsim.utils import clamp

if TYPE_CHECKING:
    from .engine import Environment, SimulationEngine, TickResult


class SimulationScheduler:
    """Timer-driven tick loop over the engine. Normally a single device reports per
    tick; under a DDoS up to max_ddos_devices distinct devices report at once,
    simulating distributed load. Only devices that are not quarantined are selected.

    The probability of a sample being an attack grows with attack and drift level,
    while no attack samples are drawn at all if no attack type is configured.
    """

    _logger: logging.Logger

    _engine: "SimulationEngine"
    _rng: np.random.Generator

    _interval_ms: int
    _max_ddos_devices: int
    _attack_base: float
    _attack_gain: float
    _drift_gain: float
    _attack_cap: float

    _ticker: threading.Thread | None
    _stop_event: threading.Event
    _s_lock: threading.Lock

    def __init__(
        self,
        engine: "SimulationEngine",
        rng: np.random.Generator = None,
        interval_ms: int = 800,
        max_ddos_devices: int = 3,
        attack_base: float = 0.03,
        attack_gain: float = 0.55,
        drift_gain: float = 0.15,
        attack_cap: float = 0.95,
        name: str = "SimulationScheduler",
        log_level: int = None,
    ):
        """Creates a new, stopped scheduler.

        :param engine: Engine that owns the simulation state and runs the pipeline.
        :param rng: Random source for device selection and ground truth.
        :param interval_ms: Default tick interval in milliseconds.
        :param max_ddos_devices: Maximum number of devices per tick under DDoS.
        :param attack_base: Attack probability without attack and drift level.
        :param attack_gain: Increase of attack probability per unit of attack level.
        :param drift_gain: Increase of attack probability per unit of drift level.
        :param attack_cap: Upper bound of attack probability.
        :param name: Name of scheduler for logging purposes.
        :param log_level: Logging level of scheduler.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        self._engine = engine
        self._rng = rng if rng is not None else np.random.default_rng()

        self._interval_ms = interval_ms
        self._max_ddos_devices = max_ddos_devices
        self._attack_base = attack_base
        self._attack_gain = attack_gain
        self._drift_gain = drift_gain
        self._attack_cap = attack_cap

        self._ticker = None
        self._stop_event = threading.Event()
        self._s_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._ticker is not None

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def start(self, interval_ms: int = None) -> bool:
        """Starts the tick loop as daemon thread. Starting a running scheduler is a
        no-op.

        :param interval_ms: Tick interval in milliseconds. Keeps the current one if
        not given.
        :return: Whether the scheduler was started by this call.
        """
        with self._s_lock:
            if self._ticker is not None:
                self._logger.info("Scheduler already running.")
                return False
            if interval_ms is not None:
                self._interval_ms = interval_ms
            self._logger.info(
                f"Starting scheduler (interval: {self._interval_ms}ms)..."
            )
            # every ticker gets its own event, so a restart never revives an old one
            self._stop_event = threading.Event()
            self._ticker = threading.Thread(
                target=self._create_ticker, args=(self._stop_event,), daemon=True
            )
            self._ticker.start()
            self._logger.info("Scheduler started.")
            return True

    def stop(self) -> bool:
        """Stops the tick loop without waiting for the ticker thread. If called
        while holding the engine lock (as the engine does), a tick in progress has
        already completed and no further tick runs once the lock is released.
        Stopping a stopped scheduler is a no-op.

        :return: Whether the scheduler was stopped by this call.
        """
        with self._s_lock:
            if self._ticker is None:
                return False
            self._logger.info("Stopping scheduler...")
            self._stop_event.set()
            self._ticker = None
            self._logger.info("Scheduler stopped.")
            return True

    def _create_ticker(self, stop_event: threading.Event):
        """Tick loop, running one tick per interval until the stop event is set.

        :param stop_event: Event of this ticker that signals it to stop.
        """
        self._logger.info("Ticker: Starting...")
        while not stop_event.wait(self._interval_ms / 1000):
            with self._engine.lock:
                # stop may have been requested while waiting for the lock
                if stop_event.is_set():
                    break
                self.tick()
        self._logger.info("Ticker: Stopped.")

    def tick(self) -> list["TickResult"]:
        """Runs a single tick: selects the reporting devices and processes one sample
        for each. Skipped if there is no active device.

        :return: Results of all processed samples.
        """
        with self._engine.lock:
            env = self._engine.environment
            devices = self.select_devices(
                self._engine.registry.active(), env.attack_type
            )
            if not devices:
                self._logger.debug("No active devices, skipping tick.")
                return []

            results = []
            for device in devices:
                true_label = self.draw_label(env)
                if true_label is Label.ATTACK:
                    features = self._engine.synthesizer.synthesize(
                        env.drift_level, env.attack_type, env.attack_level
                    )
                else:
                    features = self._engine.synthesizer.synthesize(env.drift_level)
                result = self._engine.process_telemetry(device, features, true_label)
                if result is not None:
                    results.append(result)
            self._engine.complete_tick()
            return results

    def run_ticks(self, n: int) -> list["TickResult"]:
        """Runs a number of ticks synchronously, back to back.

        :param n: Number of ticks.
        :return: Results of all processed samples over all ticks.
        """
        results = []
        for _ in range(n):
            results.extend(self.tick())
        return results

    def select_devices(
        self, devices: list[Device], attack_type: AttackType
    ) -> list[Device]:
        """Selects the distinct devices reporting in a tick.

        :param devices: Candidate (non-quarantined) devices.
        :param attack_type: Currently configured attack type.
        :return: Selected devices, empty if there are no candidates.
        """
        if not devices:
            return []
        n = 1
        if attack_type is AttackType.DDOS:
            n = min(self._max_ddos_devices, len(devices))
        indices = self._rng.choice(len(devices), size=n, replace=False)
        return [devices[i] for i in indices]

    def attack_probability(self, attack_level: float, drift_level: float) -> float:
        return clamp(
            self._attack_base
            + attack_level * self._attack_gain
            + drift_level * self._drift_gain,
            0.0,
            self._attack_cap,
        )

    def draw_label(self, env: "Environment") -> Label:
        """Draws the ground truth of a sample under the given environment.

        :param env: Current environment.
        :return: Attack with the attack probability, Normal otherwise. Always Normal
        if no attack type is configured.
        """
        if env.attack_type is AttackType.NONE:
            return Label.NORMAL
        if self._rng.random() < self.attack_probability(
            env.attack_level, env.drift_level
        ):
            return Label.ATTACK
        return Label.NORMAL
