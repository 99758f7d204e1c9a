# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""The simulation engine, i.e. the single owner of all simulation state (device
registry, environment, confusion statistics, global model, bounded histories) and
the facade every host (server, dashboard transport, tests) talks to. It offers:

    * Control operations - start/stop/reset of the scheduler, attack and drift
    configuration, (un-)quarantining of devices, federated rounds, and device
    registration. Invalid control input is coerced, never rejected.
    * Query operations - devices, overview, time series, snapshot, and the most
    recent telemetry events and alerts.
    * The processing pipeline - scoring, drift tracking, metrics recording, and
    alerting of a single telemetry sample, called by the scheduler for every
    selected device of a tick.
    * An event stream - any processed sample, raised alert, and state change is
    pushed to the attached observers.

Since control calls may arrive from any thread while the scheduler ticks in its own
thread, all of the above is serialized by a single reentrant lock.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field

import numpy as np

from fidsim.alerting import Alert, AlertPolicy
from fidsim.data_sources import (
    AttackType,
    FeatureVector,
    Label,
    TelemetryEvent,
    TelemetrySynthesizer,
)
from fidsim.detection import AnomalyScorer, DriftTracker
from fidsim.evaluation import ConfusionMatrixEvaluation
from fidsim.federated_learning import GlobalModelTracker
from fidsim.registry import DEFAULT_FLEET, Device, DeviceRegistry
from fidsim.streaming import (
    DashboardForwarder,
    EventStream,
    Observer,
    StreamEventType,
)
from fidsim.utils import clamp, coerce_level, now_iso, now_ms

from .scheduler import SimulationScheduler


@dataclass
class Environment:
    """Simulation conditions, mutated by control operations only."""

    simulator_running: bool = False
    attack_type: AttackType = AttackType.NONE
    attack_level: float = 0.0
    drift_level: float = 0.0

    def to_dict(self) -> dict:
        return {
            "simulator_running": self.simulator_running,
            "attack_type": self.attack_type.value,
            "attack_level": self.attack_level,
            "drift_level": self.drift_level,
        }


class TimeSeries:
    """Bounded, parallel sequences of metric points over time, e.g. for plotting.
    The time axis (t) is in epoch milliseconds.
    """

    FIELDS = ("t", "f1", "fp_rate", "global_accuracy", "attack_level", "drift_level")

    _series: dict[str, deque]

    def __init__(self, max_len: int = 250):
        self._series = {f: deque(maxlen=max_len) for f in self.FIELDS}

    def append(self, **point):
        """Appends a point to all sequences at once.

        :param point: Value of each of the fields.
        :raises ValueError: If a field is missing or unknown.
        """
        if set(point) != set(self.FIELDS):
            raise ValueError(f"Time series point must consist of {self.FIELDS}!")
        for f, value in point.items():
            self._series[f].append(value)

    def clear(self):
        for series in self._series.values():
            series.clear()

    def to_dict(self) -> dict[str, list]:
        return {f: list(series) for f, series in self._series.items()}

    def __len__(self) -> int:
        return len(self._series["t"])


@dataclass(frozen=True)
class TickResult:
    """Outcome of processing a single telemetry sample of a device."""

    event: TelemetryEvent
    alert: Alert | None
    device: dict = field(default_factory=dict)


class SimulationEngine:
    """Owner of the simulation state and facade of all its operations. Can be used
    as context manager, stopping the scheduler (and the dashboard forwarder) on
    exit.
    """

    _logger: logging.Logger
    _lock: threading.RLock
    _rng: np.random.Generator

    _environment: Environment
    _registry: DeviceRegistry
    _synthesizer: TelemetrySynthesizer
    _scorer: AnomalyScorer
    _drift_tracker: DriftTracker
    _evaluation: ConfusionMatrixEvaluation
    _alert_policy: AlertPolicy
    _global_model: GlobalModelTracker
    _scheduler: SimulationScheduler

    _telemetry: deque[TelemetryEvent]
    _alerts: deque[Alert]
    _time_series: TimeSeries
    _timeseries_every: int
    _default_devices: int
    _default_interval: int

    _stream: EventStream
    _forwarder: DashboardForwarder | None

    def __init__(
        self,
        seed: int = None,
        rng: np.random.Generator = None,
        default_devices: int = len(DEFAULT_FLEET),
        interval_ms: int = 800,
        window_size: int = 200,
        telemetry_size: int = 600,
        alert_size: int = 400,
        timeseries_size: int = 250,
        timeseries_every: int = 10,
        dashboard_url: str = None,
        dashboard_port: int = 8000,
        name: str = "SimulationEngine",
        log_level: int = None,
    ):
        """Creates a new engine with an empty registry and a stopped scheduler.

        :param seed: Seed of the random source, if none is given.
        :param rng: Random source shared by all stochastic components.
        :param default_devices: Number of devices seeded when starting with an empty
        registry.
        :param interval_ms: Default tick interval in milliseconds.
        :param window_size: Capacity of each device's telemetry window.
        :param telemetry_size: Capacity of the global telemetry log.
        :param alert_size: Capacity of the global alert log.
        :param timeseries_size: Capacity of the metric time series.
        :param timeseries_every: Number of processed events between two time series
        points.
        :param dashboard_url: IP or hostname of a dashboard to forward events to.
        Events are not forwarded if not given.
        :param dashboard_port: Port of the dashboard.
        :param name: Name of engine for logging purposes.
        :param log_level: Logging level of engine and all its components.
        :raises ValueError: If a capacity is not positive.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)
        self._logger.info("Initializing simulation engine...")

        if min(telemetry_size, alert_size, timeseries_size, timeseries_every) < 1:
            raise ValueError("History capacities must be positive!")

        self._lock = threading.RLock()
        self._rng = rng if rng is not None else np.random.default_rng(seed)

        self._environment = Environment()
        self._registry = DeviceRegistry(window_size=window_size, log_level=log_level)
        self._synthesizer = TelemetrySynthesizer(rng=self._rng, log_level=log_level)
        self._scorer = AnomalyScorer(log_level=log_level)
        self._drift_tracker = DriftTracker(log_level=log_level)
        self._evaluation = ConfusionMatrixEvaluation(log_level=log_level)
        self._alert_policy = AlertPolicy(log_level=log_level)
        self._global_model = GlobalModelTracker(rng=self._rng, log_level=log_level)
        self._scheduler = SimulationScheduler(
            self, rng=self._rng, interval_ms=interval_ms, log_level=log_level
        )

        self._telemetry = deque(maxlen=telemetry_size)
        self._alerts = deque(maxlen=alert_size)
        self._time_series = TimeSeries(max_len=timeseries_size)
        self._timeseries_every = timeseries_every
        self._default_devices = default_devices
        self._default_interval = interval_ms

        self._stream = EventStream(log_level=log_level)
        self._forwarder = None
        if dashboard_url is not None:
            self._forwarder = DashboardForwarder(
                dashboard_url, port=dashboard_port, log_level=log_level
            )
            self._stream.attach(self._forwarder)
        self._logger.info("Simulation engine initialized.")

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def synthesizer(self) -> TelemetrySynthesizer:
        return self._synthesizer

    @property
    def scheduler(self) -> SimulationScheduler:
        return self._scheduler

    # -- Control --

    def start(self, interval_ms: int = None) -> dict:
        """Starts the simulation, seeding the default fleet into an empty registry
        first. Starting a running simulation changes nothing.

        :param interval_ms: Tick interval in milliseconds. Invalid or non-positive
        values fall back to the default interval.
        :return: Environment after the call.
        """
        with self._lock:
            if self._scheduler.running:
                return self._environment.to_dict()
            self._logger.info("Starting simulation...")
            self.seed_devices()
            if self._forwarder is not None:
                self._forwarder.start()
            self._scheduler.start(self._coerce_interval(interval_ms))
            self._environment.simulator_running = True
            self._publish_status()
            self._logger.info("Simulation started.")
            return self._environment.to_dict()

    def stop(self) -> dict:
        """Stops the simulation after the tick in progress (if any) completed.
        Stopping a stopped simulation changes nothing.

        :return: Environment after the call.
        """
        # holding the lock, no tick is in progress and the ticker cannot start one
        with self._lock:
            if not self._scheduler.stop():
                return self._environment.to_dict()
            self._environment.simulator_running = False
            self._publish_status()
            self._logger.info("Simulation stopped.")
            return self._environment.to_dict()

    def reset(self) -> dict:
        """Stops the simulation and restores every default: environment, confusion
        statistics, global model, histories, and the device registry (which is
        re-seeded on the next start). Observers receive a fresh snapshot only, once
        the reset is complete.

        :return: Snapshot after the reset.
        """
        with self._lock:
            self._logger.info("Resetting simulation...")
            self._scheduler.stop()
            self._environment = Environment()
            self._registry.clear()
            self._evaluation.reset_state()
            self._global_model.reset()
            self._telemetry.clear()
            self._alerts.clear()
            self._time_series.clear()
            snapshot = self.snapshot()
            self._stream.publish(StreamEventType.SNAPSHOT, snapshot)
            self._logger.info("Simulation reset.")
            return snapshot

    def set_attack(self, attack_type: AttackType | str = None, intensity=0.0) -> dict:
        """Configures the emulated attack.

        :param attack_type: Attack family; None or empty means no attack, unknown
        families are treated as generic attack.
        :param intensity: Attack level, clamped to [0, 1]; 0 if not numeric.
        :return: Environment after the call.
        """
        with self._lock:
            coerced = AttackType.coerce(attack_type)
            if (
                coerced is AttackType.GENERIC
                and str(getattr(attack_type, "value", attack_type)).strip().lower()
                != "generic"
            ):
                self._logger.warning(
                    f"Unknown attack type {attack_type!r}, using generic attack."
                )
            self._environment.attack_type = coerced
            self._environment.attack_level = coerce_level(intensity)
            self._logger.info(
                f"Attack set to {coerced.value} "
                f"(level={self._environment.attack_level:.2f})."
            )
            self._publish_status()
            return self._environment.to_dict()

    def set_drift(self, level=0.0) -> dict:
        """Configures the concept drift of benign traffic.

        :param level: Drift level, clamped to [0, 1]; 0 if not numeric.
        :return: Environment after the call.
        """
        with self._lock:
            self._environment.drift_level = coerce_level(level)
            self._logger.info(
                f"Drift set to {self._environment.drift_level:.2f}."
            )
            self._publish_status()
            return self._environment.to_dict()

    def quarantine(self, device_id: str) -> dict | None:
        """Quarantines a device, excluding it from any further tick.

        :param device_id: Identifier of device.
        :return: Snapshot of device, None if no such device is registered.
        """
        return self._set_quarantined(device_id, True)

    def unquarantine(self, device_id: str) -> dict | None:
        """Releases a device from quarantine.

        :param device_id: Identifier of device.
        :return: Snapshot of device, None if no such device is registered.
        """
        return self._set_quarantined(device_id, False)

    def _set_quarantined(self, device_id: str, quarantined: bool) -> dict | None:
        with self._lock:
            device = self._registry.set_quarantined(device_id, quarantined)
            if device is None:
                self._logger.warning(f"Unknown device {device_id}, ignoring.")
                return None
            snapshot = device.snapshot()
            self._stream.publish(StreamEventType.DEVICE_UPDATED, {"device": snapshot})
            return snapshot

    def advance_round(self) -> dict:
        """Performs a federated round of the global model.

        :return: State of the global model after the round.
        """
        with self._lock:
            global_model = self._global_model.advance_round()
            self._push_time_series()
            self._stream.publish(
                StreamEventType.MODEL_UPDATE, {"global_model": global_model}
            )
            return global_model

    def register_device(
        self, name: str = None, model: str = None, data_size: int = None
    ) -> dict:
        """Registers a new device with the fleet.

        :param name: Name of device. Defaults to a generated, numbered name.
        :param model: Label of the model assigned to the device.
        :param data_size: Nominal size of the device's local data.
        :return: Snapshot of the new device.
        """
        with self._lock:
            snapshot = self._registry.register(
                name=name, model=model, data_size=data_size
            ).snapshot()
            self._stream.publish(StreamEventType.DEVICE_UPDATED, {"device": snapshot})
            return snapshot

    def seed_devices(self, count: int = None) -> list[dict]:
        """Seeds the default fleet, if the registry is empty.

        :param count: Number of devices to seed. Defaults to the engine's default.
        :return: Snapshots of the seeded devices, empty if none were seeded.
        """
        with self._lock:
            devices = self._registry.seed(
                count if count is not None else self._default_devices
            )
            snapshots = [d.snapshot() for d in devices]
            for snapshot in snapshots:
                self._stream.publish(
                    StreamEventType.DEVICE_UPDATED, {"device": snapshot}
                )
            return snapshots

    # -- Query --

    def list_devices(self) -> list[dict]:
        with self._lock:
            return self._registry.snapshots()

    def get_overview(self) -> dict:
        """Summarizes the current state of the simulation.

        :return: Dictionary of environment, confusion statistics, and global model.
        """
        with self._lock:
            return {
                "environment": self._environment.to_dict(),
                "stats": self._evaluation.result(),
                "global_model": self._global_model.to_dict(),
            }

    def get_time_series(self) -> dict[str, list]:
        with self._lock:
            return self._time_series.to_dict()

    def recent_telemetry(self, limit: int = None) -> list[dict]:
        """Returns the most recent telemetry events, newest first.

        :param limit: Maximum number of events. All if not given.
        :return: List of telemetry events.
        """
        with self._lock:
            return [e.to_dict() for e in list(self._telemetry)[:limit]]

    def recent_alerts(self, limit: int = None) -> list[dict]:
        """Returns the most recent alerts, newest first.

        :param limit: Maximum number of alerts. All if not given.
        :return: List of alerts.
        """
        with self._lock:
            return [a.to_dict() for a in list(self._alerts)[:limit]]

    def snapshot(self, history: int = 80) -> dict:
        """Captures the full state of the simulation, as sent to new observers.

        :param history: Maximum number of alerts and telemetry events each.
        :return: Dictionary of devices, environment, statistics, global model,
        alerts, and telemetry events.
        """
        with self._lock:
            return {
                "devices": self._registry.snapshots(),
                **self.get_overview(),
                "alerts": self.recent_alerts(history),
                "telemetry": self.recent_telemetry(history),
            }

    # -- Observers --

    def attach_observer(self, observer: Observer) -> int | None:
        """Attaches an observer to the event stream, sending it a snapshot first.

        :param observer: Callable receiving event type and payload.
        :return: Identifier of observer, None if it failed to take the snapshot.
        """
        with self._lock:
            return self._stream.attach(observer, snapshot=self.snapshot())

    def detach_observer(self, observer_id: int) -> bool:
        return self._stream.detach(observer_id)

    # -- Pipeline --

    def tick(self) -> list[TickResult]:
        """Runs a single tick synchronously, regardless of the scheduler running."""
        return self._scheduler.tick()

    def run_ticks(self, n: int) -> list[TickResult]:
        """Runs a number of ticks synchronously, e.g. for batch simulations.

        :param n: Number of ticks.
        :return: Results of all processed samples.
        """
        return self._scheduler.run_ticks(n)

    def process_telemetry(
        self, device: Device, features: FeatureVector, true_label: Label
    ) -> TickResult | None:
        """Runs the processing pipeline for a single sample of a device: scoring,
        drift tracking, metrics recording, and alerting, updating the device and
        the histories and publishing the outcome.

        :param device: Device that reported the sample.
        :param features: Feature vector of the sample.
        :param true_label: Ground truth of the sample.
        :return: Outcome of processing, None if the device is quarantined.
        """
        with self._lock:
            if device.quarantined:
                return None
            env = self._environment
            timestamp = now_iso()

            score, threshold, predicted = self._scorer.predict(
                features, env.drift_level
            )
            event = TelemetryEvent.create(
                device_id=device.id,
                device_name=device.name,
                timestamp=timestamp,
                features=features,
                true_label=true_label,
                predicted=predicted,
                score=score,
                threshold=threshold,
            )
            device.window.append(event)
            self._telemetry.appendleft(event)

            drift_score = self._drift_tracker.update(device)
            self._evaluation.record(true_label, predicted)

            alert = self._alert_policy(
                device, score, drift_score, predicted.is_attack, timestamp
            )
            if alert is not None:
                self._alerts.appendleft(alert)

            device.local_accuracy = clamp(
                device.base_accuracy
                * (1 - 0.15 * env.attack_level - 0.22 * drift_score),
                0.4,
                0.99,
            )
            device.last_seen = timestamp

            if self._evaluation.total_events % self._timeseries_every == 0:
                self._push_time_series()

            result = TickResult(event=event, alert=alert, device=device.snapshot())
            self._stream.publish(
                StreamEventType.TELEMETRY_EVENT,
                {"event": event.to_dict(), "device": result.device},
            )
            if alert is not None:
                self._stream.publish(
                    StreamEventType.ALERT_EVENT, {"alert": alert.to_dict()}
                )
            return result

    def complete_tick(self):
        """Concludes a tick by moving the global model towards the accuracy expected
        under the current attack conditions.
        """
        with self._lock:
            self._global_model.smooth(
                self._environment.attack_type is not AttackType.NONE
            )
            self._stream.publish(
                StreamEventType.MODEL_UPDATE,
                {"global_model": self._global_model.to_dict()},
            )

    def _push_time_series(self):
        self._time_series.append(
            t=now_ms(),
            f1=self._evaluation.f1,
            fp_rate=self._evaluation.fp_rate,
            global_accuracy=self._global_model.accuracy,
            attack_level=self._environment.attack_level,
            drift_level=self._environment.drift_level,
        )

    def _publish_status(self):
        self._stream.publish(
            StreamEventType.SIM_STATUS, {"environment": self._environment.to_dict()}
        )

    def _coerce_interval(self, interval_ms) -> int:
        if interval_ms is None:
            return self._default_interval
        try:
            interval_ms = int(interval_ms)
        except (TypeError, ValueError):
            interval_ms = 0
        if interval_ms <= 0:
            self._logger.warning(
                f"Invalid interval, using default of {self._default_interval}ms."
            )
            return self._default_interval
        return interval_ms

    # -- Lifecycle --

    def close(self):
        """Stops the simulation and the dashboard forwarder, if any."""
        self.stop()
        if self._forwarder is not None:
            self._forwarder.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
