# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import time
from collections import deque

import numpy as np
import pytest

from fidsim.data_sources import FeatureVector, Label, TelemetryEvent
from fidsim.registry import Device
from fidsim.simulation import SimulationEngine


class EventRecorder:
    """Observer that keeps every event it receives."""

    def __init__(self):
        self.events = deque()

    def __call__(self, event_type: str, payload: dict):
        self.events.append((event_type, payload))

    def of_type(self, event_type: str) -> list[dict]:
        return [p for t, p in list(self.events) if t == event_type]


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def device():
    return Device(id="device-1", name="Test Device", model="Test Model")


@pytest.fixture
def engine():
    engine = SimulationEngine(seed=7)
    yield engine
    engine.close()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def make_event():
    def _make_event(
        device: Device,
        features: FeatureVector,
        true_label: Label = Label.NORMAL,
        predicted: Label = Label.NORMAL,
    ) -> TelemetryEvent:
        return TelemetryEvent.create(
            device_id=device.id,
            device_name=device.name,
            timestamp="2025-01-01T00:00:00.000+00:00",
            features=features,
            true_label=true_label,
            predicted=predicted,
            score=0.1,
            threshold=0.55,
        )

    return _make_event


@pytest.fixture
def wait_for():
    def _wait_for(predicate, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return _wait_for
