# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import pytest

from fidsim.registry import DEFAULT_FLEET, DeviceRegistry


@pytest.fixture
def registry():
    return DeviceRegistry()


class TestDeviceRegistry:
    def test_seed_default_fleet(self, registry):
        devices = registry.seed()
        assert [(d.name, d.model, d.base_accuracy) for d in devices] == list(
            DEFAULT_FLEET
        )
        assert all(d.local_accuracy == d.base_accuracy for d in devices)
        assert all(d.drift_score == 0.05 for d in devices)
        assert len(registry) == 3

    def test_seed_only_once(self, registry):
        registry.seed()
        assert registry.seed() == []
        assert len(registry) == 3

    def test_seed_beyond_default_fleet(self, registry):
        devices = registry.seed(5)
        assert [d.name for d in devices][3:] == ["IoT Device 4", "IoT Device 5"]
        assert devices[4].model == "Lightweight Model"

    def test_register_defaults(self, registry):
        device = registry.register()
        assert device.name == "IoT Device 1"
        assert device.model == "Lightweight Model"
        assert device.data_size == 2000
        assert not device.quarantined
        assert device.baseline is None
        assert device.window.maxlen == 200
        assert device.id in registry
        assert registry.get(device.id) is device

    def test_register_custom(self):
        registry = DeviceRegistry(window_size=10)
        device = registry.register(name="Cam", model="CNN", data_size=500)
        assert (device.name, device.model, device.data_size) == ("Cam", "CNN", 500)
        assert device.window.maxlen == 10

    def test_unique_ids(self, registry):
        registry.seed(10)
        assert len({d.id for d in registry}) == 10

    def test_quarantine(self, registry):
        first, second, third = registry.seed()
        assert registry.set_quarantined(second.id, True) is second
        assert second.quarantined
        assert registry.active() == [first, third]
        registry.set_quarantined(second.id, False)
        assert registry.active() == [first, second, third]

    def test_quarantine_unknown(self, registry):
        registry.seed()
        assert registry.set_quarantined("unknown", True) is None
        assert len(registry.active()) == 3

    def test_snapshot(self, registry):
        device = registry.register(name="Cam", model="CNN")
        device.drift_score = 0.123456
        device.local_accuracy = 0.876543
        snapshot = device.snapshot()
        assert snapshot == {
            "id": device.id,
            "name": "Cam",
            "model": "CNN",
            "data_size": 2000,
            "quarantined": False,
            "last_seen": device.last_seen,
            "drift_score": 0.123,
            "local_accuracy": 0.877,
        }
        assert registry.snapshots() == [snapshot]

    def test_clear(self, registry):
        registry.seed()
        registry.clear()
        assert len(registry) == 0
        assert registry.active() == []

    def test_invalid_window_size(self):
        with pytest.raises(ValueError):
            DeviceRegistry(window_size=0)
