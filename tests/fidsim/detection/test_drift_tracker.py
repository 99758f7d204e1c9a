# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import pytest

from fidsim.data_sources import FeatureVector
from fidsim.detection import DriftTracker, FeatureStats
from fidsim.registry import Device

STEADY = FeatureVector(packets_per_sec=200, failed_auth=0.5, bytes_out=25000)


@pytest.fixture
def tracker():
    return DriftTracker()


@pytest.fixture
def feed(tracker, make_event):
    def _feed(device: Device, features: FeatureVector, n: int) -> float:
        drift = None
        for _ in range(n):
            device.window.append(make_event(device, features))
            drift = tracker.update(device)
        return drift

    return _feed


class TestDriftTracker:
    def test_default_drift_below_min_samples(self, device, feed):
        assert feed(device, STEADY, 29) == 0.05
        assert device.baseline is None

    def test_last_drift_kept_below_min_samples(self, device, feed):
        device.drift_score = 0.3
        assert feed(device, STEADY, 10) == 0.3

    def test_last_drift_kept_without_baseline(self, device, feed):
        assert feed(device, STEADY, 59) == 0.05
        assert device.baseline is None

    def test_baseline_captured(self, device, feed):
        assert feed(device, STEADY, 60) == 0.0
        assert device.drift_score == 0.0
        # zero deviations are replaced by 1
        assert device.baseline == {
            "packets_per_sec": FeatureStats(mean=200.0, std=1.0),
            "failed_auth": FeatureStats(mean=0.5, std=1.0),
            "bytes_out": FeatureStats(mean=25000.0, std=1.0),
        }

    def test_baseline_frozen(self, device, feed):
        feed(device, STEADY, 60)
        baseline = device.baseline
        shifted = FeatureVector(packets_per_sec=203, failed_auth=0.5, bytes_out=25000)
        drift = feed(device, shifted, 60)
        assert device.baseline is baseline
        # window mean of packets is 201.5, i.e. 1.5 baseline stds off, averaged
        # over three features and normalized by 3
        assert drift == pytest.approx(0.5 / 3)
        assert device.drift_score == drift

    def test_drift_saturates(self, device, feed):
        feed(device, STEADY, 60)
        shifted = FeatureVector(packets_per_sec=2000, failed_auth=50, bytes_out=90000)
        assert feed(device, shifted, 10) == 1.0

    def test_drift_deterministic(self, tracker, make_event):
        first = Device(id="a", name="A", model="m")
        second = Device(id="b", name="B", model="m")
        for i in range(120):
            features = FeatureVector(
                packets_per_sec=200 + i, failed_auth=0.5, bytes_out=25000 + 10 * i
            )
            first.window.append(make_event(first, features))
            second.window.append(make_event(second, features))
            assert tracker.update(first) == tracker.update(second)

    def test_window_stats(self, device, make_event):
        window = [
            make_event(device, FeatureVector(100, 1.0, 1000)),
            make_event(device, FeatureVector(300, 1.0, 3000)),
        ]
        stats = DriftTracker.window_stats(window)
        assert stats["packets_per_sec"] == FeatureStats(mean=200.0, std=100.0)
        assert stats["failed_auth"] == FeatureStats(mean=1.0, std=1.0)
        assert stats["bytes_out"] == FeatureStats(mean=2000.0, std=1000.0)

    def test_drift(self, tracker):
        baseline = {
            "packets_per_sec": FeatureStats(200, 40),
            "failed_auth": FeatureStats(0.5, 0.7),
            "bytes_out": FeatureStats(25000, 8000),
        }
        recent = {
            "packets_per_sec": FeatureStats(320, 40),
            "failed_auth": FeatureStats(0.5, 0.7),
            "bytes_out": FeatureStats(25000, 8000),
        }
        assert tracker.drift(recent, baseline) == pytest.approx(3 / 3 / 3)

    @pytest.mark.parametrize("min_samples,baseline_samples", [(0, 60), (30, 20)])
    def test_invalid_sample_counts(self, min_samples, baseline_samples):
        with pytest.raises(ValueError):
            DriftTracker(min_samples=min_samples, baseline_samples=baseline_samples)
