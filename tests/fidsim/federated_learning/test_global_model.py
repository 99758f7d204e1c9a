# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import pytest

from fidsim.federated_learning import GlobalModelTracker


@pytest.fixture
def tracker(rng):
    return GlobalModelTracker(rng=rng)


class TestGlobalModelTracker:
    def test_defaults(self, tracker):
        assert tracker.to_dict() == {"round": 1, "accuracy": 0.92}

    def test_advance_round(self, tracker):
        state = tracker.advance_round()
        assert state["round"] == 2
        assert abs(state["accuracy"] - 0.92) <= 0.005
        assert state == tracker.to_dict()

    @pytest.mark.parametrize("initial_accuracy", [0.70, 0.99])
    def test_advance_round_bounded(self, rng, initial_accuracy):
        tracker = GlobalModelTracker(rng=rng, initial_accuracy=initial_accuracy)
        for _ in range(2000):
            tracker.advance_round()
            assert 0.70 <= tracker.accuracy <= 0.99
        assert tracker.round == 2001

    @pytest.mark.parametrize(
        "attack_active,expected",
        [(False, 0.92 + 0.03 * 0.02), (True, 0.92 - 0.07 * 0.02)],
    )
    def test_smooth_step(self, tracker, attack_active, expected):
        assert tracker.smooth(attack_active) == pytest.approx(expected)
        assert tracker.round == 1

    @pytest.mark.parametrize("attack_active,target", [(False, 0.95), (True, 0.85)])
    def test_smooth_converges(self, tracker, attack_active, target):
        for _ in range(1000):
            tracker.smooth(attack_active)
        assert tracker.accuracy == pytest.approx(target, abs=1e-4)

    def test_reset(self, tracker):
        tracker.advance_round()
        tracker.smooth(True)
        tracker.reset()
        assert tracker.to_dict() == {"round": 1, "accuracy": 0.92}
