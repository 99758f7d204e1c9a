# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import logging
import queue

import pytest
import requests

from fidsim.streaming import DashboardForwarder


@pytest.fixture
def posts(monkeypatch):
    """Replaces requests.post, collecting all posted requests instead."""
    posted = queue.Queue()

    def _post(url, json=None, timeout=None, **kwargs):
        posted.put((url, json))

    monkeypatch.setattr(requests, "post", _post)
    return posted


@pytest.fixture
def forwarder():
    forwarder = DashboardForwarder("localhost", port=8000)
    yield forwarder
    forwarder.stop()


class TestDashboardForwarder:
    def test_forwards_events(self, forwarder, posts):
        forwarder.start()
        forwarder("alert_event", {"alert": {"id": "a"}})
        assert posts.get(timeout=5) == (
            "http://localhost:8000/alert_event/",
            {"alert": {"id": "a"}},
        )

    @pytest.mark.parametrize("event_type", ["snapshot", "device_updated", "sim_status"])
    def test_ignores_state_events(self, forwarder, event_type):
        forwarder(event_type, {})
        assert forwarder.pending == 0

    @pytest.mark.parametrize(
        "event_type", ["telemetry_event", "alert_event", "model_update"]
    )
    def test_buffers_metric_events(self, forwarder, event_type):
        forwarder(event_type, {})
        assert forwarder.pending == 1

    def test_custom_forwarded(self, posts):
        forwarder = DashboardForwarder("dash", port=9000, forwarded=("model_update",))
        forwarder("alert_event", {})
        forwarder("model_update", {"global_model": {"round": 2}})
        assert forwarder.pending == 1

    def test_buffer_full_drops(self, caplog):
        forwarder = DashboardForwarder("localhost", buffer_size=1)
        with caplog.at_level(logging.WARNING):
            forwarder("telemetry_event", {"n": 1})
            forwarder("telemetry_event", {"n": 2})
        assert forwarder.pending == 1
        assert "dropping telemetry_event" in caplog.text

    def test_unreachable_dashboard(self, forwarder, monkeypatch, caplog):
        def _post(*args, **kwargs):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "post", _post)
        with caplog.at_level(logging.WARNING):
            # noinspection PyProtectedMember
            forwarder._update_dashboard("/sim_status/", {})
        assert "not reachable" in caplog.text

    def test_start_stop_idempotent(self, forwarder, posts):
        forwarder.start()
        forwarder.start()
        forwarder.stop()
        forwarder.stop()
        forwarder.start()
        forwarder("model_update", {"global_model": {"round": 1}})
        url, _ = posts.get(timeout=5)
        assert url == "http://localhost:8000/model_update/"
