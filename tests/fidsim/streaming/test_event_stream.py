# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import pytest

from fidsim.streaming import EventStream, StreamEventType


def failing_observer(event_type: str, payload: dict):
    raise ConnectionError("observer gone")


@pytest.fixture
def stream():
    return EventStream()


class TestEventStream:
    def test_snapshot_sent_first(self, stream, recorder):
        observer_id = stream.attach(recorder, snapshot={"devices": []})
        assert observer_id is not None
        stream.publish(StreamEventType.SIM_STATUS, {"environment": {}})
        assert list(recorder.events) == [
            ("snapshot", {"devices": []}),
            ("sim_status", {"environment": {}}),
        ]

    def test_attach_without_snapshot(self, stream, recorder):
        stream.attach(recorder)
        assert len(recorder.events) == 0
        assert len(stream) == 1

    def test_publish_to_all_in_order(self, stream):
        calls = []
        stream.attach(lambda t, p: calls.append(("first", t)))
        stream.attach(lambda t, p: calls.append(("second", t)))
        stream.publish("alert_event", {})
        assert calls == [("first", "alert_event"), ("second", "alert_event")]

    def test_failing_observer_dropped(self, stream, recorder):
        stream.attach(failing_observer)
        stream.attach(recorder)
        stream.publish(StreamEventType.MODEL_UPDATE, {"global_model": {}})
        stream.publish(StreamEventType.MODEL_UPDATE, {"global_model": {}})
        assert len(stream) == 1
        assert len(recorder.of_type("model_update")) == 2

    def test_failing_snapshot_not_attached(self, stream):
        assert stream.attach(failing_observer, snapshot={}) is None
        assert len(stream) == 0

    def test_detach(self, stream, recorder):
        observer_id = stream.attach(recorder)
        assert stream.detach(observer_id)
        assert not stream.detach(observer_id)
        stream.publish("telemetry_event", {})
        assert len(recorder.events) == 0

    def test_publish_without_observers(self, stream):
        stream.publish("telemetry_event", {})
