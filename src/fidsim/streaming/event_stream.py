# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""In-process fan-out of simulation events to any number of observers, e.g. a
WebSocket transport or the dashboard forwarder. Delivery is fire-and-forget: there
is no acknowledgement, no backpressure, and no retry. An observer that fails to
take an event is dropped and never receives another one.

Observers are plain callables taking the event type and its payload. They are
called synchronously by whoever publishes, so they must not block; anything slow
belongs behind a buffer (see DashboardForwarder).
"""

import logging
import threading
from enum import Enum
from itertools import count
from typing import Callable

Observer = Callable[[str, dict], None]


class StreamEventType(Enum):
    SNAPSHOT = "snapshot"
    TELEMETRY_EVENT = "telemetry_event"
    ALERT_EVENT = "alert_event"
    DEVICE_UPDATED = "device_updated"
    MODEL_UPDATE = "model_update"
    SIM_STATUS = "sim_status"


class EventStream:
    """Registry of observers that every published event is pushed to, in the order
    they were attached. Attaching an observer pushes a full state snapshot to it
    first.
    """

    _logger: logging.Logger

    _observers: dict[int, Observer]
    _ids: count
    _o_lock: threading.Lock

    def __init__(self, name: str = "EventStream", log_level: int = None):
        """Creates a new event stream without observers.

        :param name: Name of stream for logging purposes.
        :param log_level: Logging level of stream.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        self._observers = {}
        self._ids = count(1)
        self._o_lock = threading.Lock()

    def attach(self, observer: Observer, snapshot: dict = None) -> int | None:
        """Attaches a new observer, after sending it the given state snapshot.

        :param observer: Callable receiving event type and payload.
        :param snapshot: Full state to send to the observer first, if any.
        :return: Identifier of the observer to detach it, None if the observer
        already failed to take the snapshot.
        """
        if snapshot is not None and not self._deliver(
            observer, StreamEventType.SNAPSHOT.value, snapshot
        ):
            return None
        with self._o_lock:
            observer_id = next(self._ids)
            self._observers[observer_id] = observer
        self._logger.info(f"Observer {observer_id} attached.")
        return observer_id

    def detach(self, observer_id: int) -> bool:
        with self._o_lock:
            removed = self._observers.pop(observer_id, None) is not None
        if removed:
            self._logger.info(f"Observer {observer_id} detached.")
        return removed

    def publish(self, event_type: StreamEventType | str, payload: dict):
        """Pushes an event to every attached observer, dropping those that fail.

        :param event_type: Type of event.
        :param payload: Payload of event, JSON-serializable.
        """
        if isinstance(event_type, StreamEventType):
            event_type = event_type.value
        with self._o_lock:
            observers = list(self._observers.items())

        for observer_id, observer in observers:
            if not self._deliver(observer, event_type, payload):
                with self._o_lock:
                    self._observers.pop(observer_id, None)
                self._logger.warning(f"Observer {observer_id} dropped.")

    def _deliver(self, observer: Observer, event_type: str, payload: dict) -> bool:
        try:
            observer(event_type, payload)
        except Exception as e:
            self._logger.warning(f"Observer failed to take {event_type}: {e}")
            return False
        return True

    def __len__(self) -> int:
        with self._o_lock:
            return len(self._observers)
