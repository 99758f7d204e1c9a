# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Forwarding of simulation events to an external dashboard, which follows a
simple REST API: every event type is posted (as JSON) to its own resource, i.e.
"http://<dashboard>:<port>/<event_type>/". As the dashboard may be slow or
unreachable, events are buffered and sent by a background thread; the simulation
itself never waits on the dashboard.
"""

import logging
import queue
import threading

import requests

from .event_stream import StreamEventType

DEFAULT_FORWARDED = (
    StreamEventType.TELEMETRY_EVENT.value,
    StreamEventType.ALERT_EVENT.value,
    StreamEventType.MODEL_UPDATE.value,
)


class DashboardForwarder:
    """Event stream observer that posts events to a dashboard server. Events are
    put into a bounded buffer without blocking; if the buffer is full, the event is
    dropped. A daemon thread empties the buffer while the forwarder is started.
    """

    _logger: logging.Logger

    _dashboard_url: str
    _port: int
    _timeout: float
    _forwarded: frozenset[str]

    _buffer: queue.Queue
    _sender: threading.Thread | None
    _started: bool

    def __init__(
        self,
        dashboard_url: str,
        port: int = 8000,
        forwarded: tuple[str, ...] = DEFAULT_FORWARDED,
        buffer_size: int = 1024,
        timeout: float = 5,
        name: str = "DashboardForwarder",
        log_level: int = None,
    ):
        """Creates a new dashboard forwarder. Must be started to actually send.

        :param dashboard_url: IP or hostname of the dashboard server.
        :param port: Port of the dashboard server.
        :param forwarded: Event types to forward, all others are ignored.
        :param buffer_size: Maximum number of events waiting to be sent.
        :param timeout: Timeout of a single request to the dashboard.
        :param name: Name of forwarder for logging purposes.
        :param log_level: Logging level of forwarder.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)
        self._logger.info("Initializing dashboard forwarder...")

        self._dashboard_url = dashboard_url
        self._port = port
        self._timeout = timeout
        self._forwarded = frozenset(forwarded)

        self._buffer = queue.Queue(buffer_size)
        self._sender = None
        self._started = False
        self._logger.info("Dashboard forwarder initialized.")

    def start(self):
        """Starts the sender thread as daemon. Does nothing if already started."""
        if self._started:
            return
        self._logger.info("Starting dashboard forwarder...")
        self._started = True
        self._sender = threading.Thread(target=self._create_sender, daemon=True)
        self._sender.start()
        self._logger.info("Dashboard forwarder started.")

    def stop(self):
        """Stops the sender thread. Events still buffered are discarded."""
        if not self._started:
            return
        self._logger.info("Stopping dashboard forwarder...")
        self._started = False
        self._sender.join()
        self._logger.info("Dashboard forwarder stopped.")

    def __call__(self, event_type: str, payload: dict):
        """Buffers an event for forwarding, if it is of interest.

        :param event_type: Type of event.
        :param payload: Payload of event.
        """
        if event_type not in self._forwarded:
            return
        try:
            self._buffer.put_nowait((event_type, payload))
        except queue.Full:
            self._logger.warning(f"Buffer full, dropping {event_type}.")

    def _create_sender(self):
        """Sender loop, forwarding buffered events until the forwarder is stopped."""
        self._logger.info("Sender: Starting...")
        while self._started:
            try:
                event_type, payload = self._buffer.get(timeout=1)
            except queue.Empty:
                continue
            self._update_dashboard(f"/{event_type}/", payload)
        self._logger.info("Sender: Stopped.")

    def _update_dashboard(self, resource: str, data: dict):
        """Posts data to a specific resource of the dashboard.

        :param resource: URL-suffix to resource.
        :param data: Data to report.
        """
        try:
            _ = requests.post(
                url=f"http://{self._dashboard_url}:{self._port}{resource}",
                json=data,
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            self._logger.warning(f"Dashboard server not reachable: {e}")

    @property
    def pending(self) -> int:
        return self._buffer.qsize()
