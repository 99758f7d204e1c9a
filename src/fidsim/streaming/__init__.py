# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Streaming of simulation events to observers outside the engine:

    * EventStream - Fire-and-forget fan-out to attached observers.
    * StreamEventType - Types of events pushed to observers.
    * DashboardForwarder - Observer that posts events to a REST dashboard.
"""

__all__ = ["DashboardForwarder", "EventStream", "Observer", "StreamEventType"]

from .dashboard_forwarder import DashboardForwarder
from .event_stream import EventStream, Observer, StreamEventType
