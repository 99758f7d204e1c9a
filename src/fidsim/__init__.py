# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
fidsim simulates a fleet of IoT devices monitored by a (toy) federated intrusion
detection system. Synthetic telemetry is generated under configurable attack and
concept-drift conditions, scored for anomalousness against a fixed benign reference,
tracked for drift per device, and evaluated against its ground truth, while every
resulting telemetry sample, alert, and model update is streamed to any attached
observer (e.g. a dashboard) in real time.

*Basically: Start the engine, turn the attack and drift knobs, and watch the
detection quality move!*

The subpackages are layered leaves first:

    * data_sources - Synthetic telemetry and the telemetry event records.
    * detection - Anomaly scoring and per-device drift tracking.
    * evaluation - Confusion matrix metrics over all processed samples.
    * alerting - Alert policy and alert records.
    * federated_learning - Stand-in tracker for the global model.
    * streaming - Observer fan-out and dashboard forwarding.
    * simulation - The engine owning all state, and its periodic scheduler.
"""
