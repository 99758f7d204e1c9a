# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Alerting for processed telemetry samples.

    * AlertPolicy - Decides whether an alert fires and at which severity.
    * Alert - Immutable alert record.
    * AlertType, Severity - Kind and severity of alerts.
"""

__all__ = ["Alert", "AlertPolicy", "AlertType", "Severity"]

from .alert_policy import Alert, AlertPolicy, AlertType, Severity
