# Copyright (C) 2024-2025 DAI-Labor and others
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Registry of the simulated device fleet. Devices are created once, at
registration or when a default fleet is seeded, and are never removed from the
registry (except by clearing it entirely); they can only be quarantined, i.e.
excluded from any further processing, and released again.
"""

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from uuid import uuid4

from fidsim.data_sources import TelemetryEvent
from fidsim.detection import FeatureStats
from fidsim.utils import now_iso

DEFAULT_FLEET = (
    ("IoT Cam 1", "1D CNN", 0.93),
    ("Router GW 1", "GRU", 0.91),
    ("Sensor Node 7", "Autoencoder", 0.90),
)


@dataclass
class Device:
    """Mutable state of a single device: its identity, its quarantine status, the
    window of its latest telemetry events, and the estimates derived from them.
    """

    id: str
    name: str
    model: str
    data_size: int = 2000
    quarantined: bool = False
    last_seen: str = field(default_factory=now_iso)
    window: deque[TelemetryEvent] = field(default_factory=lambda: deque(maxlen=200))
    baseline: dict[str, FeatureStats] | None = None
    drift_score: float = 0.05
    base_accuracy: float = 0.92
    local_accuracy: float = 0.92

    def snapshot(self) -> dict:
        """Public view of the device, without its window and baseline.

        :return: Dictionary of device state.
        """
        return {
            "id": self.id,
            "name": self.name,
            "model": self.model,
            "data_size": self.data_size,
            "quarantined": self.quarantined,
            "last_seen": self.last_seen,
            "drift_score": round(self.drift_score or 0.0, 3),
            "local_accuracy": round(
                self.local_accuracy
                if self.local_accuracy is not None
                else self.base_accuracy,
                3,
            ),
        }


class DeviceRegistry:
    """Ordered collection of all devices by their identifier."""

    _logger: logging.Logger

    _devices: dict[str, Device]
    _window_size: int

    def __init__(
        self,
        window_size: int = 200,
        name: str = "DeviceRegistry",
        log_level: int = None,
    ):
        """Creates a new, empty device registry.

        :param window_size: Capacity of each device's telemetry window.
        :param name: Name of registry for logging purposes.
        :param log_level: Logging level of registry.
        :raises ValueError: If the window size is not positive.
        """
        self._logger = logging.getLogger(name)
        if log_level:
            self._logger.setLevel(log_level)

        if window_size < 1:
            raise ValueError("Window size must be positive!")
        self._window_size = window_size
        self._devices = {}

    def register(
        self,
        name: str = None,
        model: str = None,
        data_size: int = None,
        base_accuracy: float = 0.92,
    ) -> Device:
        """Creates a new device and adds it to the registry.

        :param name: Name of device. Defaults to a generated, numbered name.
        :param model: Label of the model assigned to the device.
        :param data_size: Nominal size of the device's local data.
        :param base_accuracy: Accuracy of the device's model without attack/drift.
        :return: New device.
        """
        device = Device(
            id=str(uuid4()),
            name=name or f"IoT Device {len(self._devices) + 1}",
            model=model or "Lightweight Model",
            data_size=data_size if isinstance(data_size, int) else 2000,
            window=deque(maxlen=self._window_size),
            base_accuracy=base_accuracy,
            local_accuracy=base_accuracy,
        )
        self._devices[device.id] = device
        self._logger.info(f"Registered device {device.name} ({device.id}).")
        return device

    def seed(self, count: int = len(DEFAULT_FLEET)) -> list[Device]:
        """Seeds the default fleet into an empty registry, extended by generically
        named devices if more devices than the default fleet are requested. Does
        nothing if the registry already holds devices.

        :param count: Number of devices to seed.
        :return: Newly created devices.
        """
        if self._devices:
            return []
        self._logger.info(f"Seeding registry with {count} devices...")
        devices = []
        for i in range(count):
            if i < len(DEFAULT_FLEET):
                name, model, accuracy = DEFAULT_FLEET[i]
                devices.append(
                    self.register(name=name, model=model, base_accuracy=accuracy)
                )
            else:
                devices.append(self.register())
        return devices

    def get(self, device_id: str) -> Device | None:
        return self._devices.get(device_id)

    def active(self) -> list[Device]:
        """Returns all devices that are not quarantined.

        :return: List of active devices, in registration order.
        """
        return [d for d in self._devices.values() if not d.quarantined]

    def set_quarantined(self, device_id: str, quarantined: bool) -> Device | None:
        """Quarantines or releases a device.

        :param device_id: Identifier of device.
        :param quarantined: New quarantine status.
        :return: Updated device, None if no such device is registered.
        """
        device = self._devices.get(device_id)
        if device is None:
            return None
        device.quarantined = quarantined
        self._logger.info(
            f"Device {device.name} ({device.id}) "
            f"{'quarantined' if quarantined else 'released from quarantine'}."
        )
        return device

    def clear(self):
        self._devices = {}

    def snapshots(self) -> list[dict]:
        return [d.snapshot() for d in self._devices.values()]

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices.values()))

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._devices
