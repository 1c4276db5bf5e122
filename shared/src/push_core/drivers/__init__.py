"""Driver registry for provider-keyed push dispatch."""

from push_core.drivers.base import Driver
from push_core.drivers.fake import FakeDriver
from push_core.drivers.log import LogDriver
from push_core.enums import Platform

__all__ = [
    "Driver",
    "DriverRegistry",
    "FakeDriver",
    "LogDriver",
    "create_default_registry",
]


class DriverRegistry:
    """Maps driver keys (provider names) to driver instances."""

    def __init__(self) -> None:
        self._drivers: dict[str, Driver] = {}

    def register(self, key: str, driver: Driver) -> None:
        self._drivers[key] = driver

    def get(self, key: str) -> Driver:
        """Return the driver for a key.

        Raises KeyError if no driver is registered under the key.
        """
        return self._drivers[key]

    def keys(self) -> list[str]:
        return sorted(self._drivers)

    def __contains__(self, key: object) -> bool:
        return key in self._drivers


def create_default_registry() -> DriverRegistry:
    """Create a registry with a stub driver for every platform."""
    registry = DriverRegistry()
    for platform in Platform:
        registry.register(platform, LogDriver(platform))
    return registry
