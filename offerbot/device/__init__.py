"""Device backend registry with lazy loading.

Usage:
    from offerbot.device import get_device

    device = get_device(settings.device, settings.timing)
    root = await device.root()
"""

from __future__ import annotations

import importlib

from offerbot.core.config import DeviceConfig, TimingConfig
from offerbot.device.base import Device, DeviceError, NodeLike, StaleNodeError

__all__ = [
    "Device",
    "DeviceError",
    "NodeLike",
    "StaleNodeError",
    "available_backends",
    "get_device",
]

# Lazy registry: maps backend name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "adb": ("offerbot.device.adb", "AdbDevice"),
    "replay": ("offerbot.device.replay", "ReplayDevice"),
}


def get_device(config: DeviceConfig, timing: TimingConfig | None = None) -> Device:
    """Instantiate the device backend named in `config.backend`.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if config.backend not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown device backend '{config.backend}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[config.backend]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    if config.backend == "replay":
        return cls()  # type: ignore[no-any-return]
    return cls(config, timing)  # type: ignore[no-any-return]


def available_backends() -> list[str]:
    """Return sorted list of registered backend names."""
    return sorted(_REGISTRY)
