"""Domain layer - Modelos de dispositivo y mayoría."""

from .device import (
    OFFLINE_MARKER,
    STATE_ORDER,
    DeviceRecord,
    DeviceState,
    MajorityView,
)

__all__ = [
    "OFFLINE_MARKER",
    "STATE_ORDER",
    "DeviceRecord",
    "DeviceState",
    "MajorityView",
]
