"""
Light state owned by a StateSyncBridge.

Holds the four lightbulb properties and the origin tag that accompanies
every update.
"""

from enum import Enum
from typing import Any, Dict, Union

Number = Union[int, float]


class Origin(Enum):
    """Where a state update came from."""

    DEVICE = "device"  # inbound MQTT message
    HOST = "host"  # home-automation host write


class LightState:
    """
    Current lightbulb state.

    Ranges: hue 0-360, saturation 0-100, brightness 0-100.
    The most recent update wins; there is no merging.
    """

    def __init__(
        self,
        on: bool = False,
        hue: Number = 0,
        saturation: Number = 0,
        brightness: Number = 0,
    ):
        self.on = on
        self.hue = hue
        self.saturation = saturation
        self.brightness = brightness

    def as_dict(self) -> Dict[str, Any]:
        return {
            "on": self.on,
            "hue": self.hue,
            "saturation": self.saturation,
            "brightness": self.brightness,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, LightState):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return (
            f"LightState(on={self.on}, hue={self.hue}, "
            f"saturation={self.saturation}, brightness={self.brightness})"
        )
