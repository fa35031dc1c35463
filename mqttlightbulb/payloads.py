"""
Wire format for the lightbulb topics.

Inbound:
- getOn:  plain text, "On" means on, anything else means off
- getHsb: JSON object with an "HSBColor" field, e.g.
  {"POWER":"ON","Dimmer":100,"HSBColor":"359,50,100"}

Outbound:
- setOn:  "On" / "Off"
- setHsb: "<hue>,<saturation>,<brightness>," (the firmware expects the
  trailing comma)
"""

import json
import math
from typing import NamedTuple, Union

from .state import Number

POWER_ON = "On"
POWER_OFF = "Off"
HSB_FIELD = "HSBColor"

HUE_MAX = 360
SATURATION_MAX = 100
BRIGHTNESS_MAX = 100

Payload = Union[bytes, bytearray, str]


class MalformedPayloadError(ValueError):
    """Raised when an inbound payload cannot be turned into a state update."""

    def __init__(self, message: str, payload: Payload):
        super().__init__(message)
        self.payload = payload


class HsbColor(NamedTuple):
    hue: Number
    saturation: Number
    brightness: Number


def _decode(payload: Payload) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return bytes(payload).decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPayloadError(f"Payload is not valid UTF-8: {e}", payload)


def _to_number(text: str, field: str, maximum: int, payload: Payload) -> Number:
    text = text.strip()
    try:
        value: Number = int(text)
    except ValueError:
        try:
            value = float(text)
        except ValueError:
            raise MalformedPayloadError(f"{field} is not a number: {text!r}", payload)
        if not math.isfinite(value):
            raise MalformedPayloadError(f"{field} is not finite: {text!r}", payload)
        if value.is_integer():
            value = int(value)

    if not 0 <= value <= maximum:
        raise MalformedPayloadError(
            f"{field} out of range 0-{maximum}: {value}", payload
        )
    return value


def parse_power_payload(payload: Payload) -> bool:
    """
    Parse a getOn payload.

    Only the exact string "On" switches the light on; "ON", "on", "1",
    undecodable bytes and everything else switch it off.
    """
    if isinstance(payload, str):
        return payload == POWER_ON
    return bytes(payload).decode("utf-8", errors="replace") == POWER_ON


def parse_hsb_payload(payload: Payload) -> HsbColor:
    """
    Parse a getHsb payload into an HsbColor.

    Args:
        payload: Raw message payload (JSON)

    Returns:
        HsbColor with int components where integral, float otherwise

    Raises:
        MalformedPayloadError: If the payload is not JSON, has no usable
            HSBColor field, or any component is missing, non-numeric or
            out of range
    """
    text = _decode(payload)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Invalid JSON: {e}", payload)
    except RecursionError:
        raise MalformedPayloadError("JSON nested too deeply", payload)

    if not isinstance(data, dict):
        raise MalformedPayloadError("Expected a JSON object", payload)

    hsb = data.get(HSB_FIELD)
    if not isinstance(hsb, str):
        raise MalformedPayloadError(f"Missing or non-string {HSB_FIELD}", payload)

    parts = hsb.split(",")
    if len(parts) != 3:
        raise MalformedPayloadError(
            f"{HSB_FIELD} must have 3 components, got {len(parts)}", payload
        )

    return HsbColor(
        hue=_to_number(parts[0], "hue", HUE_MAX, payload),
        saturation=_to_number(parts[1], "saturation", SATURATION_MAX, payload),
        brightness=_to_number(parts[2], "brightness", BRIGHTNESS_MAX, payload),
    )


def format_number(value: Number) -> str:
    """Render a number without a spurious '.0' for integral floats."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_power_payload(on: bool) -> str:
    return POWER_ON if on else POWER_OFF


def format_hsb_payload(hue: Number, saturation: Number, brightness: Number) -> str:
    return (
        f"{format_number(hue)},{format_number(saturation)},"
        f"{format_number(brightness)},"
    )
