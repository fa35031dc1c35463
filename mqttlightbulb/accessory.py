"""
Host-facing characteristic model for a lightbulb accessory.

A LightbulbService exposes On, Hue, Saturation and Brightness. Each
Characteristic delegates reads and writes to handlers registered by the
owner of the state (the StateSyncBridge) and notifies observers after
every write, so a host adapter can mirror the value.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .state import Origin

CHAR_ON = "On"
CHAR_HUE = "Hue"
CHAR_SATURATION = "Saturation"
CHAR_BRIGHTNESS = "Brightness"

Getter = Callable[[], Any]
Setter = Callable[[Any, Origin], None]
Observer = Callable[[str, Any, Origin], None]


class Characteristic:
    """
    One controllable attribute of an accessory.

    Reads go through the registered getter, writes through the registered
    setter together with their Origin.
    """

    def __init__(
        self,
        name: str,
        value_type: type,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.name = name
        self.value_type = value_type
        self.min_value = min_value
        self.max_value = max_value
        self.logger = logger or logging.getLogger(f"{__name__}.{name}")

        self._getter: Optional[Getter] = None
        self._setter: Optional[Setter] = None
        self._observers: List[Observer] = []

    def on_get(self, getter: Getter) -> "Characteristic":
        self._getter = getter
        return self

    def on_set(self, setter: Setter) -> "Characteristic":
        self._setter = setter
        return self

    def get_value(self) -> Any:
        if self._getter is None:
            raise RuntimeError(f"No get handler registered for {self.name}")
        return self._getter()

    def set_value(self, value: Any, origin: Origin) -> None:
        """
        Write a value through the set handler, then notify observers.

        Args:
            value: New characteristic value
            origin: Origin.DEVICE for values received from the device,
                Origin.HOST for writes made by the home-automation host
        """
        if self._setter is None:
            raise RuntimeError(f"No set handler registered for {self.name}")
        self._setter(self.to_valid_value(value), origin)
        self._notify_observers(self.get_value(), origin)

    def to_valid_value(self, value: Any) -> Any:
        """
        Coerce a value to this characteristic's type and clamp it to range.

        Bool characteristics accept any truthy/falsy value. Numeric ones are
        clamped to [min_value, max_value]; int characteristics drop the
        fraction of integral floats (75.0 -> 75).
        """
        if self.value_type is bool:
            return bool(value)

        if self.min_value is not None and value < self.min_value:
            value = self.min_value
        if self.max_value is not None and value > self.max_value:
            value = self.max_value
        if self.value_type is int and isinstance(value, float) and value.is_integer():
            value = int(value)
        return value

    def subscribe(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify_observers(self, value: Any, origin: Origin) -> None:
        for observer in self._observers:
            try:
                observer(self.name, value, origin)
            except Exception as e:
                self.logger.error(f"Error in observer callback: {e}")

    def __repr__(self) -> str:
        return f"Characteristic({self.name})"


class LightbulbService:
    """Lightbulb service with On, Hue, Saturation and Brightness."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{name}")
        self._characteristics: Dict[str, Characteristic] = {
            CHAR_ON: Characteristic(CHAR_ON, bool, logger=self.logger),
            CHAR_HUE: Characteristic(CHAR_HUE, float, 0, 360, logger=self.logger),
            CHAR_SATURATION: Characteristic(
                CHAR_SATURATION, float, 0, 100, logger=self.logger
            ),
            CHAR_BRIGHTNESS: Characteristic(
                CHAR_BRIGHTNESS, int, 0, 100, logger=self.logger
            ),
        }

    def get_characteristic(self, name: str) -> Characteristic:
        """
        Look up a characteristic by name.

        Raises:
            KeyError: If the service has no such characteristic
        """
        return self._characteristics[name]

    def get_characteristics(self) -> List[Characteristic]:
        return list(self._characteristics.values())

    def subscribe(self, observer: Observer) -> None:
        """Observe writes to every characteristic of this service."""
        for characteristic in self._characteristics.values():
            characteristic.subscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        for characteristic in self._characteristics.values():
            characteristic.unsubscribe(observer)

    def __repr__(self) -> str:
        return f"LightbulbService({self.name})"
