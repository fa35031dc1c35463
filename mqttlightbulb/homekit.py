"""
HomeKit host for MQTT lightbulbs, built on HAP-python.

Each StateSyncBridge is exposed as a HAP Lightbulb accessory. Controller
writes are forwarded to the bridge's characteristics as Origin.HOST (and
therefore published to MQTT); values received from the device are pushed
to the controller.
"""

import logging
from functools import partial
from typing import Any, Dict, Iterable

from pyhap.accessory import Accessory, Bridge
from pyhap.const import CATEGORY_LIGHTBULB

from .accessory import CHAR_BRIGHTNESS, CHAR_HUE, CHAR_ON, CHAR_SATURATION
from .bridge import StateSyncBridge
from .state import Origin

logger = logging.getLogger(__name__)

LIGHTBULB_CHARS = (CHAR_ON, CHAR_HUE, CHAR_SATURATION, CHAR_BRIGHTNESS)


class HomeKitLightbulb(Accessory):
    """HAP Lightbulb backed by a StateSyncBridge."""

    category = CATEGORY_LIGHTBULB

    def __init__(self, driver, bridge: StateSyncBridge, aid=None):
        super().__init__(driver, bridge.name, aid=aid)
        self.bridge = bridge
        self.service = bridge.get_services()[0]

        serv_light = self.add_preload_service(
            "Lightbulb", chars=[CHAR_HUE, CHAR_SATURATION, CHAR_BRIGHTNESS]
        )

        self.hap_chars: Dict[str, Any] = {}
        for name in LIGHTBULB_CHARS:
            characteristic = self.service.get_characteristic(name)
            self.hap_chars[name] = serv_light.configure_char(
                name,
                value=characteristic.get_value(),
                setter_callback=partial(self._on_host_write, name),
                getter_callback=characteristic.get_value,
            )

        self.service.subscribe(self._on_characteristic_update)

    def _on_host_write(self, name: str, value: Any):
        logger.debug(f"{self.display_name}: HomeKit set {name} = {value}")
        self.service.get_characteristic(name).set_value(value, Origin.HOST)

    def _on_characteristic_update(self, name: str, value: Any, origin: Origin):
        # The controller already knows about its own writes
        if origin is Origin.HOST:
            return
        self.hap_chars[name].set_value(value)

    async def stop(self):
        self.service.unsubscribe(self._on_characteristic_update)
        self.bridge.stop()


def build_homekit_bridge(
    driver, bridges: Iterable[StateSyncBridge], name: str
) -> Bridge:
    """
    Wrap every lightbulb in one HAP bridge accessory.

    Args:
        driver: pyhap AccessoryDriver
        bridges: Configured StateSyncBridge instances
        name: Display name of the HomeKit bridge

    Returns:
        pyhap Bridge with one HomeKitLightbulb per StateSyncBridge
    """
    hap_bridge = Bridge(driver, name)
    for bridge in bridges:
        hap_bridge.add_accessory(HomeKitLightbulb(driver, bridge))
        logger.info(f"Added HomeKit lightbulb '{bridge.name}'")
    return hap_bridge
