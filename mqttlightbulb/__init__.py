"""
MQTT Lightbulb - HomeKit lightbulb accessories synchronized over MQTT.

Each configured accessory gets its own StateSyncBridge, created through
create_lightbulb_bridge(), with its own broker connection and state.
"""

__version__ = "1.0.0"

import logging
from typing import Optional

import paho.mqtt.client as mqtt

from .accessory import Characteristic, LightbulbService
from .bridge import StateSyncBridge
from .config_loader import AccessoryConfig, BridgeConfig, TopicSet, load_config
from .payloads import MalformedPayloadError
from .state import LightState, Origin

__all__ = [
    "create_lightbulb_bridge",
    "StateSyncBridge",
    "LightbulbService",
    "Characteristic",
    "LightState",
    "Origin",
    "AccessoryConfig",
    "BridgeConfig",
    "TopicSet",
    "MalformedPayloadError",
    "load_config",
]


def create_lightbulb_bridge(
    config: AccessoryConfig, mqtt_client: Optional[mqtt.Client] = None
) -> StateSyncBridge:
    """
    Factory method to create a connected lightbulb bridge.

    Args:
        config: Accessory configuration
        mqtt_client: Optional preconfigured MQTT client

    Returns:
        StateSyncBridge already connecting to its broker

    Raises:
        ValueError: If the broker URL is invalid
    """
    logger = logging.getLogger(__name__)
    bridge = StateSyncBridge(config, mqtt_client=mqtt_client)
    logger.info(f"Created lightbulb '{config.name}' on {config.url}")
    return bridge
