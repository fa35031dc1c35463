"""
Configuration loader for MQTT lightbulb accessories.

Reads a YAML file (a Homebridge config.json works too, JSON being YAML)
with an optional 'bridge' section and a list of 'accessories':

    bridge:
      name: MQTT Lights
      port: 51826
      pincode: "031-45-154"
    accessories:
      - accessory: mqttlightbulb
        name: Desk Lamp
        url: mqtt://broker.local:1883
        username: user
        password: secret
        retain: false
        topics:
          getOn: stat/sonoff/POWER
          setOn: cmnd/sonoff/POWER
          getHsb: stat/sonoff/RESULT
          setHsb: cmnd/sonoff/HSBColor
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

logger = logging.getLogger(__name__)

ACCESSORY_TYPE = "mqttlightbulb"
TOPIC_KEYS = ("getOn", "setOn", "getHsb", "setHsb")

DEFAULT_BRIDGE_NAME = "MQTT Lightbulb Bridge"
DEFAULT_HAP_PORT = 51826
DEFAULT_PINCODE = "031-45-154"
DEFAULT_PERSIST_FILE = "mqttlightbulb.state"

PINCODE_PATTERN = re.compile(r"^\d{3}-\d{2}-\d{3}$")


class TopicSet:
    """The four topic names of one accessory. Fixed after construction."""

    __slots__ = ("get_on", "set_on", "get_hsb", "set_hsb")

    def __init__(self, get_on: str, set_on: str, get_hsb: str, set_hsb: str):
        object.__setattr__(self, "get_on", get_on)
        object.__setattr__(self, "set_on", set_on)
        object.__setattr__(self, "get_hsb", get_hsb)
        object.__setattr__(self, "set_hsb", set_hsb)

    def __setattr__(self, name, value):
        raise AttributeError("TopicSet is immutable")

    @classmethod
    def from_dict(cls, topics: Dict[str, str]) -> "TopicSet":
        return cls(
            get_on=topics["getOn"],
            set_on=topics["setOn"],
            get_hsb=topics["getHsb"],
            set_hsb=topics["setHsb"],
        )

    def subscriptions(self) -> List[str]:
        """Topics the bridge listens on."""
        return [self.get_on, self.get_hsb]

    def __eq__(self, other) -> bool:
        if not isinstance(other, TopicSet):
            return NotImplemented
        return all(getattr(self, s) == getattr(other, s) for s in self.__slots__)

    def __hash__(self) -> int:
        return hash(tuple(getattr(self, s) for s in self.__slots__))

    def __repr__(self) -> str:
        return (
            f"TopicSet(getOn={self.get_on!r}, setOn={self.set_on!r}, "
            f"getHsb={self.get_hsb!r}, setHsb={self.set_hsb!r})"
        )


class AccessoryConfig:
    """Options for a single lightbulb accessory."""

    def __init__(
        self,
        name: str,
        url: str,
        topics: TopicSet,
        username: Optional[str] = None,
        password: Optional[str] = None,
        caption: Optional[str] = None,
        retain: bool = False,
    ):
        self.name = name
        self.url = url
        self.topics = topics
        self.username = username
        self.password = password
        self.caption = caption
        self.retain = retain

    def __repr__(self):
        return f"AccessoryConfig({self.name}, url={self.url}, retain={self.retain})"


class BridgeConfig:
    """HomeKit bridge settings plus all configured accessories."""

    def __init__(
        self,
        accessories: List[AccessoryConfig],
        name: str = DEFAULT_BRIDGE_NAME,
        port: int = DEFAULT_HAP_PORT,
        pincode: str = DEFAULT_PINCODE,
        persist_file: str = DEFAULT_PERSIST_FILE,
    ):
        self.accessories = accessories
        self.name = name
        self.port = port
        self.pincode = pincode
        self.persist_file = persist_file

    def get_summary(self) -> str:
        return f"{len(self.accessories)} accessories on HAP port {self.port}"


def _require_string(entry: Dict[str, Any], key: str, label: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label}: '{key}' is required and must be a string")
    return value


def _optional_string(entry: Dict[str, Any], key: str, label: str) -> Optional[str]:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int)):
        raise ValueError(f"{label}: '{key}' must be a string")
    return str(value)


def parse_accessory(entry: Dict[str, Any], index: int = 0) -> AccessoryConfig:
    """
    Validate one accessory entry.

    Args:
        entry: Raw accessory mapping
        index: Position in the accessories list (for error messages)

    Returns:
        AccessoryConfig

    Raises:
        ValueError: If a required option is missing or has the wrong type
    """
    if not isinstance(entry, dict):
        raise ValueError(f"Accessory #{index}: each accessory must be a dictionary")

    name = _require_string(entry, "name", f"Accessory #{index}")
    label = f"Accessory '{name}'"
    url = _require_string(entry, "url", label)

    topics = entry.get("topics")
    if not isinstance(topics, dict):
        raise ValueError(f"{label}: 'topics' is required and must be a dictionary")
    for key in TOPIC_KEYS:
        value = topics.get(key)
        if not isinstance(value, str) or not value:
            raise ValueError(f"{label}: topic '{key}' is required")

    retain = entry.get("retain", False)
    if retain is None:
        retain = False
    if not isinstance(retain, bool):
        raise ValueError(f"{label}: 'retain' must be true or false")

    return AccessoryConfig(
        name=name,
        url=url,
        topics=TopicSet.from_dict(topics),
        username=_optional_string(entry, "username", label),
        password=_optional_string(entry, "password", label),
        caption=_optional_string(entry, "caption", label),
        retain=retain,
    )


def parse_config(raw_config: Dict[str, Any]) -> BridgeConfig:
    """
    Build a BridgeConfig from already-parsed YAML/JSON data.

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    bridge_section = raw_config.get("bridge") or {}
    if not isinstance(bridge_section, dict):
        raise ValueError("'bridge' must be a dictionary")

    port = bridge_section.get("port", DEFAULT_HAP_PORT)
    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
        raise ValueError(f"Bridge: invalid port '{port}'")

    pincode = str(bridge_section.get("pincode", DEFAULT_PINCODE))
    if not PINCODE_PATTERN.match(pincode):
        raise ValueError(f"Bridge: pincode must look like 031-45-154, got '{pincode}'")

    entries = raw_config.get("accessories", [])
    if not isinstance(entries, list):
        raise ValueError("'accessories' must be a list")

    accessories: List[AccessoryConfig] = []
    seen_names: Set[str] = set()
    for index, entry in enumerate(entries):
        if isinstance(entry, dict):
            kind = entry.get("accessory")
            if kind is not None and kind != ACCESSORY_TYPE:
                logger.debug(f"Skipping accessory #{index} of type '{kind}'")
                continue

        accessory = parse_accessory(entry, index)
        if accessory.name in seen_names:
            raise ValueError(
                f"Accessory name '{accessory.name}' is used multiple times"
            )
        seen_names.add(accessory.name)
        accessories.append(accessory)

    return BridgeConfig(
        accessories=accessories,
        name=str(bridge_section.get("name", DEFAULT_BRIDGE_NAME)),
        port=port,
        pincode=pincode,
        persist_file=str(bridge_section.get("persist_file", DEFAULT_PERSIST_FILE)),
    )


def load_config(config_path: str) -> BridgeConfig:
    """
    Load and validate a configuration file.

    Args:
        config_path: Path to YAML or JSON configuration file

    Returns:
        BridgeConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If configuration is invalid
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, "r") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML configuration: {e}")

    if not raw_config:
        raise ValueError(f"Configuration file is empty: {config_path}")

    config = parse_config(raw_config)
    if not config.accessories:
        logger.warning(f"No {ACCESSORY_TYPE} accessories configured in {config_path}")

    logger.info(f"Loaded configuration from {config_path}: {config.get_summary()}")
    for accessory in config.accessories:
        logger.debug(f"  - {accessory.name} -> {accessory.url} ({accessory.topics})")

    return config
