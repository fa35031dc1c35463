"""
Shared fixtures for mqttlightbulb tests.
"""

from unittest.mock import MagicMock

import pytest

from mqttlightbulb.bridge import StateSyncBridge
from mqttlightbulb.config_loader import AccessoryConfig, TopicSet


@pytest.fixture
def mock_mqtt_client():
    """Mock MQTT client."""
    client = MagicMock()
    client.subscribe.return_value = (0, 1)
    client.publish.return_value = MagicMock(rc=0)
    return client


@pytest.fixture
def topics():
    return TopicSet(
        get_on="stat/sonoff/POWER",
        set_on="cmnd/sonoff/POWER",
        get_hsb="stat/sonoff/RESULT",
        set_hsb="cmnd/sonoff/HSBColor",
    )


@pytest.fixture
def accessory_config(topics):
    return AccessoryConfig(
        name="Desk Lamp",
        url="mqtt://broker.local:1883",
        topics=topics,
        username="mqtt_user",
        password="mqtt",
        caption="Desk",
    )


@pytest.fixture
def bridge(accessory_config, mock_mqtt_client):
    """Bridge wired to a mock MQTT client."""
    return StateSyncBridge(
        accessory_config,
        mqtt_client=mock_mqtt_client,
        client_id="mqttlightbulb_0000beef",
    )


@pytest.fixture
def config_file(tmp_path):
    """Create temporary config file."""
    config = tmp_path / "accessories.yaml"
    config.write_text(
        """
bridge:
  name: Test Lights
  port: 51827
  pincode: "123-45-678"
accessories:
  - accessory: mqttlightbulb
    name: Desk Lamp
    url: mqtt://broker.local:1883
    username: mqtt_user
    password: mqtt
    retain: true
    topics:
      getOn: stat/desk/POWER
      setOn: cmnd/desk/POWER
      getHsb: stat/desk/RESULT
      setHsb: cmnd/desk/HSBColor
"""
    )
    return str(config)
