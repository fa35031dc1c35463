"""
State synchronization between a lightbulb accessory and MQTT topics.

Inbound messages on getOn/getHsb update the light state and are pushed to
the host-facing characteristics tagged Origin.DEVICE, which never causes a
publish. Writes from the host (Origin.HOST) update the state and are
published to setOn/setHsb.
"""

import logging
import ssl
import threading
import uuid
from typing import List, NamedTuple, Optional, Union
from urllib.parse import unquote, urlsplit

import paho.mqtt.client as mqtt

from .accessory import (
    CHAR_BRIGHTNESS,
    CHAR_HUE,
    CHAR_ON,
    CHAR_SATURATION,
    LightbulbService,
)
from .config_loader import AccessoryConfig
from .payloads import (
    MalformedPayloadError,
    Payload,
    format_hsb_payload,
    format_power_payload,
    parse_hsb_payload,
    parse_power_payload,
)
from .state import LightState, Number, Origin

KEEPALIVE = 10
RECONNECT_DELAY = 1
CONNECT_TIMEOUT = 30.0
CLIENT_ID_PREFIX = "mqttlightbulb_"

WILL_TOPIC = "WillMsg"
WILL_PAYLOAD = "Connection Closed abnormally..!"

# scheme -> (default port, tls, transport)
URL_SCHEMES = {
    "mqtt": (1883, False, "tcp"),
    "tcp": (1883, False, "tcp"),
    "mqtts": (8883, True, "tcp"),
    "ssl": (8883, True, "tcp"),
    "tls": (8883, True, "tcp"),
    "ws": (80, False, "websockets"),
    "wss": (443, True, "websockets"),
}


class BrokerAddress(NamedTuple):
    host: str
    port: int
    tls: bool = False
    transport: str = "tcp"
    path: str = "/mqtt"
    username: Optional[str] = None
    password: Optional[str] = None


def parse_broker_url(url: str) -> BrokerAddress:
    """
    Split a broker URL such as 'mqtt://user:pw@host:1883' into its parts.

    A bare 'host' or 'host:port' is treated as mqtt://.

    Raises:
        ValueError: If the scheme is unsupported or no host is given
    """
    if "://" not in url:
        url = f"mqtt://{url}"

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in URL_SCHEMES:
        raise ValueError(f"Unsupported broker URL scheme '{scheme}' in {url}")
    if not parts.hostname:
        raise ValueError(f"No broker host in URL {url}")

    default_port, tls, transport = URL_SCHEMES[scheme]
    return BrokerAddress(
        host=parts.hostname,
        port=parts.port or default_port,
        tls=tls,
        transport=transport,
        path=parts.path or "/mqtt",
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
    )


def generate_client_id() -> str:
    return f"{CLIENT_ID_PREFIX}{uuid.uuid4().hex[:8]}"


class StateSyncBridge:
    """
    One MQTT lightbulb accessory.

    Owns the LightState, the host-facing LightbulbService and its own MQTT
    connection. All state access is serialized through one re-entrant lock,
    so transport callbacks and host calls run one at a time.
    """

    def __init__(
        self,
        config: AccessoryConfig,
        mqtt_client: Optional[mqtt.Client] = None,
        client_id: Optional[str] = None,
    ):
        """
        Initialize the bridge and start connecting to the broker.

        Args:
            config: Accessory options (name, url, credentials, retain, topics)
            mqtt_client: Preconfigured client to use instead of creating one
            client_id: MQTT client id (random 'mqttlightbulb_xxxxxxxx' if omitted)

        Raises:
            ValueError: If the broker URL is invalid
        """
        self.logger = logging.getLogger(f"{__name__}.{config.name}")
        self.name = config.name
        self.url = config.url
        self.caption = config.caption
        self.retain = config.retain
        self.topics = config.topics

        self.state = LightState()
        self._lock = threading.RLock()
        self._running = False

        self.service = LightbulbService(config.name)
        self.service.get_characteristic(CHAR_ON).on_get(self.get_on).on_set(
            self.set_on
        )
        self.service.get_characteristic(CHAR_HUE).on_get(self.get_hue).on_set(
            self.set_hue
        )
        self.service.get_characteristic(CHAR_SATURATION).on_get(
            self.get_saturation
        ).on_set(self.set_saturation)
        self.service.get_characteristic(CHAR_BRIGHTNESS).on_get(
            self.get_brightness
        ).on_set(self.set_brightness)

        self.broker = parse_broker_url(config.url)
        self.client_id = client_id or generate_client_id()
        self.mqtt_client = mqtt_client or self._create_client(config)

        self.mqtt_client.on_connect = self._on_mqtt_connect
        self.mqtt_client.on_connect_fail = self._on_mqtt_connect_fail
        self.mqtt_client.on_disconnect = self._on_mqtt_disconnect
        self.mqtt_client.on_message = self._on_mqtt_message

        self.connect()

    def _create_client(self, config: AccessoryConfig) -> mqtt.Client:
        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=True,
            protocol=mqtt.MQTTv311,
            transport=self.broker.transport,
        )

        if self.broker.transport == "websockets":
            client.ws_set_options(path=self.broker.path)

        if self.broker.tls:
            # Brokers with self-signed certificates are accepted
            client.tls_set(cert_reqs=ssl.CERT_NONE)
            client.tls_insecure_set(True)

        username = config.username or self.broker.username
        password = config.password or self.broker.password
        if username:
            client.username_pw_set(username, password)

        client.will_set(WILL_TOPIC, WILL_PAYLOAD, qos=0, retain=False)
        client.reconnect_delay_set(min_delay=RECONNECT_DELAY, max_delay=RECONNECT_DELAY)
        client.connect_timeout = CONNECT_TIMEOUT
        return client

    def connect(self):
        """Connect in the background; the network loop keeps reconnecting."""
        if self._running:
            return

        self.logger.info(
            f"Connecting to MQTT broker {self.broker.host}:{self.broker.port} "
            f"as {self.client_id}"
        )
        self.mqtt_client.connect_async(
            self.broker.host, self.broker.port, keepalive=KEEPALIVE
        )
        self.mqtt_client.loop_start()
        self._running = True

    def stop(self):
        """Disconnect cleanly (no last will) and stop the network loop."""
        if not self._running:
            return

        self._running = False
        self.logger.info("Stopping MQTT lightbulb bridge...")
        self.mqtt_client.disconnect()
        self.mqtt_client.loop_stop()

    def get_services(self) -> List[LightbulbService]:
        return [self.service]

    # MQTT callbacks

    def _on_mqtt_connect(self, client, userdata, flags, reason_code, properties):
        """Subscribe on every (re)connect."""
        if reason_code == 0:
            self.logger.info(f"Connected to MQTT broker {self.url}")
            for topic in self.topics.subscriptions():
                self.mqtt_client.subscribe(topic)
                self.logger.debug(f"Subscribed to {topic}")
        else:
            self.logger.error(f"Failed to connect to MQTT broker: {reason_code}")

    def _on_mqtt_connect_fail(self, client, userdata):
        self.logger.error(f"Error connecting to MQTT broker {self.url}, retrying")

    def _on_mqtt_disconnect(
        self, client, userdata, disconnect_flags, reason_code, properties
    ):
        if reason_code != 0:
            self.logger.warning(
                f"Unexpected disconnection from MQTT broker, reason code {reason_code}"
            )
        else:
            self.logger.info("Disconnected from MQTT broker")

    def _on_mqtt_message(self, client, userdata, msg):
        # Nothing may propagate into the paho network thread
        try:
            self.handle_message(msg.topic, msg.payload)
        except Exception as e:
            self.logger.error(f"Error handling message on {msg.topic}: {e}")

    # Inbound

    def handle_message(self, topic: str, payload: Payload):
        """
        Apply an inbound message to the light state.

        Malformed payloads are logged and dropped; unknown topics are ignored.

        Args:
            topic: MQTT topic the message arrived on
            payload: Raw payload
        """
        self.logger.debug(f"MQTT message: {topic} = {payload!r}")

        with self._lock:
            if topic == self.topics.get_on:
                self._handle_power_message(payload)
            elif topic == self.topics.get_hsb:
                self._handle_hsb_message(payload)

    def _handle_power_message(self, payload: Payload):
        on = parse_power_payload(payload)
        self.service.get_characteristic(CHAR_ON).set_value(on, Origin.DEVICE)

    def _handle_hsb_message(self, payload: Payload):
        try:
            color = parse_hsb_payload(payload)
        except MalformedPayloadError as e:
            self.logger.error(f"Malformed HSBColor payload: {e}")
            self.logger.error(f"Payload: {e.payload!r}")
            return

        on = color.brightness > 0
        self.service.get_characteristic(CHAR_ON).set_value(on, Origin.DEVICE)
        self.service.get_characteristic(CHAR_HUE).set_value(color.hue, Origin.DEVICE)
        self.service.get_characteristic(CHAR_SATURATION).set_value(
            color.saturation, Origin.DEVICE
        )
        self.service.get_characteristic(CHAR_BRIGHTNESS).set_value(
            color.brightness, Origin.DEVICE
        )

    # Host-facing accessors

    def get_on(self) -> bool:
        return self.state.on

    def get_hue(self) -> Number:
        return self.state.hue

    def get_saturation(self) -> Number:
        return self.state.saturation

    def get_brightness(self) -> Number:
        return self.state.brightness

    def set_on(self, value: bool, origin: Origin = Origin.HOST):
        with self._lock:
            self.state.on = bool(value)
            if origin is Origin.HOST:
                self.publish_on()

    def set_hue(self, value: Number, origin: Origin = Origin.HOST):
        with self._lock:
            self.state.hue = value
            if origin is Origin.HOST:
                self.publish_hsb()

    def set_saturation(self, value: Number, origin: Origin = Origin.HOST):
        with self._lock:
            self.state.saturation = value
            if origin is Origin.HOST:
                self.publish_hsb()

    def set_brightness(self, value: Number, origin: Origin = Origin.HOST):
        with self._lock:
            self.state.brightness = value
            if origin is Origin.HOST:
                self.publish_hsb()

    # Outbound

    def publish_on(self):
        self._publish(self.topics.set_on, format_power_payload(self.state.on))

    def publish_hsb(self):
        payload = format_hsb_payload(
            self.state.hue, self.state.saturation, self.state.brightness
        )
        self._publish(self.topics.set_hsb, payload)

    def _publish(self, topic: str, payload: Union[str, bytes]):
        """Fire-and-forget publish; failures are logged, never raised."""
        try:
            info = self.mqtt_client.publish(topic, payload, qos=0, retain=self.retain)
        except Exception as e:
            self.logger.error(f"Failed to publish to {topic}: {e}")
            return

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                f"Publish to {topic} not sent: {mqtt.error_string(info.rc)}"
            )
        else:
            self.logger.info(f"Published to {topic}: {payload}")

    def __repr__(self) -> str:
        return f"StateSyncBridge({self.name}, {self.state})"
