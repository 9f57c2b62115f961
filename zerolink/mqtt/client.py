"""MQTT Client module for ZeroLink.

One persistent paho-mqtt connection carries everything the daemon needs:
scanned chunk strings and sensor readings in, action events and scan
progress out. The client announces itself on the status topic with a
retained "online" message and registers a last will so the broker marks
it "offline" if the connection drops.
"""
import json
import logging
import queue
import threading
from typing import Any, List, Optional

import paho.mqtt.client as mqtt

from zerolink.core.config import Config

ONLINE = json.dumps({"status": "online"})
OFFLINE = json.dumps({"status": "offline"})


class MqttClient:
    """Persistent paho-mqtt connection used by the ZeroLink daemon."""

    def __init__(self, config: Config):
        self.config = config
        self._client: Optional[mqtt.Client] = None
        self._connected = threading.Event()
        self._lock = threading.Lock()
        self._inbox: Optional[queue.Queue] = None
        self._subscribed_topics: List[str] = []

    @property
    def is_connected(self) -> bool:
        """True while the broker connection is up."""
        return self._connected.is_set()

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            protocol=mqtt.MQTTv311
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.will_set(self.config.status_topic, OFFLINE, qos=1, retain=True)
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        return client

    def connect(self, timeout: float = 10.0) -> bool:
        """Connect to the broker and start the paho network thread.

        Returns:
            True once the broker has acknowledged the connection.
        """
        if self.is_connected:
            return True

        with self._lock:
            if self.is_connected:
                return True
            port = int(self.config.mqtt_port)
            logging.info("Connecting to MQTT broker at %s:%d", self.config.mqtt_host, port)
            try:
                self._client = self._build_client()
                self._client.connect(self.config.mqtt_host, port, keepalive=60)
                self._client.loop_start()
            except Exception as e:  # pylint: disable=broad-exception-caught
                logging.error("Failed to connect to MQTT broker: %s", e)
                self._client = None
                return False

            if not self._connected.wait(timeout=timeout):
                logging.error("No CONNACK from %s within %.0fs", self.config.mqtt_host, timeout)
                return False
            return True

    def disconnect(self):
        """Mark this node offline, then close the connection."""
        with self._lock:
            if self._client is None:
                return
            logging.info("Disconnecting from MQTT broker")
            if self.is_connected:
                self._client.publish(self.config.status_topic, OFFLINE, qos=1, retain=True)
            self._client.loop_stop()
            self._client.disconnect()
            self._client = None
            self._connected.clear()

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Announce presence and restore subscriptions after every (re)connect."""
        if reason_code != 0:
            logging.error("MQTT connection refused: %s", reason_code)
            return
        logging.info("Connected to MQTT broker")
        self._connected.set()
        client.publish(self.config.status_topic, ONLINE, qos=1, retain=True)
        for topic in self._subscribed_topics:
            client.subscribe(topic)
            logging.debug("Resubscribed to %s", topic)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        self._connected.clear()
        if reason_code != 0:
            logging.warning("Lost MQTT connection (%s); paho will reconnect", reason_code)
        else:
            logging.info("Disconnected from MQTT broker")

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage):
        """Hand (topic, text) to the daemon's queue.

        A retained scan is a frame from some earlier session, so it is
        dropped. Retained sensor readings are kept as the last known state.
        """
        if self._inbox is None:
            logging.warning("Message on %s arrived before subscribe; dropped", msg.topic)
            return
        if msg.retain and msg.topic == self.config.scan_topic:
            logging.debug("Skipping retained scan on %s", msg.topic)
            return
        self._inbox.put((msg.topic, msg.payload.decode("utf-8", errors="replace")))

    def subscribe(self, topics: List[str], message_queue: queue.Queue) -> bool:
        """Subscribe to topics; received messages go to message_queue.

        Returns:
            False if the broker is unreachable or any subscription fails.
        """
        self._inbox = message_queue
        if not self.connect():
            logging.error("Cannot subscribe: not connected to MQTT broker")
            return False

        try:
            for topic in topics:
                result, _ = self._client.subscribe(topic)
                if result != mqtt.MQTT_ERR_SUCCESS:
                    logging.error("Failed to subscribe to %s: %s", topic, result)
                    return False
                self._subscribed_topics.append(topic)
                logging.info("Subscribed to %s", topic)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logging.error("Error subscribing to topics: %s", e)
            return False
        return True

    def publish(self, topic: str, payload: str, retain: bool = False) -> bool:
        """Publish with QoS 1 and wait briefly for the broker's ack.

        Returns:
            True if the broker accepted the message.
        """
        logging.debug("-> MQTT %s: %s", topic, payload)
        if not self.connect():
            logging.error("Cannot publish to %s: not connected", topic)
            return False

        try:
            info = self._client.publish(topic, payload, qos=1, retain=retain)
            info.wait_for_publish(timeout=5.0)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logging.error("Error publishing to %s: %s", topic, e)
            return False
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logging.error("MQTT publish to %s failed with code %s", topic, info.rc)
            return False
        return True

