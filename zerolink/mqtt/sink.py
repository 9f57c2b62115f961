"""MQTT sinks for rule engine and decoder output."""
import json
import logging
from typing import TYPE_CHECKING

from zerolink.core.constants import MqttTopics
from zerolink.logic.engine import ActionEvent
from zerolink.transport.decoder import DecodeResult

# Avoid importing paho in modules that only type-check against the client
if TYPE_CHECKING:
    from zerolink.mqtt.client import MqttClient


class MqttActionSink:
    """Publishes ActionEvents as JSON; pass it to RuleEngine as its sink."""

    def __init__(self, mqtt_client: 'MqttClient', topic: str = MqttTopics.ACTIONS):
        self.mqtt = mqtt_client
        self.topic = topic

    def __call__(self, event: ActionEvent) -> None:
        if not self.mqtt.publish(self.topic, json.dumps(event.to_dict())):
            logging.warning("Action %s was not delivered to %s", event.type, self.topic)


def publish_decode_status(mqtt_client: 'MqttClient', topic: str, result: DecodeResult) -> bool:
    """Publish a decoder outcome so a remote UI can show scan progress."""
    status = {
        "status": result.status.value,
        "message": result.describe(),
        "sessionId": result.session_id,
        "chunkIndex": result.chunk_index,
        "totalChunks": result.total_chunks,
        "received": result.received,
        "missing": result.missing,
    }
    if result.document is not None:
        status["documentName"] = result.document.name
    return mqtt_client.publish(topic, json.dumps(status))
