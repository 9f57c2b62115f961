"""MQTT package for ZeroLink.

This package contains the paho-mqtt client and the sinks that publish
action events and scan progress.
"""
from zerolink.mqtt.client import MqttClient
from zerolink.mqtt.sink import MqttActionSink, publish_decode_status

__all__ = ["MqttClient", "MqttActionSink", "publish_decode_status"]
