"""Daemon module for ZeroLink.

This module contains the ZeroLinkDaemon class that wires the transport
decoder and the rule engine to MQTT: scanned QR strings and sensor
snapshots arrive on topics, action events and scan progress go out.

The paho network thread only enqueues messages; the decoder and the
engine are driven from the main loop thread.
"""
import json
import logging
import queue
from typing import Optional

from zerolink.core.config import Config
from zerolink.core.constants import TermColors
from zerolink.core.event_bus import Event, EventBus, event_bus
from zerolink.core.utils import setup_logging
from zerolink.logic.engine import RuleEngine
from zerolink.logic.evaluator import SensorSnapshot
from zerolink.mqtt.client import MqttClient
from zerolink.mqtt.sink import MqttActionSink, publish_decode_status
from zerolink.transport.decoder import DecodeStatus, TransportDecoder

# Outcomes repeated on every camera frame; not worth a status message
QUIET_STATUSES = (DecodeStatus.IGNORED, DecodeStatus.DUPLICATE_CHUNK, DecodeStatus.ALREADY_LOADED)


class ZeroLinkDaemon:  # pylint: disable=too-many-instance-attributes
    """Main daemon class orchestrating decoder, engine and MQTT."""

    def __init__(
        self,
        config: Config,
        mqtt_client: Optional[MqttClient] = None,
        bus: Optional[EventBus] = None
    ):
        self.config = config
        self.bus = bus if bus is not None else event_bus
        self.mqtt = mqtt_client or MqttClient(config)
        self.decoder = TransportDecoder(bus=self.bus, session_timeout=config.session_timeout)
        self.engine = RuleEngine(
            sink=MqttActionSink(self.mqtt, config.action_topic),
            bus=self.bus,
            debounce_seconds=config.debounce_seconds,
            log_capacity=config.event_log_capacity,
        )
        self.snapshot = SensorSnapshot()
        self.message_queue: queue.Queue = queue.Queue()
        self.running = True
        self._untrace = None

    def handle_message(self, topic: str, payload: str) -> None:
        """Dispatch one MQTT message to the decoder or the engine.

        A failure while handling one message is logged and does not stop
        the main loop.
        """
        try:
            if topic == self.config.scan_topic:
                self._handle_scan(payload)
            elif topic == self.config.sensor_topic:
                self._handle_sensors(payload)
            elif topic == self.config.reset_topic:
                self._handle_reset()
            else:
                logging.debug("Ignoring message on unexpected topic %s", topic)
        except Exception:  # pylint: disable=broad-exception-caught
            logging.exception("Error handling message on %s", topic)

    def _handle_scan(self, payload: str) -> None:
        result = self.decoder.feed(payload)
        if result.status not in QUIET_STATUSES:
            publish_decode_status(self.mqtt, self.config.status_topic, result)
        if result.is_loaded:
            logging.info(
                "%s[LOADED] %s%s", TermColors.CYAN, result.document.name, TermColors.RESET
            )
            self.engine.load(result.document)
            self.engine.process(self.snapshot)

    def _handle_sensors(self, payload: str) -> None:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logging.warning("Ignoring non-JSON sensor payload: %s", payload[:80])
            return
        if not isinstance(data, dict):
            logging.warning("Ignoring sensor payload that is not an object")
            return
        self.snapshot = SensorSnapshot.from_dict({**self.snapshot.to_dict(), **data})
        self.engine.process(self.snapshot)

    def _handle_reset(self) -> None:
        """Drop the scan in progress so a new transfer can start."""
        self.decoder.reset()
        logging.info("%s[RESET] Scanner reset%s", TermColors.YELLOW, TermColors.RESET)
        self.mqtt.publish(
            self.config.status_topic,
            json.dumps({"status": "reset", "message": "Scanner reset; ready for a new transfer"})
        )

    def start(self):
        """Start the daemon and block until stopped."""
        setup_logging(self.config.verbose)
        if self.config.verbose:
            self._untrace = self.bus.subscribe(None, self._trace_event)

        topics = [self.config.scan_topic, self.config.sensor_topic, self.config.reset_topic]
        if not self.mqtt.subscribe(topics, self.message_queue):
            logging.error("Could not subscribe to %s; exiting", ", ".join(topics))
            return

        logging.info(
            "ZeroLink daemon started. Scans: %s, sensors: %s, actions: %s, reset: %s",
            self.config.scan_topic, self.config.sensor_topic, self.config.action_topic,
            self.config.reset_topic
        )
        self._main_loop()

    def _trace_event(self, event: Event) -> None:
        logging.debug("[bus] %s %s", event.type.value, event.data)

    def _main_loop(self):
        """Main event loop for the daemon."""
        try:
            while self.running:
                try:
                    topic, payload = self.message_queue.get(timeout=1.0)
                except queue.Empty:
                    continue
                self.handle_message(topic, payload)
        except KeyboardInterrupt:
            logging.info("Stopping daemon (KeyboardInterrupt)...")
        finally:
            self._shutdown()

    def _shutdown(self):
        """Gracefully shutdown the daemon."""
        self.running = False
        self.decoder.reset()
        if self._untrace is not None:
            self._untrace()
        self.mqtt.disconnect()
        logging.info("Daemon shutdown complete")
