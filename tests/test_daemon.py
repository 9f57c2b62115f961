"""Tests for the ZeroLinkDaemon module."""
import json
from unittest.mock import MagicMock, patch

import pytest

from zerolink.core.daemon import ZeroLinkDaemon
from zerolink.core.event_bus import EventType
from zerolink.transport.decoder import DecoderState
from zerolink.transport.encoder import TransportEncoder


@pytest.fixture
def mqtt_client():
    """A fake MQTT client that accepts every publish."""
    client = MagicMock()
    client.publish.return_value = True
    client.subscribe.return_value = True
    return client


@pytest.fixture
def daemon(config, mqtt_client, bus):
    """Daemon wired to the fake client and a private bus."""
    return ZeroLinkDaemon(config, mqtt_client=mqtt_client, bus=bus)


def published(mqtt_client, topic):
    """Decoded payloads published on a topic."""
    return [json.loads(c[0][1]) for c in mqtt_client.publish.call_args_list if c[0][0] == topic]


class TestZeroLinkDaemonInit:
    """Tests for daemon construction."""

    def test_init_creates_components(self, daemon, config):
        """Test decoder, engine and queue are created."""
        assert daemon.decoder.state is DecoderState.IDLE
        assert daemon.decoder.session_timeout == config.session_timeout
        assert daemon.engine.document is None
        assert daemon.message_queue.empty()
        assert daemon.running is True


class TestZeroLinkDaemonMessages:
    """Tests for handle_message."""

    def test_scan_progress_published(self, daemon, mqtt_client, config, scenario_a):
        """Test accepted chunks report progress on the status topic."""
        transfer = TransportEncoder(budget=50).encode(scenario_a)
        daemon.handle_message(config.scan_topic, transfer.payloads[0])
        status = published(mqtt_client, config.status_topic)
        assert status[-1]["status"] == "chunk_accepted"
        assert status[-1]["missing"] == [2, 3]

    def test_loaded_document_runs(self, daemon, mqtt_client, config, scenario_a):
        """Test a decoded document is loaded and evaluated against the last snapshot."""
        daemon.handle_message(config.sensor_topic, json.dumps({"temperature": 35}))
        for payload in TransportEncoder(budget=50).encode(scenario_a):
            daemon.handle_message(config.scan_topic, payload)

        assert daemon.engine.document == scenario_a
        actions = published(mqtt_client, config.action_topic)
        assert [a["type"] for a in actions] == ["log"]
        assert published(mqtt_client, config.status_topic)[-1]["documentName"] == "X"

    def test_sensor_updates_fire_actions(self, daemon, mqtt_client, config, scenario_a):
        """Test sensor snapshots drive the engine."""
        for payload in TransportEncoder().encode(scenario_a):
            daemon.handle_message(config.scan_topic, payload)
        assert published(mqtt_client, config.action_topic) == []

        daemon.handle_message(config.sensor_topic, json.dumps({"temperature": 40}))
        assert len(published(mqtt_client, config.action_topic)) == 1

    def test_partial_sensor_update_keeps_other_readings(self, daemon, config):
        """Test a snapshot message only overrides the keys it carries."""
        daemon.handle_message(config.sensor_topic, json.dumps({"motion": True}))
        daemon.handle_message(config.sensor_topic, json.dumps({"light": 5}))
        assert daemon.snapshot.motion is True
        assert daemon.snapshot.light == 5

    def test_repeated_scans_are_quiet(self, daemon, mqtt_client, config, scenario_a):
        """Test duplicates and noise publish no status."""
        payload = TransportEncoder().encode(scenario_a).payloads[0]
        daemon.handle_message(config.scan_topic, payload)
        count = mqtt_client.publish.call_count
        daemon.handle_message(config.scan_topic, payload)
        daemon.handle_message(config.scan_topic, "not a zerolink code")
        assert mqtt_client.publish.call_count == count

    @pytest.mark.parametrize("payload", ["not json", "[1, 2]"])
    def test_bad_sensor_payload_ignored(self, daemon, config, payload):
        """Test malformed sensor messages leave the snapshot alone."""
        before = daemon.snapshot
        daemon.handle_message(config.sensor_topic, payload)
        assert daemon.snapshot is before

    def test_unknown_topic_ignored(self, daemon, mqtt_client):
        """Test messages on other topics are ignored."""
        daemon.handle_message("somewhere/else", "{}")
        mqtt_client.publish.assert_not_called()

    def test_handler_failure_does_not_escape(self, daemon, config, scenario_a):
        """Test an error inside one handler is logged and later messages still work."""
        with patch.object(daemon.decoder, "feed", side_effect=RuntimeError("boom")):
            daemon.handle_message(config.scan_topic, "anything")
        for payload in TransportEncoder().encode(scenario_a):
            daemon.handle_message(config.scan_topic, payload)
        assert daemon.engine.document == scenario_a

    def test_deeply_nested_sensor_payload_ignored(self, daemon, config):
        """Test sensor JSON too deep for the parser leaves the snapshot alone."""
        before = daemon.snapshot
        daemon.handle_message(config.sensor_topic, "[" * 100000 + "]" * 100000)
        assert daemon.snapshot is before


class TestZeroLinkDaemonReset:
    """Tests for the scanner reset topic."""

    def test_reset_unblocks_other_transfer(self, daemon, mqtt_client, config, scenario_a, nested_logic):
        """Test a reset lets a second transfer load after a session mismatch."""
        first = TransportEncoder(budget=50).encode(scenario_a)
        second = TransportEncoder(budget=50).encode(nested_logic)
        daemon.handle_message(config.scan_topic, first.payloads[0])
        daemon.handle_message(config.scan_topic, second.payloads[0])
        assert published(mqtt_client, config.status_topic)[-1]["status"] == "session_mismatch"

        daemon.handle_message(config.reset_topic, "")
        assert daemon.decoder.state is DecoderState.IDLE
        assert published(mqtt_client, config.status_topic)[-1]["status"] == "reset"

        for payload in second:
            daemon.handle_message(config.scan_topic, payload)
        assert daemon.engine.document == nested_logic

    def test_reset_when_idle_still_reports(self, daemon, mqtt_client, config):
        """Test a reset with nothing in progress is harmless and acknowledged."""
        daemon.handle_message(config.reset_topic, "")
        assert daemon.decoder.state is DecoderState.IDLE
        assert [s["status"] for s in published(mqtt_client, config.status_topic)] == ["reset"]

    def test_start_subscribes_to_reset_topic(self, daemon, mqtt_client, config):
        """Test the reset topic is part of the subscription."""
        mqtt_client.subscribe.return_value = False
        daemon.start()
        topics = mqtt_client.subscribe.call_args[0][0]
        assert topics == [config.scan_topic, config.sensor_topic, config.reset_topic]


class TestZeroLinkDaemonLifecycle:
    """Tests for start and shutdown."""

    def test_start_fails_without_subscription(self, daemon, mqtt_client):
        """Test the daemon exits when it cannot subscribe."""
        mqtt_client.subscribe.return_value = False
        daemon.start()
        mqtt_client.disconnect.assert_not_called()

    def test_main_loop_processes_queue_then_stops(self, daemon, mqtt_client, config, scenario_a):
        """Test queued messages are handled and shutdown disconnects."""
        for payload in TransportEncoder().encode(scenario_a):
            daemon.message_queue.put((config.scan_topic, payload))

        original = daemon.handle_message

        def handle_and_stop(topic, payload):
            original(topic, payload)
            daemon.running = False

        daemon.handle_message = handle_and_stop
        daemon.start()

        assert daemon.engine.document == scenario_a
        assert daemon.decoder.state is DecoderState.IDLE
        mqtt_client.disconnect.assert_called_once()

    def test_verbose_traces_bus_until_shutdown(self, daemon, mqtt_client, config, bus, scenario_a):
        """Test verbose mode logs bus events and detaches on shutdown."""
        config.verbose = True
        daemon.message_queue.put((config.scan_topic, TransportEncoder().encode(scenario_a).payloads[0]))
        original = daemon.handle_message

        def handle_and_stop(topic, payload):
            original(topic, payload)
            daemon.running = False

        daemon.handle_message = handle_and_stop
        with patch.object(daemon, "_trace_event") as trace:
            daemon.start()
            traced = trace.call_count
            bus.publish(EventType.SESSION_RESET, {})
        assert traced >= 1
        assert trace.call_count == traced
