#!/usr/bin/env python3
"""Entry point for running ZeroLink as a module: python -m zerolink

Commands:
    encode FILE     Split a logic document into QR chunk strings
    decode FILE     Reassemble a document from scanned strings (one per line)
    run FILE        Evaluate a document once against the given sensor values
    generate TEXT   Ask the configured AI provider to write a document
    daemon          Decode scans and run rules from MQTT topics
"""
import logging
import os
import signal
import sys
from typing import Optional

from zerolink.core.config import Config
from zerolink.core.constants import TermColors
from zerolink.core.errors import LogicValidationError
from zerolink.core.utils import setup_logging
from zerolink.logic.engine import RuleEngine
from zerolink.logic.evaluator import SensorSnapshot
from zerolink.logic.schema import LogicDocument, load_document, serialize_document
from zerolink.logic.store import LogicStore
from zerolink.transport.decoder import DecodeStatus, TransportDecoder
from zerolink.transport.encoder import TransportEncoder


def _read_input(path: Optional[str]) -> str:
    """Read a file, or stdin when no path (or "-") is given."""
    if not path or path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _load_input_document(config: Config) -> LogicDocument:
    """Load the document named on the command line.

    The target is a JSON file path, or the id of a saved document.
    """
    target = config.input_file
    if target and target != "-" and not os.path.exists(target):
        document = LogicStore(config.store_file).get(target)
        if document is None:
            raise LogicValidationError([f"no such file or saved logic: {target}"])
        return document
    return load_document(_read_input(target))


def cmd_encode(config: Config) -> int:
    """Print one chunk string per line; optionally render PNGs."""
    # Storage ids are local to each device
    document = _load_input_document(config).with_id(None)
    encoder = TransportEncoder(budget=config.chunk_budget, min_chunk_size=config.min_chunk_size)
    transfer = encoder.encode(document)
    logging.info(
        "Encoded '%s' into %d chunk(s), session %s",
        document.name, transfer.total_chunks, transfer.session_id
    )
    for payload in transfer:
        print(payload)

    if config.qr_dir:
        # Pillow and qrcode are only needed for image output
        from zerolink.transport.qr import QrRenderer  # pylint: disable=import-outside-toplevel
        paths = QrRenderer().save_transfer(transfer, config.qr_dir)
        logging.info("Wrote %d QR image(s) to %s", len(paths), config.qr_dir)
    return 0


def cmd_decode(config: Config) -> int:
    """Feed scanned strings to a decoder and save the loaded document."""
    decoder = TransportDecoder(session_timeout=config.session_timeout)
    result = None
    for line in _read_input(config.input_file).splitlines():
        if not line.strip():
            continue
        result = decoder.feed(line)
        logging.info("%s", result.describe())
        if result.status is DecodeStatus.ASSEMBLY_ERROR:
            logging.error("%s[FAILED]%s %s", TermColors.RED, TermColors.RESET, result.error)

    if decoder.document is None:
        result = decoder.finalize()
        logging.error("%s[INCOMPLETE]%s %s", TermColors.RED, TermColors.RESET, result.describe())
        return 1

    saved = LogicStore(config.store_file).save(decoder.document)
    logging.info(
        "%s[LOADED]%s '%s' saved as %s", TermColors.GREEN, TermColors.RESET, saved.name, saved.id
    )
    print(serialize_document(saved))
    return 0


def cmd_run(config: Config) -> int:
    """Evaluate a document once and print the actions it fires."""
    document = _load_input_document(config)
    engine = RuleEngine(
        debounce_seconds=config.debounce_seconds, log_capacity=config.event_log_capacity
    )
    engine.load(document)
    snapshot = SensorSnapshot(
        temperature=config.temperature, light=config.light, motion=config.motion
    )
    events = engine.process(snapshot)
    if not events:
        logging.info("No trigger matched %s", snapshot.to_dict())
    for entry in reversed(engine.event_log):
        print(f"[{entry.level}] {entry.message}")
    return 0


def cmd_generate(config: Config) -> int:
    """Generate a document from natural language and save it."""
    # AI SDKs are only imported for this command
    # pylint: disable=import-outside-toplevel
    from zerolink.ai.generator import LogicGenerator
    from zerolink.ai.key_rotator import KeyRotator
    from zerolink.ai.providers import create_provider

    generator = LogicGenerator(
        create_provider(config), KeyRotator(config.api_keys()), config.ai_model
    )
    result = generator.generate(config.prompt or "")
    if not result.ok:
        logging.error("%s", result.error)
        return 1

    saved = LogicStore(config.store_file).save(result.document)
    logging.info("Generated '%s' saved as %s", saved.name, saved.id)
    print(serialize_document(saved))
    return 0


def cmd_daemon(config: Config) -> int:
    """Run the MQTT daemon until SIGINT/SIGTERM."""
    from zerolink.core.daemon import ZeroLinkDaemon  # pylint: disable=import-outside-toplevel

    daemon = ZeroLinkDaemon(config)

    # Handle SIGTERM for graceful shutdown (e.g., docker stop)
    def handle_signal(signum, frame):  # pylint: disable=unused-argument
        logging.info("Received signal %d, stopping...", signum)
        daemon.running = False

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    daemon.start()
    return 0


COMMAND_HANDLERS = {
    "encode": cmd_encode,
    "decode": cmd_decode,
    "run": cmd_run,
    "generate": cmd_generate,
    "daemon": cmd_daemon,
}


def main(argv=None) -> int:
    """Main entry point for the ZeroLink command line."""
    config = Config.from_args(argv)
    setup_logging(config.verbose)
    try:
        return COMMAND_HANDLERS[config.command](config)
    except LogicValidationError as e:
        logging.error("Invalid logic document: %s", e)
        return 2
    except OSError as e:
        logging.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
