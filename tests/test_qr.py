"""Tests for QR image rendering."""
import os

import pytest

from zerolink.transport.encoder import TransportEncoder
from zerolink.transport.qr import QrRenderer


class TestQrRenderer:
    """Tests for QrRenderer."""

    def test_unknown_error_level(self):
        """Test invalid error correction levels are rejected."""
        with pytest.raises(ValueError):
            QrRenderer(error_correction="Z")

    def test_render_returns_image(self, scenario_a):
        """Test a full-budget payload renders to a square image."""
        payload = TransportEncoder().encode(scenario_a).payloads[0]
        image = QrRenderer(box_size=2, border=1).render(payload)
        width, height = image.size
        assert width == height > 0

    def test_save_transfer_writes_one_png_per_chunk(self, temp_dir, scenario_a):
        """Test files are named by session and chunk position."""
        transfer = TransportEncoder(budget=50).encode(scenario_a)
        paths = QrRenderer(box_size=1).save_transfer(transfer, os.path.join(temp_dir, "qr"))

        assert len(paths) == 3
        assert os.path.basename(paths[1]) == f"{transfer.session_id}-2of3.png"
        for path in paths:
            with open(path, "rb") as f:
                assert f.read(8) == b"\x89PNG\r\n\x1a\n"
