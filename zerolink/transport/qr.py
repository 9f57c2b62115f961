"""QR code rendering of chunk payloads.

Uses the qrcode package (with Pillow) to turn each wire string of an
EncodedTransfer into an image. Error correction level L keeps the
codes small for a 250 character payload.
"""
import logging
import os
from typing import List

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

from zerolink.transport.encoder import EncodedTransfer

ERROR_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


class QrRenderer:
    """Renders payload strings as QR code images."""

    def __init__(self, box_size: int = 10, border: int = 4, error_correction: str = "L"):
        level = (error_correction or "L").upper()
        if level not in ERROR_LEVELS:
            raise ValueError(f"Unknown error correction level: {error_correction}")
        self.box_size = box_size
        self.border = border
        self.error_correction = ERROR_LEVELS[level]

    def render(self, payload: str):
        """Render one payload; returns a qrcode PIL image."""
        qr = qrcode.QRCode(
            version=None,  # let qrcode pick the smallest version that fits
            error_correction=self.error_correction,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        return qr.make_image(fill_color="black", back_color="white")

    def save_transfer(self, transfer: EncodedTransfer, directory: str) -> List[str]:
        """Write one PNG per chunk and return the file paths in chunk order."""
        os.makedirs(directory, exist_ok=True)
        paths = []
        for chunk in transfer.chunks:
            filename = f"{transfer.session_id}-{chunk.chunk_index}of{chunk.total_chunks}.png"
            path = os.path.join(directory, filename)
            self.render(chunk.to_wire()).save(path)
            paths.append(path)
        logging.info("Wrote %d QR code(s) to %s", len(paths), directory)
        return paths
