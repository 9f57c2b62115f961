"""Chunk integrity checksum.

A 32-bit rolling hash over the UTF-16 code units of the chunk data,
rendered as the base-36 string of its absolute value. Sender and
receiver must run exactly this algorithm; any change needs a
PROTOCOL_VERSION bump.
"""

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_signed32(value: int) -> int:
    value &= 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return value


def to_base36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if value < 0:
        raise ValueError("to_base36 expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def utf16_units(data: str):
    """Yield the UTF-16 code units of data (surrogate pairs split)."""
    raw = data.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(raw), 2):
        yield raw[i] | (raw[i + 1] << 8)


def checksum(data: str) -> str:
    """Compute the integrity tag of a chunk's data.

    Args:
        data: The chunk data substring

    Returns:
        Base-36 checksum string, at most 6 characters
    """
    h = 0
    for unit in utf16_units(data):
        h = _to_signed32((h << 5) - h + unit)
    return to_base36(abs(h))
