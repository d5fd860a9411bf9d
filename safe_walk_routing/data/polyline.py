"""
Encoded polyline format (signed-delta, base64-style characters, 5 decimals).
"""

from typing import Iterable, List, Tuple

PRECISION = 5


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1f)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return ''.join(chunks)


def encode_polyline(coords: Iterable[Tuple[float, float]], precision: int = PRECISION) -> str:
    """
    Encode (lat, lon) pairs into a polyline string.

    Args:
        coords: Ordered (lat, lon) pairs
        precision: Decimal places preserved

    Returns:
        Encoded polyline
    """
    factor = 10 ** precision
    prev_lat = prev_lon = 0
    parts = []
    for lat, lon in coords:
        ilat = int(round(lat * factor))
        ilon = int(round(lon * factor))
        parts.append(_encode_value(ilat - prev_lat))
        parts.append(_encode_value(ilon - prev_lon))
        prev_lat, prev_lon = ilat, ilon
    return ''.join(parts)


def decode_polyline(encoded: str, precision: int = PRECISION) -> List[Tuple[float, float]]:
    """
    Decode a polyline string back into (lat, lon) pairs.

    Raises:
        ValueError: If the string is truncated
    """
    factor = 10 ** precision
    coords = []
    index = lat = lon = 0
    length = len(encoded)

    while index < length:
        deltas = []
        for _ in range(2):
            shift = result = 0
            while True:
                if index >= length:
                    raise ValueError("Truncated polyline")
                byte = ord(encoded[index]) - 63
                index += 1
                result |= (byte & 0x1f) << shift
                shift += 5
                if byte < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lon += deltas[1]
        coords.append((lat / factor, lon / factor))

    return coords
