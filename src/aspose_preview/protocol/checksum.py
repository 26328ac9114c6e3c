"""Table-driven CRC-32 (reflected, polynomial 0xEDB88320).

The lookup table is computed once at import and never mutated, so it is
safe to share between threads.
"""

from __future__ import annotations

_POLYNOMIAL = 0xEDB88320
_MASK = 0xFFFFFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for index in range(256):
        crc = index
        for _ in range(8):
            crc = (crc >> 1) ^ _POLYNOMIAL if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


CRC32_TABLE: tuple[int, ...] = _build_table()


def crc32(data: bytes | bytearray | memoryview) -> int:
    """Return the unsigned CRC-32 of *data*."""
    table = CRC32_TABLE
    crc = _MASK
    for byte in bytes(data):
        crc = (crc >> 8) ^ table[(crc ^ byte) & 0xFF]
    return crc ^ _MASK


__all__ = ["CRC32_TABLE", "crc32"]
