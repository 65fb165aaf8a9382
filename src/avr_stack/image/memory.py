"""Flat byte-addressable program memory."""
from __future__ import annotations

__all__ = ["FirmwareImage"]


class FirmwareImage:
    """Program memory that grows to cover the highest address written.

    Gaps left between written regions read back as zero.
    """

    def __init__(self, name: str = "firmware") -> None:
        self.name = name
        self._data = bytearray()

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "firmware") -> FirmwareImage:
        image = cls(name)
        image.write(0, data)
        return image

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def write(self, address: int, data: bytes) -> None:
        if address < 0:
            raise ValueError(f"negative address {address}")
        end = address + len(data)
        if end > len(self._data):
            self._data.extend(bytes(end - len(self._data)))
        self._data[address:end] = data

    def read_bytes(self, address: int, length: int) -> bytes:
        if address < 0 or length < 0 or address + length > len(self._data):
            raise ValueError(f"read of {length} byte(s) at 0x{address:04X} outside image of {len(self._data)} bytes")
        return bytes(self._data[address : address + length])

    def read_u16(self, address: int) -> int:
        return int.from_bytes(self.read_bytes(address, 2), "little", signed=False)
