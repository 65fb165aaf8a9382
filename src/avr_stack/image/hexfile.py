"""Intel HEX loader and raw-image fallback."""
from __future__ import annotations

import re
from dataclasses import dataclass

from .memory import FirmwareImage

__all__ = ["HexRecord", "dump_hex", "load_image", "parse_hex", "parse_hex_record"]

RECORD_DATA = 0x00
RECORD_EOF = 0x01
RECORD_EXTENDED_SEGMENT = 0x02
RECORD_START_SEGMENT = 0x03
RECORD_EXTENDED_LINEAR = 0x04
RECORD_START_LINEAR = 0x05

MAX_RECORD_DATA = 255

_HEX_RECORD_LINE = re.compile(rb":[0-9A-Fa-f]+")


@dataclass(slots=True, frozen=True)
class HexRecord:
    record_type: int
    address: int
    data: bytes
    checksum: int
    checksum_valid: bool


def _record_checksum(payload: bytes) -> int:
    return (-sum(payload)) & 0xFF


def parse_hex_record(line: str, *, line_number: int = 0) -> HexRecord:
    """Parse a single ``:LLAAAATT...CC`` record."""
    if not line.startswith(":"):
        raise ValueError(f"Line {line_number}: record must start with ':'")
    try:
        raw = bytes.fromhex(line[1:])
    except ValueError as exc:
        raise ValueError(f"Line {line_number}: invalid hex digits") from exc
    if len(raw) < 5:
        raise ValueError(f"Line {line_number}: record too short")

    length = raw[0]
    if len(raw) != length + 5:
        raise ValueError(f"Line {line_number}: length field {length} does not match record size")

    checksum = raw[-1]
    return HexRecord(
        record_type=raw[3],
        address=int.from_bytes(raw[1:3], "big"),
        data=raw[4:-1],
        checksum=checksum,
        checksum_valid=_record_checksum(raw[:-1]) == checksum,
    )


def parse_hex(text: str, *, verify_checksum: bool = True, name: str = "firmware") -> FirmwareImage:
    """Populate a firmware image from Intel HEX text."""
    image = FirmwareImage(name)
    base = 0
    for line_number, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line:
            continue
        record = parse_hex_record(line, line_number=line_number)
        if verify_checksum and not record.checksum_valid:
            raise ValueError(f"Line {line_number}: checksum mismatch (got 0x{record.checksum:02X})")

        if record.record_type == RECORD_DATA:
            image.write(base + record.address, record.data)
        elif record.record_type == RECORD_EOF:
            return image
        elif record.record_type == RECORD_EXTENDED_SEGMENT:
            if len(record.data) != 2:
                raise ValueError(f"Line {line_number}: extended segment record needs 2 data bytes")
            base = int.from_bytes(record.data, "big") << 4
        elif record.record_type == RECORD_EXTENDED_LINEAR:
            if len(record.data) != 2:
                raise ValueError(f"Line {line_number}: extended linear record needs 2 data bytes")
            base = int.from_bytes(record.data, "big") << 16
        elif record.record_type in (RECORD_START_SEGMENT, RECORD_START_LINEAR):
            continue
        else:
            raise ValueError(f"Line {line_number}: unknown record type 0x{record.record_type:02X}")

    raise ValueError("Missing end-of-file record")


def _format_record(record_type: int, address: int, data: bytes) -> str:
    payload = bytes([len(data)]) + address.to_bytes(2, "big") + bytes([record_type]) + data
    return ":" + (payload + bytes([_record_checksum(payload)])).hex().upper()


def dump_hex(data: bytes, *, record_size: int = 16) -> str:
    """Render *data* (loaded at address 0) as Intel HEX text."""
    if not 0 < record_size <= MAX_RECORD_DATA:
        raise ValueError(f"record size must be between 1 and {MAX_RECORD_DATA}")
    lines: list[str] = []
    segment = 0
    for offset in range(0, len(data), record_size):
        chunk = data[offset : offset + record_size]
        # Keep every record inside one 64 KiB window.
        while chunk:
            upper = offset >> 16
            if upper != segment:
                lines.append(_format_record(RECORD_EXTENDED_LINEAR, 0, upper.to_bytes(2, "big")))
                segment = upper
            room = 0x10000 - (offset & 0xFFFF)
            lines.append(_format_record(RECORD_DATA, offset & 0xFFFF, chunk[:room]))
            offset += len(chunk[:room])
            chunk = chunk[room:]
    lines.append(_format_record(RECORD_EOF, 0, b""))
    return "\n".join(lines) + "\n"


def _looks_like_hex(data: bytes) -> bool:
    first_line = data.lstrip().split(b"\n", 1)[0].strip()
    return _HEX_RECORD_LINE.fullmatch(first_line) is not None


def load_image(data: bytes, *, verify_checksum: bool = True, name: str = "firmware") -> FirmwareImage:
    """Load Intel HEX when the first line is a hex record, otherwise treat *data* as a raw binary image."""
    if not data:
        raise ValueError("Empty firmware input")
    if _looks_like_hex(data):
        try:
            text = data.decode("ascii")
        except UnicodeDecodeError as exc:
            raise ValueError("Intel HEX input is not ASCII") from exc
        return parse_hex(text, verify_checksum=verify_checksum, name=name)
    return FirmwareImage.from_bytes(data, name=name)
