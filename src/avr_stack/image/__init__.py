"""Firmware image loading and AVR instruction decoding package."""

from __future__ import annotations

from .decoder import DecodeError, Instruction, decode, decode_word
from .hexfile import HexRecord, dump_hex, load_image, parse_hex, parse_hex_record
from .memory import FirmwareImage
from .opcodes import FLOW_KINDS, FlowKind, Opcode

__all__ = [
    "FLOW_KINDS",
    "DecodeError",
    "FirmwareImage",
    "FlowKind",
    "HexRecord",
    "Instruction",
    "Opcode",
    "decode",
    "decode_word",
    "dump_hex",
    "load_image",
    "parse_hex",
    "parse_hex_record",
]
