"""AVR instruction decoder.

Program counters are word addresses; the word at pc lives at byte ``2 * pc``.
"""
from __future__ import annotations

from dataclasses import dataclass

from .memory import FirmwareImage
from .opcodes import (
    BRANCH_MNEMONICS,
    FLOW_KINDS,
    INDIRECT_OPCODES,
    INSTRUCTION_WIDTHS,
    RELATIVE_KINDS,
    FlowKind,
    Opcode,
)

__all__ = ["DecodeError", "Instruction", "decode", "decode_word"]


class DecodeError(ValueError):
    """Raised when the bytes at a program counter do not form a valid instruction."""

    def __init__(self, pc: int, message: str) -> None:
        super().__init__(f"{message} at pc 0x{pc:04X}")
        self.pc = pc


@dataclass(slots=True, frozen=True)
class Instruction:
    opcode: Opcode
    width: int = 1
    # Displacement for relative transfers, word address for absolute ones,
    # None when the target cannot be resolved statically.
    target: int | None = None
    operands: tuple[int, ...] = ()

    @property
    def flow(self) -> FlowKind:
        return FLOW_KINDS[self.opcode]

    def resolve_target(self, pc: int) -> int | None:
        """Absolute word address this instruction transfers to when executed at *pc*."""
        if self.target is None:
            return None
        if self.flow in RELATIVE_KINDS:
            return pc + self.width + self.target
        return self.target

    def __str__(self) -> str:
        parts = [self.opcode.value]
        if self.opcode in INDIRECT_OPCODES:
            return parts[0]
        if self.target is not None:
            parts.append(f"{self.target:+d}" if self.flow in RELATIVE_KINDS else f"0x{self.target:04X}")
        parts.extend(str(op) for op in self.operands)
        return " ".join(parts)


def _signed(value: int, bits: int) -> int:
    sign = 1 << (bits - 1)
    return value - (1 << bits) if value & sign else value


def decode_word(word: int, pc: int = 0, extension: int | None = None) -> Instruction:
    """Decode a single instruction word; *extension* is the following word for 32-bit forms."""
    if word == 0x0000:
        return Instruction(Opcode.NOP)

    if word in (0x9508, 0x9518):
        return Instruction(Opcode.RET if word == 0x9508 else Opcode.RETI)
    if word == 0x9409:
        return Instruction(Opcode.IJMP)
    if word == 0x9419:
        return Instruction(Opcode.EIJMP)
    if word == 0x9509:
        return Instruction(Opcode.ICALL)
    if word == 0x9519:
        return Instruction(Opcode.EICALL)

    top = word & 0xF000
    if top in (0xC000, 0xD000):
        opcode = Opcode.RJMP if top == 0xC000 else Opcode.RCALL
        return Instruction(opcode, target=_signed(word & 0x0FFF, 12))

    if (word & 0xF808) == 0xF808:
        raise DecodeError(pc, f"Reserved encoding 0x{word:04X}")

    if (word & 0xF800) == 0xF000:
        flag = word & 0x07
        is_set, is_clear = BRANCH_MNEMONICS[flag]
        opcode = is_clear if word & 0x0400 else is_set
        return Instruction(opcode, target=_signed((word >> 3) & 0x7F, 7), operands=(flag,))

    if (word & 0xFC08) == 0xFC00:
        opcode = Opcode.SBRS if word & 0x0200 else Opcode.SBRC
        return Instruction(opcode, operands=((word >> 4) & 0x1F, word & 0x07))

    if (word & 0xFC00) == 0x1000:
        rd = (word >> 4) & 0x1F
        rr = ((word >> 5) & 0x10) | (word & 0x0F)
        return Instruction(Opcode.CPSE, operands=(rd, rr))

    if (word & 0xFD00) == 0x9900:
        opcode = Opcode.SBIS if word & 0x0200 else Opcode.SBIC
        return Instruction(opcode, operands=((word >> 3) & 0x1F, word & 0x07))

    if (word & 0xFE0F) in (0x920F, 0x900F):
        opcode = Opcode.PUSH if word & 0x0200 else Opcode.POP
        return Instruction(opcode, operands=((word >> 4) & 0x1F,))

    if (word & 0xFE0C) == 0x940C:
        opcode = Opcode.CALL if word & 0x0002 else Opcode.JMP
        if extension is None:
            raise DecodeError(pc, f"Truncated {opcode.name}")
        high = (((word >> 4) & 0x1F) << 1) | (word & 0x01)
        return Instruction(opcode, width=INSTRUCTION_WIDTHS[opcode], target=(high << 16) | extension)

    if (word & 0xFC0F) == 0x9000:
        opcode = Opcode.STS if word & 0x0200 else Opcode.LDS
        if extension is None:
            raise DecodeError(pc, f"Truncated {opcode.name}")
        return Instruction(opcode, width=INSTRUCTION_WIDTHS[opcode], operands=((word >> 4) & 0x1F, extension))

    return Instruction(Opcode.OTHER, operands=(word,))


def decode(image: FirmwareImage, pc: int) -> Instruction:
    """Decode the instruction at word address *pc* of *image*."""
    address = pc * 2
    if pc < 0 or address + 2 > image.size:
        raise DecodeError(pc, "Instruction outside image")
    word = image.read_u16(address)
    extension = image.read_u16(address + 2) if address + 4 <= image.size else None
    return decode_word(word, pc, extension)
