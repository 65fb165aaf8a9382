"""Machine-word builders for the instructions the decoder distinguishes.

Used to synthesize small firmware images::

    assemble(push(16), rcall(1), ret(), ret())
"""
from __future__ import annotations

from collections.abc import Iterable

from .opcodes import BRANCH_MNEMONICS, Opcode

__all__ = [
    "assemble",
    "branch",
    "brbc",
    "brbs",
    "breq",
    "brge",
    "brlt",
    "brne",
    "call",
    "cpse",
    "eicall",
    "eijmp",
    "icall",
    "ijmp",
    "jmp",
    "lds",
    "nop",
    "pop",
    "push",
    "rcall",
    "ret",
    "reti",
    "rjmp",
    "sbic",
    "sbis",
    "sbrc",
    "sbrs",
    "sts",
]

Words = int | tuple[int, ...]


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} {value} out of range [{low}, {high}]")


def _unsigned(value: int, bits: int) -> int:
    return value & ((1 << bits) - 1)


def nop() -> int:
    return 0x0000


def ret() -> int:
    return 0x9508


def reti() -> int:
    return 0x9518


def ijmp() -> int:
    return 0x9409


def eijmp() -> int:
    return 0x9419


def icall() -> int:
    return 0x9509


def eicall() -> int:
    return 0x9519


def push(register: int) -> int:
    _check_range("register", register, 0, 31)
    return 0x920F | (register << 4)


def pop(register: int) -> int:
    _check_range("register", register, 0, 31)
    return 0x900F | (register << 4)


def rjmp(displacement: int) -> int:
    _check_range("displacement", displacement, -2048, 2047)
    return 0xC000 | _unsigned(displacement, 12)


def rcall(displacement: int) -> int:
    _check_range("displacement", displacement, -2048, 2047)
    return 0xD000 | _unsigned(displacement, 12)


def _long(base: int, address: int) -> tuple[int, int]:
    _check_range("address", address, 0, (1 << 22) - 1)
    high = address >> 16
    return base | ((high >> 1) << 4) | (high & 0x01), address & 0xFFFF


def jmp(address: int) -> tuple[int, int]:
    return _long(0x940C, address)


def call(address: int) -> tuple[int, int]:
    return _long(0x940E, address)


def brbs(flag: int, displacement: int) -> int:
    _check_range("flag", flag, 0, 7)
    _check_range("displacement", displacement, -64, 63)
    return 0xF000 | (_unsigned(displacement, 7) << 3) | flag


def brbc(flag: int, displacement: int) -> int:
    return brbs(flag, displacement) | 0x0400


def branch(opcode: Opcode, displacement: int) -> int:
    """Encode a conditional branch by mnemonic (``Opcode.BREQ``, ``Opcode.BRGE``...)."""
    for flag, (is_set, is_clear) in BRANCH_MNEMONICS.items():
        if opcode == is_set:
            return brbs(flag, displacement)
        if opcode == is_clear:
            return brbc(flag, displacement)
    raise ValueError(f"{opcode!r} is not a conditional branch")


def breq(displacement: int) -> int:
    return branch(Opcode.BREQ, displacement)


def brne(displacement: int) -> int:
    return branch(Opcode.BRNE, displacement)


def brlt(displacement: int) -> int:
    return branch(Opcode.BRLT, displacement)


def brge(displacement: int) -> int:
    return branch(Opcode.BRGE, displacement)


def sbrc(register: int, bit: int) -> int:
    _check_range("register", register, 0, 31)
    _check_range("bit", bit, 0, 7)
    return 0xFC00 | (register << 4) | bit


def sbrs(register: int, bit: int) -> int:
    return sbrc(register, bit) | 0x0200


def sbic(io_address: int, bit: int) -> int:
    _check_range("io address", io_address, 0, 31)
    _check_range("bit", bit, 0, 7)
    return 0x9900 | (io_address << 3) | bit


def sbis(io_address: int, bit: int) -> int:
    return sbic(io_address, bit) | 0x0200


def cpse(rd: int, rr: int) -> int:
    _check_range("register", rd, 0, 31)
    _check_range("register", rr, 0, 31)
    return 0x1000 | ((rr & 0x10) << 5) | (rd << 4) | (rr & 0x0F)


def lds(register: int, address: int) -> tuple[int, int]:
    _check_range("register", register, 0, 31)
    _check_range("address", address, 0, 0xFFFF)
    return 0x9000 | (register << 4), address


def sts(address: int, register: int) -> tuple[int, int]:
    _check_range("register", register, 0, 31)
    _check_range("address", address, 0, 0xFFFF)
    return 0x9200 | (register << 4), address


def assemble(*items: Words | Iterable[Words]) -> bytes:
    """Pack instruction words little-endian; items may be words, word pairs or lists of either."""
    out = bytearray()
    for item in items:
        if isinstance(item, int):
            out += item.to_bytes(2, "little")
        elif isinstance(item, tuple) and all(isinstance(word, int) for word in item):
            for word in item:
                out += word.to_bytes(2, "little")
        else:
            out += assemble(*item)
    return bytes(out)
