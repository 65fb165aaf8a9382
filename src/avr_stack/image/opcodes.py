"""AVR opcode definitions and their effect on control flow and stack height.

Only the instructions that transfer control or touch the hardware stack are
distinguished; every other defined encoding decodes as ``Opcode.OTHER``.
"""
from __future__ import annotations

from enum import Enum, StrEnum


class Opcode(StrEnum):
    NOP = "nop"
    OTHER = "other"
    # Conditional relative branches (BRBS / BRBC family)
    BRCS = "brcs"
    BREQ = "breq"
    BRMI = "brmi"
    BRVS = "brvs"
    BRLT = "brlt"
    BRHS = "brhs"
    BRTS = "brts"
    BRIE = "brie"
    BRCC = "brcc"
    BRNE = "brne"
    BRPL = "brpl"
    BRVC = "brvc"
    BRGE = "brge"
    BRHC = "brhc"
    BRTC = "brtc"
    BRID = "brid"
    # Compare/test and skip the next instruction
    CPSE = "cpse"
    SBRC = "sbrc"
    SBRS = "sbrs"
    SBIC = "sbic"
    SBIS = "sbis"
    RJMP = "rjmp"
    IJMP = "ijmp"
    EIJMP = "eijmp"
    JMP = "jmp"
    RCALL = "rcall"
    ICALL = "icall"
    EICALL = "eicall"
    CALL = "call"
    RET = "ret"
    RETI = "reti"
    PUSH = "push"
    POP = "pop"
    LDS = "lds"
    STS = "sts"


class FlowKind(Enum):
    BRANCH = "branch"
    SKIP = "skip"
    RELATIVE_JUMP = "relative_jump"
    ABSOLUTE_JUMP = "absolute_jump"
    RELATIVE_CALL = "relative_call"
    ABSOLUTE_CALL = "absolute_call"
    RETURN = "return"
    PUSH = "push"
    POP = "pop"
    FALLTHROUGH = "fallthrough"


# Status register flag index -> (mnemonic when set, mnemonic when clear).
BRANCH_MNEMONICS: dict[int, tuple[Opcode, Opcode]] = {
    0: (Opcode.BRCS, Opcode.BRCC),
    1: (Opcode.BREQ, Opcode.BRNE),
    2: (Opcode.BRMI, Opcode.BRPL),
    3: (Opcode.BRVS, Opcode.BRVC),
    4: (Opcode.BRLT, Opcode.BRGE),
    5: (Opcode.BRHS, Opcode.BRHC),
    6: (Opcode.BRTS, Opcode.BRTC),
    7: (Opcode.BRIE, Opcode.BRID),
}

BRANCH_OPCODES: frozenset[Opcode] = frozenset(op for pair in BRANCH_MNEMONICS.values() for op in pair)


FLOW_KINDS: dict[Opcode, FlowKind] = {
    **{op: FlowKind.BRANCH for op in BRANCH_OPCODES},
    Opcode.CPSE: FlowKind.SKIP,
    Opcode.SBRC: FlowKind.SKIP,
    Opcode.SBRS: FlowKind.SKIP,
    Opcode.SBIC: FlowKind.SKIP,
    Opcode.SBIS: FlowKind.SKIP,
    Opcode.RJMP: FlowKind.RELATIVE_JUMP,
    Opcode.IJMP: FlowKind.ABSOLUTE_JUMP,
    Opcode.EIJMP: FlowKind.ABSOLUTE_JUMP,
    Opcode.JMP: FlowKind.ABSOLUTE_JUMP,
    Opcode.RCALL: FlowKind.RELATIVE_CALL,
    Opcode.ICALL: FlowKind.ABSOLUTE_CALL,
    Opcode.EICALL: FlowKind.ABSOLUTE_CALL,
    Opcode.CALL: FlowKind.ABSOLUTE_CALL,
    Opcode.RET: FlowKind.RETURN,
    Opcode.RETI: FlowKind.RETURN,
    Opcode.PUSH: FlowKind.PUSH,
    Opcode.POP: FlowKind.POP,
    Opcode.NOP: FlowKind.FALLTHROUGH,
    Opcode.LDS: FlowKind.FALLTHROUGH,
    Opcode.STS: FlowKind.FALLTHROUGH,
    Opcode.OTHER: FlowKind.FALLTHROUGH,
}


# Width in words; anything not listed is a single word.
INSTRUCTION_WIDTHS: dict[Opcode, int] = {
    Opcode.JMP: 2,
    Opcode.CALL: 2,
    Opcode.LDS: 2,
    Opcode.STS: 2,
}


# Targets of these opcodes come from the Z/EIND registers and are never resolved.
INDIRECT_OPCODES: frozenset[Opcode] = frozenset({Opcode.IJMP, Opcode.EIJMP, Opcode.ICALL, Opcode.EICALL})

RELATIVE_KINDS: frozenset[FlowKind] = frozenset({FlowKind.BRANCH, FlowKind.RELATIVE_JUMP, FlowKind.RELATIVE_CALL})
