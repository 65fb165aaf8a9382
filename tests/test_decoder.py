"""Tests for the AVR instruction decoder."""
import pytest

from avr_stack.image.decoder import DecodeError, Instruction, decode, decode_word
from avr_stack.image.encoding import (
    assemble,
    brbs,
    breq,
    brge,
    call,
    cpse,
    icall,
    ijmp,
    jmp,
    lds,
    nop,
    pop,
    push,
    rcall,
    ret,
    reti,
    rjmp,
    sbis,
    sbrc,
    sbrs,
    sts,
)
from avr_stack.image.memory import FirmwareImage
from avr_stack.image.opcodes import FLOW_KINDS, FlowKind, Opcode


def _image(*items) -> FirmwareImage:
    return FirmwareImage.from_bytes(assemble(*items))


def test_every_opcode_has_a_flow_kind():
    assert set(FLOW_KINDS) == set(Opcode)


def test_decode_stack_instructions():
    ins = decode_word(push(16))
    assert ins.opcode == Opcode.PUSH
    assert ins.operands == (16,)
    assert ins.flow is FlowKind.PUSH

    ins = decode_word(pop(3))
    assert ins.opcode == Opcode.POP
    assert ins.operands == (3,)
    assert ins.width == 1


def test_decode_returns():
    assert decode_word(ret()).opcode == Opcode.RET
    assert decode_word(reti()).opcode == Opcode.RETI
    assert decode_word(reti()).flow is FlowKind.RETURN


def test_decode_relative_jump_and_call():
    ins = decode_word(rjmp(-1))
    assert ins.opcode == Opcode.RJMP
    assert ins.target == -1
    # rjmp .-2 jumps to itself
    assert ins.resolve_target(5) == 5

    ins = decode_word(rcall(100))
    assert ins.opcode == Opcode.RCALL
    assert ins.target == 100
    assert ins.resolve_target(0) == 101


def test_decode_absolute_jump_and_call():
    image = _image(call(0x1234), jmp(0x3F_0001))
    first = decode(image, 0)
    assert first.opcode == Opcode.CALL
    assert first.width == 2
    assert first.target == 0x1234
    assert first.resolve_target(0) == 0x1234

    second = decode(image, 2)
    assert second.opcode == Opcode.JMP
    assert second.target == 0x3F_0001
    assert second.flow is FlowKind.ABSOLUTE_JUMP


def test_decode_conditional_branches():
    ins = decode_word(breq(-3))
    assert ins.opcode == Opcode.BREQ
    assert ins.target == -3
    assert ins.flow is FlowKind.BRANCH

    assert decode_word(brge(5)).opcode == Opcode.BRGE
    assert decode_word(brbs(0, 1)).opcode == Opcode.BRCS


def test_decode_skip_instructions():
    ins = decode_word(sbrs(31, 7))
    assert ins.opcode == Opcode.SBRS
    assert ins.operands == (31, 7)
    assert ins.flow is FlowKind.SKIP

    assert decode_word(sbrc(2, 0)).opcode == Opcode.SBRC
    assert decode_word(sbis(0x1F, 3)).operands == (0x1F, 3)
    assert decode_word(cpse(5, 20)).operands == (5, 20)


def test_indirect_transfers_have_unresolved_targets():
    jump = decode_word(ijmp())
    assert jump.opcode == Opcode.IJMP
    assert jump.target is None
    assert jump.resolve_target(10) is None
    assert jump.flow is FlowKind.ABSOLUTE_JUMP

    assert decode_word(icall()).flow is FlowKind.ABSOLUTE_CALL


def test_two_word_data_instructions():
    image = _image(lds(24, 0x0100), sts(0x0102, 24), nop())
    assert decode(image, 0).opcode == Opcode.LDS
    assert decode(image, 0).width == 2
    assert decode(image, 2).opcode == Opcode.STS
    assert decode(image, 4).opcode == Opcode.NOP


def test_other_instructions_fall_through():
    ins = decode_word(0x0C01)  # add r0, r17
    assert ins.opcode == Opcode.OTHER
    assert ins.flow is FlowKind.FALLTHROUGH
    assert ins.width == 1


def test_structural_identity():
    image = _image(rjmp(-1))
    assert decode(image, 0) == decode(image, 0)
    assert hash(decode(image, 0)) == hash(Instruction(Opcode.RJMP, target=-1))
    assert Instruction(Opcode.PUSH, operands=(1,)) != Instruction(Opcode.PUSH, operands=(2,))


def test_reserved_encoding_is_rejected():
    with pytest.raises(DecodeError, match="Reserved encoding 0xFFFF"):
        decode(FirmwareImage.from_bytes(b"\xff\xff"), 0)


def test_truncated_two_word_instruction_is_rejected():
    image = FirmwareImage.from_bytes(assemble(call(0x10))[:2])
    with pytest.raises(DecodeError, match="Truncated CALL"):
        decode(image, 0)


def test_decode_outside_image_is_rejected():
    with pytest.raises(DecodeError):
        decode(_image(nop()), 1)
    with pytest.raises(DecodeError):
        decode(_image(nop()), -1)
