"""Tests for Intel HEX loading."""
import pytest

from avr_stack.image.encoding import assemble, pop, push, ret, rjmp
from avr_stack.image.hexfile import dump_hex, load_image, parse_hex, parse_hex_record
from avr_stack.image.memory import FirmwareImage

TWO_RETURNS = ":0400000008950895C2\n:00000001FF\n"


def test_parse_data_record():
    image = parse_hex(TWO_RETURNS)
    assert image.size == 4
    assert image.read_u16(0) == 0x9508
    assert image.read_u16(2) == 0x9508


def test_parse_record_fields():
    record = parse_hex_record(":0400000008950895C2")
    assert record.record_type == 0
    assert record.address == 0
    assert record.data == bytes([0x08, 0x95, 0x08, 0x95])
    assert record.checksum_valid


def test_checksum_mismatch_is_rejected():
    bad = TWO_RETURNS.replace("C2", "C3")
    with pytest.raises(ValueError, match="checksum mismatch"):
        parse_hex(bad)
    assert parse_hex(bad, verify_checksum=False).size == 4


def test_missing_eof_record_is_rejected():
    with pytest.raises(ValueError, match="Missing end-of-file"):
        parse_hex(":0400000008950895C2\n")


def test_malformed_records_are_rejected():
    with pytest.raises(ValueError, match="must start with ':'"):
        parse_hex("0400000008950895C2\n:00000001FF\n")
    with pytest.raises(ValueError, match="does not match record size"):
        parse_hex(":0400000008C4\n:00000001FF\n")
    with pytest.raises(ValueError, match="invalid hex digits"):
        parse_hex(":04000000ZZ950895C2\n:00000001FF\n")
    with pytest.raises(ValueError, match="unknown record type"):
        parse_hex(":00000006FA\n:00000001FF\n")


def test_extended_linear_address():
    image = parse_hex(":020000040001F9\n:0100000000FF\n:00000001FF\n")
    assert image.size == 0x10001


def test_extended_segment_address():
    image = parse_hex(":020000021000EC\n:0100000000FF\n:00000001FF\n")
    assert image.size == 0x10001


def test_start_address_records_are_ignored():
    image = parse_hex(":0400000300000000F9\n" + TWO_RETURNS)
    assert image.size == 4


def test_gaps_read_as_zero():
    image = parse_hex(":01001000AA45\n:00000001FF\n")
    assert image.size == 0x11
    assert image.read_bytes(0, 2) == b"\x00\x00"
    assert image.read_bytes(0x10, 1) == b"\xaa"


def test_dump_hex_is_loadable():
    program = assemble([push(1)] * 12, [pop(1)] * 12, ret())
    text = dump_hex(program)
    assert text.endswith(":00000001FF\n")
    assert bytes(parse_hex(text)) == program


def test_dump_hex_crosses_64k_windows():
    data = bytes(0x10004)
    text = dump_hex(data, record_size=32)
    assert ":020000040001F9" in text
    assert parse_hex(text).size == 0x10004


def test_load_image_detects_format():
    assert load_image(TWO_RETURNS.encode()).read_u16(0) == 0x9508
    raw = load_image(assemble(ret()), name="raw")
    assert isinstance(raw, FirmwareImage)
    assert raw.name == "raw"
    assert raw.read_u16(0) == 0x9508


def test_load_image_rejects_empty_input():
    with pytest.raises(ValueError, match="Empty firmware input"):
        load_image(b"")


def test_raw_image_starting_with_colon_byte_stays_raw():
    # rjmp .+116 encodes as 0xC03A, stored little-endian as b":\xc0"
    program = assemble(rjmp(58), ret())
    assert program[:1] == b":"

    image = load_image(program)
    assert image.size == 4
    assert image.read_u16(0) == 0xC03A
    assert image.read_u16(2) == 0x9508


def test_hex_detection_tolerates_crlf_line_endings():
    image = load_image(TWO_RETURNS.replace("\n", "\r\n").encode())
    assert image.size == 4
