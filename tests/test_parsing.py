"""Tests for checksum, command framing and response decoding."""

import pytest

from fakes.fake_bus import encode_response, encode_response_word
from scd4x_lib import parsing
from scd4x_lib.errors import ProtocolError


def test_crc8_datasheet_vector() -> None:
    """Test the reference vector from the SCD4x datasheet."""
    assert parsing.crc8(b"\xBE\xEF") == 0x92


def test_crc8_accepts_matching_checksum_for_all_pairs() -> None:
    """Test that every byte pair validates against its own checksum."""
    for value in range(0x10000):
        data = value.to_bytes(2, "big")
        assert parsing.valid_crc(data, parsing.crc8(data))


def test_crc8_rejects_single_bit_corruption() -> None:
    """Test that flipping any one bit of data or checksum is detected."""
    for value in range(0, 0x10000, 257):
        data = value.to_bytes(2, "big")
        checksum = parsing.crc8(data)

        for bit in range(16):
            corrupted = (value ^ (1 << bit)).to_bytes(2, "big")
            assert not parsing.valid_crc(corrupted, checksum), f"{value:#06x} bit {bit}"

        for bit in range(8):
            assert not parsing.valid_crc(data, checksum ^ (1 << bit))


def test_build_command_frame_without_args() -> None:
    """Test that a bare command is just the big-endian opcode."""
    assert parsing.build_command_frame(0x21B1) == b"\x21\xb1"
    assert parsing.build_command_frame(0x3F86) == b"\x3f\x86"


def test_build_command_frame_appends_crc_per_word() -> None:
    """Test that each argument word is followed by its own checksum."""
    frame = parsing.build_command_frame(0xE000, b"\xbe\xef\x03\x76")

    assert frame[:2] == b"\xe0\x00"
    assert frame[2:5] == b"\xbe\xef\x92"
    assert frame[5:7] == b"\x03\x76"
    assert frame[7] == parsing.crc8(b"\x03\x76")
    assert len(frame) == 8


def test_build_command_frame_rejects_odd_args() -> None:
    """Test that argument bytes must come in pairs."""
    with pytest.raises(ValueError):
        parsing.build_command_frame(0xE000, b"\x01")


def test_build_command_frame_rejects_wide_opcode() -> None:
    with pytest.raises(ValueError):
        parsing.build_command_frame(0x1_0000)


def test_decode_words_returns_values_in_order() -> None:
    """Test decoding a multi-word response."""
    buf = encode_response(800, 0x6667, 0x1234)
    assert parsing.decode_words(buf, 3) == [800, 0x6667, 0x1234]


def test_decode_words_rejects_any_bad_word() -> None:
    """Test that one corrupted word invalidates the whole response."""
    for bad_index in range(3):
        words = [encode_response_word(v, corrupt=(i == bad_index)) for i, v in enumerate((1, 2, 3))]
        with pytest.raises(ProtocolError, match=f"word {bad_index}"):
            parsing.decode_words(b"".join(words), 3)


def test_decode_words_rejects_wrong_length() -> None:
    """Test that a truncated response is malformed."""
    with pytest.raises(ProtocolError):
        parsing.decode_words(encode_response(1, 2), 3)


@pytest.mark.parametrize(
    "status, ready",
    [
        (0x0000, False),
        (0x0001, True),
        (0x0800, False),
        (0x07FF, True),
        (0x8006, True),
        (0xF800, False),
    ],
)
def test_is_data_ready_masks_status_word(status: int, ready: bool) -> None:
    """Test that only the lower 11 bits count toward readiness."""
    assert parsing.is_data_ready(status) is ready


def test_temperature_conversion_endpoints() -> None:
    assert parsing.convert_temperature(0) == pytest.approx(-45.0)
    assert parsing.convert_temperature(65535) == pytest.approx(130.0)


def test_humidity_conversion() -> None:
    assert parsing.convert_humidity(0) == pytest.approx(0.0)
    assert parsing.convert_humidity(32768) == pytest.approx(100 * 32768 / 65535)
    assert parsing.convert_humidity(65535) == pytest.approx(100.0)


def test_parse_measurement() -> None:
    """Test decoding a full read_measurement response."""
    measurement = parsing.parse_measurement(encode_response(800, 0x6667, 0x6667))

    assert measurement.co2_ppm == 800.0
    assert measurement.temperature_c == pytest.approx(-45 + 175 * 0x6667 / 65535)
    assert measurement.humidity_pct == pytest.approx(100 * 0x6667 / 65535)


def test_encode_word_range() -> None:
    assert parsing.encode_word(0x0376) == b"\x03\x76"
    with pytest.raises(ValueError):
        parsing.encode_word(-1)
    with pytest.raises(ValueError):
        parsing.encode_word(0x10000)
