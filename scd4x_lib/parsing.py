"""Pure functions for framing commands and decoding sensor responses."""

from typing import List

from scd4x_lib import protocol
from scd4x_lib.errors import ProtocolError
from scd4x_lib.models import Measurement


def crc8(data: bytes) -> int:
    """Compute the Sensirion CRC-8 over a data word.

    Polynomial 0x31, init 0xFF, MSB first, no final XOR.

    Args:
        data: Bytes to checksum (normally one 2-byte word)

    Returns:
        Checksum byte as int
    """
    crc = protocol.CRC8_INIT
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x80:
                crc = ((crc << 1) ^ protocol.CRC8_POLYNOMIAL) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
    return crc


def valid_crc(data: bytes, checksum: int) -> bool:
    """Check a received word against its transmitted checksum byte."""
    return crc8(data) == checksum


def build_command_frame(opcode: int, args: bytes = b"") -> bytes:
    """Build the byte sequence for a command.

    Layout: opcode MSB, opcode LSB, then for every 2-byte argument word the
    two data bytes followed by their CRC byte.

    Args:
        opcode: 16-bit command opcode
        args: Argument bytes, must be an even number of bytes

    Returns:
        Frame ready to be written to the bus

    Raises:
        ValueError: If opcode is out of range or args has odd length
    """
    if not (0 <= opcode <= 0xFFFF):
        raise ValueError(f"opcode must be a 16-bit value, got {opcode:#x}")
    if len(args) % protocol.WORD_SIZE != 0:
        raise ValueError(
            f"arguments length must be even (pairs of bytes), got {len(args)}"
        )

    frame = bytearray(opcode.to_bytes(2, "big"))
    for i in range(0, len(args), protocol.WORD_SIZE):
        word = args[i : i + protocol.WORD_SIZE]
        frame += word
        frame.append(crc8(word))
    return bytes(frame)


def encode_word(value: int) -> bytes:
    """Encode an unsigned 16-bit argument as big-endian bytes."""
    if not (0 <= value <= 0xFFFF):
        raise ValueError(f"argument word must be 0-65535, got {value}")
    return value.to_bytes(2, "big")


def decode_words(buf: bytes, count: int) -> List[int]:
    """Validate and decode a response made of CRC-protected words.

    Every word is checked independently; a single bad checksum rejects the
    whole response.

    Args:
        buf: Raw response bytes
        count: Number of words expected

    Returns:
        List of decoded 16-bit values in transmission order

    Raises:
        ProtocolError: If the length is wrong or any word fails its checksum
    """
    expected = count * protocol.WORD_WITH_CRC_SIZE
    if len(buf) != expected:
        raise ProtocolError(f"Expected {expected} response bytes, got {len(buf)}")

    words: List[int] = []
    for index in range(count):
        offset = index * protocol.WORD_WITH_CRC_SIZE
        data = bytes(buf[offset : offset + protocol.WORD_SIZE])
        checksum = buf[offset + protocol.WORD_SIZE]
        if not valid_crc(data, checksum):
            raise ProtocolError(
                f"CRC check failed for word {index} at position {offset}: "
                f"data={data.hex()} crc={checksum:#04x} expected={crc8(data):#04x}"
            )
        words.append(int.from_bytes(data, "big"))
    return words


def is_data_ready(status_word: int) -> bool:
    """Interpret the get_data_ready_status word.

    Only the lower 11 bits carry readiness; anything outside the mask is ignored.
    """
    return (status_word & protocol.DATA_READY_MASK) != 0


def convert_temperature(raw: int) -> float:
    """Convert a raw temperature word to degrees Celsius."""
    return protocol.TEMPERATURE_OFFSET_C + protocol.TEMPERATURE_SPAN_C * (
        raw / protocol.RAW_FULL_SCALE
    )


def convert_humidity(raw: int) -> float:
    """Convert a raw humidity word to percent relative humidity."""
    return protocol.HUMIDITY_SPAN_PCT * (raw / protocol.RAW_FULL_SCALE)


def parse_measurement(buf: bytes) -> Measurement:
    """Decode a 9-byte read_measurement response.

    Args:
        buf: Raw response (3 words, each followed by its CRC)

    Returns:
        Measurement in physical units

    Raises:
        ProtocolError: If any word fails validation
    """
    co2_raw, temp_raw, hum_raw = decode_words(buf, protocol.MEASUREMENT_RESPONSE_WORDS)
    return Measurement(
        co2_ppm=float(co2_raw),
        temperature_c=convert_temperature(temp_raw),
        humidity_pct=convert_humidity(hum_raw),
    )
