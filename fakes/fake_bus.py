"""Fake I2C buses for exercising the SCD4x driver without hardware.

FakeSCD4x simulates the sensor's command set and periodic measurement state.
ScriptedBus records every transaction and plays back canned responses, for
tests that need exact control over each bus exchange.
"""

import logging
from collections import deque
from typing import Deque, List, Optional, Tuple, Union

from scd4x_lib import protocol
from scd4x_lib.errors import TransportError
from scd4x_lib.parsing import crc8

logger = logging.getLogger(__name__)


def encode_response_word(value: int, corrupt: bool = False) -> bytes:
    """Encode a 16-bit value the way the sensor sends it: 2 data bytes + CRC.

    Args:
        value: 16-bit value
        corrupt: If True, flip one bit of the CRC byte
    """
    data = value.to_bytes(2, "big")
    checksum = crc8(data)
    if corrupt:
        checksum ^= 0x01
    return data + bytes([checksum])


def encode_response(*values: int) -> bytes:
    """Encode several words into one response."""
    return b"".join(encode_response_word(v) for v in values)


class FakeSCD4x:
    """Deterministic simulator of an SCD4x on the I2C bus.

    Implements:
    - start/stop periodic measurement (idle vs measuring state)
    - get_data_ready_status with upper status bits set, as the real sensor does
    - read_measurement returning configurable raw words
    - set_ambient_pressure / set_temperature_offset with argument CRC checking
    - fault injection: NACKed transactions and corrupted response checksums
    """

    def __init__(
        self,
        co2_raw: int = 800,
        temperature_raw: int = 0x6667,
        humidity_raw: int = 0x6667,
    ) -> None:
        """Initialize fake sensor.

        Args:
            co2_raw: Raw CO2 word returned by read_measurement
            temperature_raw: Raw temperature word
            humidity_raw: Raw humidity word
        """
        self.co2_raw = co2_raw
        self.temperature_raw = temperature_raw
        self.humidity_raw = humidity_raw

        # Runtime state
        self.measuring = False
        self.data_ready = True
        self.ambient_pressure_hpa: Optional[int] = None
        self.temperature_offset_raw: Optional[int] = None

        # Fault injection
        self.fail_transactions = 0  # NACK the next N transactions
        self.fail_always = False
        self.corrupt_next_response = False

        # Observability for tests
        self.commands: List[int] = []
        self.transaction_count = 0

        self._pending_response: Optional[bytes] = None

        self.is_open = True

    def close(self) -> None:
        """Close the fake bus."""
        self.is_open = False
        logger.debug("FakeSCD4x closed")

    def transact(self, write: bytes, read: bytearray) -> None:
        """Handle one bus exchange (BusTransport protocol)."""
        if not self.is_open:
            raise TransportError("Fake bus is closed")

        self.transaction_count += 1

        if self.fail_always:
            raise TransportError("Simulated NACK (device absent)")
        if self.fail_transactions > 0:
            self.fail_transactions -= 1
            raise TransportError("Simulated NACK")

        if write:
            self._handle_command(bytes(write))

        if read:
            self._fill_response(read)

    def _handle_command(self, frame: bytes) -> None:
        if len(frame) < 2 or (len(frame) - 2) % protocol.WORD_WITH_CRC_SIZE != 0:
            raise TransportError(f"Malformed command frame: {frame.hex()}")

        opcode = int.from_bytes(frame[:2], "big")
        args: List[int] = []
        for i in range(2, len(frame), protocol.WORD_WITH_CRC_SIZE):
            word = frame[i : i + 2]
            if crc8(word) != frame[i + 2]:
                # Real sensor NACKs arguments with a bad checksum
                raise TransportError(f"Argument CRC mismatch for command {opcode:#06x}")
            args.append(int.from_bytes(word, "big"))

        self.commands.append(opcode)
        logger.debug(f"FakeSCD4x received command {opcode:#06x} args={args}")

        if opcode == protocol.CMD_START_PERIODIC_MEASUREMENT:
            self.measuring = True
            self._pending_response = None
        elif opcode == protocol.CMD_STOP_PERIODIC_MEASUREMENT:
            self.measuring = False
            self._pending_response = None
        elif opcode == protocol.CMD_GET_DATA_READY_STATUS:
            ready_bits = 0x0006 if (self.measuring and self.data_ready) else 0x0000
            self._pending_response = encode_response_word(0x8000 | ready_bits)
        elif opcode == protocol.CMD_READ_MEASUREMENT:
            self._pending_response = encode_response(
                self.co2_raw, self.temperature_raw, self.humidity_raw
            )
        elif opcode == protocol.CMD_SET_AMBIENT_PRESSURE:
            self.ambient_pressure_hpa = args[0]
            self._pending_response = None
        elif opcode == protocol.CMD_SET_TEMPERATURE_OFFSET:
            if self.measuring:
                raise TransportError("Temperature offset rejected during periodic measurement")
            self.temperature_offset_raw = args[0]
            self._pending_response = None
        else:
            raise TransportError(f"Unknown command {opcode:#06x}")

    def _fill_response(self, read: bytearray) -> None:
        if self._pending_response is None:
            raise TransportError("No response pending (read NACKed)")

        response = bytearray(self._pending_response[: len(read)])
        self._pending_response = None

        if self.corrupt_next_response:
            self.corrupt_next_response = False
            response[-1] ^= 0x01

        read[:] = response


Step = Union[None, bytes, Exception]


class ScriptedBus:
    """Records writes and returns canned read buffers, one script step per call.

    Each step is consumed by one transact() call:
    - None: succeed (read buffer, if any, left untouched)
    - bytes: copy into the read buffer
    - Exception instance: raise it

    When the script runs out every further call succeeds without data.
    """

    def __init__(self, steps: Optional[List[Step]] = None) -> None:
        self._steps: Deque[Step] = deque(steps or [])
        self.calls: List[Tuple[bytes, int]] = []

    @property
    def writes(self) -> List[bytes]:
        """All non-empty write buffers, in order."""
        return [w for w, _ in self.calls if w]

    def transact(self, write: bytes, read: bytearray) -> None:
        self.calls.append((bytes(write), len(read)))

        step = self._steps.popleft() if self._steps else None
        if isinstance(step, Exception):
            raise step
        if step is not None:
            read[:] = step
