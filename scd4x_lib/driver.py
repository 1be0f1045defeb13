"""Protocol driver for Sensirion SCD4x CO2/temperature/humidity sensors."""

import logging
import time
from typing import Callable, Optional

from scd4x_lib import parsing, protocol
from scd4x_lib.errors import TransportError
from scd4x_lib.models import Measurement
from scd4x_lib.transport import BusTransport

logger = logging.getLogger(__name__)


class SCD4xDriver:
    """Translates sensor operations into bus transactions and back.

    Not thread-safe: exactly one thread may own a driver and its transport.
    All datasheet-mandated waits are blocking sleeps on the calling thread.
    """

    def __init__(
        self,
        transport: BusTransport,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize driver.

        Args:
            transport: Object implementing the BusTransport protocol
                       (I2CTransport or a fake for testing)
            sleep: Blocking sleep function. Tests inject a recorder.
        """
        self._transport = transport
        self._sleep = sleep

    # ========================================================================
    # Periodic Measurement Control
    # ========================================================================

    def init(self) -> None:
        """Start periodic measurement mode.

        Raises:
            TransportError: If the command cannot be written after retries
        """
        logger.info("Sending start periodic measurement command to SCD4x")
        self._send_command(protocol.CMD_START_PERIODIC_MEASUREMENT)

    def stop(self) -> None:
        """Stop periodic measurement and wait for the sensor to settle.

        The sensor only answers other commands 500 ms after the stop command,
        so this always blocks for that long once the command is written.

        Raises:
            TransportError: If the command cannot be written after retries
        """
        logger.info("Sending stop periodic measurement command to SCD4x")
        self._send_command(protocol.CMD_STOP_PERIODIC_MEASUREMENT)
        self._sleep(protocol.STOP_SETTLE_TIME)

    # ========================================================================
    # Data Access
    # ========================================================================

    def is_measuring(self) -> bool:
        """Ask the sensor whether a new sample is ready to read.

        Returns:
            True if the data-ready bits are set

        Raises:
            TransportError: If the bus exchange fails
            ProtocolError: If the status word fails its checksum
        """
        self._send_command(protocol.CMD_GET_DATA_READY_STATUS)
        self._sleep(protocol.DATA_READY_DELAY)

        buf = self._read_response(protocol.STATUS_RESPONSE_WORDS)
        (status,) = parsing.decode_words(buf, protocol.STATUS_RESPONSE_WORDS)
        ready = parsing.is_data_ready(status)
        logger.debug(f"Data ready status word {status:#06x}, ready={ready}")
        return ready

    def read(self) -> Measurement:
        """Read and decode the latest CO2, temperature and humidity sample.

        Returns:
            Measurement in physical units

        Raises:
            TransportError: If the bus exchange fails
            ProtocolError: If any of the three words fails its checksum
        """
        self._send_command(protocol.CMD_READ_MEASUREMENT)
        self._sleep(protocol.READ_MEASUREMENT_DELAY)

        buf = self._read_response(protocol.MEASUREMENT_RESPONSE_WORDS)
        measurement = parsing.parse_measurement(buf)
        logger.debug(f"Measurement: {measurement}")
        return measurement

    # ========================================================================
    # Configuration
    # ========================================================================

    def set_ambient_pressure(self, pascal: int) -> None:
        """Set ambient pressure used for CO2 compensation.

        Can be sent while periodic measurement is running.

        Args:
            pascal: Ambient pressure in Pa (70000-120000)

        Raises:
            ValueError: If pressure is out of range
            TransportError: If the command cannot be written after retries
        """
        if not (protocol.AMBIENT_PRESSURE_MIN_PA <= pascal <= protocol.AMBIENT_PRESSURE_MAX_PA):
            raise ValueError(
                f"Ambient pressure must be {protocol.AMBIENT_PRESSURE_MIN_PA}-"
                f"{protocol.AMBIENT_PRESSURE_MAX_PA} Pa, got {pascal}"
            )

        hpa = round(pascal / 100)
        logger.info(f"Setting ambient pressure to {hpa} hPa")
        self._send_command(protocol.CMD_SET_AMBIENT_PRESSURE, parsing.encode_word(hpa))

    def set_temperature_offset(self, offset_c: float) -> None:
        """Set the temperature offset compensating for self-heating.

        Only accepted by the sensor while periodic measurement is stopped.

        Args:
            offset_c: Offset in degrees Celsius (0-20)

        Raises:
            ValueError: If offset is out of range
            TransportError: If the command cannot be written after retries
        """
        if not (protocol.TEMPERATURE_OFFSET_MIN_C <= offset_c <= protocol.TEMPERATURE_OFFSET_MAX_C):
            raise ValueError(
                f"Temperature offset must be {protocol.TEMPERATURE_OFFSET_MIN_C}-"
                f"{protocol.TEMPERATURE_OFFSET_MAX_C} C, got {offset_c}"
            )

        raw = round(offset_c * protocol.RAW_FULL_SCALE / protocol.TEMPERATURE_SPAN_C)
        logger.info(f"Setting temperature offset to {offset_c} C (raw {raw})")
        self._send_command(protocol.CMD_SET_TEMPERATURE_OFFSET, parsing.encode_word(raw))

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _send_command(self, opcode: int, args: bytes = b"") -> None:
        """Frame a command and write it, retrying on transport failure.

        Args:
            opcode: 16-bit command opcode
            args: Even-length argument bytes (CRC is appended per word)

        Raises:
            ValueError: If args has odd length
            TransportError: If every attempt fails
        """
        frame = parsing.build_command_frame(opcode, args)

        last_error: Optional[TransportError] = None
        for attempt in range(1, protocol.COMMAND_ATTEMPTS + 1):
            try:
                self._transport.transact(frame, bytearray())
                return
            except TransportError as e:
                last_error = e
                logger.debug(
                    f"Command {opcode:#06x} attempt {attempt}/{protocol.COMMAND_ATTEMPTS} failed: {e}"
                )
                if attempt < protocol.COMMAND_ATTEMPTS:
                    self._sleep(protocol.COMMAND_RETRY_DELAY)

        raise TransportError(
            f"Command {opcode:#06x} failed after {protocol.COMMAND_ATTEMPTS} attempts"
        ) from last_error

    def _read_response(self, words: int) -> bytearray:
        """Read a response of ``words`` CRC-protected words."""
        buf = bytearray(words * protocol.WORD_WITH_CRC_SIZE)
        self._transport.transact(b"", buf)
        return buf
