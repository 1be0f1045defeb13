"""I2C transport layer for SCD4x sensor communication."""

import logging
from typing import Any, Protocol

from smbus2 import SMBus, i2c_msg

from scd4x_lib import protocol
from scd4x_lib.errors import TransportError

logger = logging.getLogger(__name__)


class BusTransport(Protocol):
    """Protocol for a single request/response bus exchange (allows test doubles)."""

    def transact(self, write: bytes, read: bytearray) -> None:
        """Perform one bus transaction.

        Writes ``write`` (if non-empty), then fills ``read`` in place
        (if non-empty). Raises TransportError when the exchange fails.
        """
        ...


class I2CTransport:
    """Wrapper around smbus2 that talks to one device address.

    Each call to transact() issues a single combined I2C_RDWR ioctl, so a
    write and the following read cannot be interleaved with other traffic.
    """

    def __init__(self, bus: Any, address: int = protocol.DEFAULT_I2C_ADDRESS) -> None:
        """Initialize transport with an already opened bus.

        Args:
            bus: Object exposing smbus2's ``i2c_rdwr`` and ``close``
                 (e.g., smbus2.SMBus)
            address: 7-bit I2C address of the sensor
        """
        self._bus = bus
        self._address = address
        self._open = True

    @classmethod
    def open(
        cls,
        bus_number: int = protocol.DEFAULT_I2C_BUS,
        address: int = protocol.DEFAULT_I2C_ADDRESS,
    ) -> "I2CTransport":
        """Open a real I2C bus.

        Args:
            bus_number: Linux I2C adapter number (``/dev/i2c-<n>``)
            address: 7-bit I2C address of the sensor. Default 0x62.

        Returns:
            I2CTransport instance wrapping the opened bus

        Raises:
            TransportError: If the bus cannot be opened
        """
        try:
            bus = SMBus(bus_number)
        except OSError as e:
            raise TransportError(f"Failed to open /dev/i2c-{bus_number}: {e}") from e

        logger.info(f"Opened I2C bus {bus_number}, device address {address:#04x}")
        return cls(bus, address)

    @property
    def address(self) -> int:
        return self._address

    @property
    def is_open(self) -> bool:
        """Check if the bus handle is still open."""
        return self._open

    def close(self) -> None:
        """Release the bus handle."""
        if self._open:
            self._bus.close()
            self._open = False
            logger.info("Closed I2C bus")

    def transact(self, write: bytes, read: bytearray) -> None:
        """Write and/or read in one I2C transaction.

        Args:
            write: Bytes to send, may be empty
            read: Pre-sized buffer to fill, may be empty

        Raises:
            TransportError: If the bus is closed or the exchange fails
        """
        if not self._open:
            raise TransportError("I2C bus is not open")
        if not write and not read:
            return

        messages = []
        if write:
            messages.append(i2c_msg.write(self._address, list(write)))
        read_msg = None
        if read:
            read_msg = i2c_msg.read(self._address, len(read))
            messages.append(read_msg)

        try:
            self._bus.i2c_rdwr(*messages)
        except OSError as e:
            raise TransportError(f"I2C transaction with {self._address:#04x} failed: {e}") from e

        if read_msg is not None:
            read[:] = bytes(list(read_msg))
            logger.debug(f"Received {len(read)} bytes: {bytes(read).hex()}")
        if write:
            logger.debug(f"Sent {len(write)} bytes: {bytes(write).hex()}")
