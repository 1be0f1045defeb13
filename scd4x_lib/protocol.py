"""Wire protocol constants for the Sensirion SCD4x family (SCD40/SCD41).

Opcodes, timing and checksum parameters are taken from the SCD4x datasheet.
All commands are 16-bit, sent MSB first; every 16-bit data word on the wire is
followed by one CRC-8 byte.
"""

from typing import Final

# ============================================================================
# Bus Addressing
# ============================================================================

DEFAULT_I2C_ADDRESS: Final[int] = 0x62
DEFAULT_I2C_BUS: Final[int] = 1

# ============================================================================
# Command Opcodes
# ============================================================================

CMD_START_PERIODIC_MEASUREMENT: Final[int] = 0x21B1
CMD_STOP_PERIODIC_MEASUREMENT: Final[int] = 0x3F86
CMD_GET_DATA_READY_STATUS: Final[int] = 0xE4B8
CMD_READ_MEASUREMENT: Final[int] = 0xEC05
CMD_SET_AMBIENT_PRESSURE: Final[int] = 0xE000
CMD_SET_TEMPERATURE_OFFSET: Final[int] = 0x241D

# ============================================================================
# Checksum (CRC-8, per 2-byte word)
# ============================================================================

CRC8_INIT: Final[int] = 0xFF
CRC8_POLYNOMIAL: Final[int] = 0x31

WORD_SIZE: Final[int] = 2
WORD_WITH_CRC_SIZE: Final[int] = 3

# ============================================================================
# Response Layout
# ============================================================================

STATUS_RESPONSE_WORDS: Final[int] = 1
MEASUREMENT_RESPONSE_WORDS: Final[int] = 3

# Lower 11 bits of the status word are non-zero when a sample is waiting
DATA_READY_MASK: Final[int] = 0x07FF

# ============================================================================
# Timing Constants (seconds)
# ============================================================================

# Sensor ignores other commands for 500 ms after stop_periodic_measurement
STOP_SETTLE_TIME: Final[float] = 0.5

# Execution time of get_data_ready_status before the response can be read
DATA_READY_DELAY: Final[float] = 0.003

# Execution time of read_measurement before the response can be read
READ_MEASUREMENT_DELAY: Final[float] = 0.002

# Retry policy for command writes
COMMAND_ATTEMPTS: Final[int] = 3
COMMAND_RETRY_DELAY: Final[float] = 0.05

# ============================================================================
# Conversion Constants
# ============================================================================

RAW_FULL_SCALE: Final[float] = 65535.0
TEMPERATURE_OFFSET_C: Final[float] = -45.0
TEMPERATURE_SPAN_C: Final[float] = 175.0
HUMIDITY_SPAN_PCT: Final[float] = 100.0

# ============================================================================
# Valid Configuration Values
# ============================================================================

AMBIENT_PRESSURE_MIN_PA: Final[int] = 70000
AMBIENT_PRESSURE_MAX_PA: Final[int] = 120000

TEMPERATURE_OFFSET_MIN_C: Final[float] = 0.0
TEMPERATURE_OFFSET_MAX_C: Final[float] = 20.0
