"""Diagnose what happens when talking to an SCD4x on the I2C bus."""

import sys
import time

from scd4x_lib import protocol
from scd4x_lib.driver import SCD4xDriver
from scd4x_lib.errors import SCD4xError
from scd4x_lib.transport import I2CTransport


def diagnose_sensor(bus_number=protocol.DEFAULT_I2C_BUS, address=protocol.DEFAULT_I2C_ADDRESS):
    """Stop, restart periodic measurement and wait for one sample."""

    print(f"\n=== Opening /dev/i2c-{bus_number}, address {address:#04x} ===")
    transport = I2CTransport.open(bus_number, address)
    driver = SCD4xDriver(transport)

    try:
        # Sensor may still be measuring from a previous run
        print("\n=== Sending stop_periodic_measurement (0x3F86) ===")
        try:
            driver.stop()
            print("Stopped, waited 500 ms settle time")
        except SCD4xError as e:
            print(f"Stop failed: {e}")

        print("\n=== Sending start_periodic_measurement (0x21B1) ===")
        driver.init()
        print("Started")

        # First sample arrives ~5 s after start
        print("\n=== Waiting up to 10 seconds for data ready ===")
        start = time.time()
        ready = False
        while time.time() - start < 10.0:
            try:
                ready = driver.is_measuring()
            except SCD4xError as e:
                print(f"Status check failed: {e}")
            if ready:
                break
            time.sleep(0.5)

        if not ready:
            print("\n*** DATA NEVER BECAME READY ***")
            print("\nPossible reasons:")
            print("1. Wrong bus number or address (try i2cdetect -y <bus>)")
            print("2. Sensor not powered or SDA/SCL swapped")
            print("3. Sensor in single-shot or low power mode")
            return

        measurement = driver.read()
        print(f"\nCO2:         {measurement.co2_ppm:.0f} ppm")
        print(f"Temperature: {measurement.temperature_c:.2f} C")
        print(f"Humidity:    {measurement.humidity_pct:.2f} %")

        driver.stop()
    finally:
        transport.close()
        print("\nBus closed")


if __name__ == "__main__":
    bus_number = int(sys.argv[1]) if len(sys.argv) > 1 else protocol.DEFAULT_I2C_BUS
    address = int(sys.argv[2], 0) if len(sys.argv) > 2 else protocol.DEFAULT_I2C_ADDRESS
    diagnose_sensor(bus_number, address)
