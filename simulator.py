"""
Wind Turbine Power Data Simulator
Generates realistic power output readings for the active fleet and
posts them in batches to the wind farm API
"""

import argparse
import logging
import signal
import threading

import requests

from configs.app_config import API_BASE_URL, OUTLIER_CHANCE, STREAMING_INTERVAL
from configs.logging_config import setup_logging
from services.time_utils import utc_now
from synthetic_data.power_generator import OUTLIER_DESCRIPTIONS, generate_reading
from synthetic_data.weather_model import WeatherModel

logger = logging.getLogger(__name__)

BATCH_SIZE = 20
BATCH_PAUSE_SECONDS = 1
RETRY_DELAY_SECONDS = 30
REQUEST_TIMEOUT_SECONDS = 10


class PowerDataSimulator:
    def __init__(self, api_base_url=API_BASE_URL, interval_seconds=STREAMING_INTERVAL,
                 outlier_chance=OUTLIER_CHANCE, session=None, weather_model=None, stop_event=None):
        self.api_base_url = api_base_url.rstrip("/")
        self.interval_seconds = interval_seconds
        self.outlier_chance = outlier_chance
        self.session = session or requests.Session()
        self.weather_model = weather_model or WeatherModel()
        self.stop_event = stop_event or threading.Event()
        self.sent_count = 0
        self.outlier_count = 0

    def fetch_active_turbines(self):
        """GET the active fleet (first 100 by name)"""
        response = self.session.get(
            f"{self.api_base_url}/api/1/windturbines",
            params={"active": "true", "limit": 100},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json().get("data", [])

    def send_power_readings(self, readings):
        """POST one batch to the ingest endpoint and return its summary"""
        response = self.session.post(
            f"{self.api_base_url}/api/1/stream/power-output/batch",
            json={"readings": [reading.to_payload() for reading in readings]},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()

    def generate_batch(self, turbines):
        timestamp = utc_now()
        weather_factor = self.weather_model.tick()
        readings = [
            generate_reading(
                turbine,
                timestamp,
                outlier_chance_percent=self.outlier_chance,
                weather_factor=weather_factor,
            )
            for turbine in turbines
        ]
        for reading in readings:
            if reading.is_outlier:
                logger.warning(f"🚨 OUTLIER: Turbine {reading.turbine_id[:8]}... - "
                               f"{OUTLIER_DESCRIPTIONS[reading.outlier_kind]}: {reading.power_kw}kW")
        return readings

    def run_cycle(self):
        """
        One simulation cycle over the whole active fleet.

        Returns:
            seconds to wait before the next cycle: the streaming interval
            after a clean cycle, the retry cooldown otherwise
        """
        logger.info("Fetching active turbines...")
        try:
            turbines = self.fetch_active_turbines()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"❌ Could not fetch turbines: {e}")
            logger.info(f"Retrying in {RETRY_DELAY_SECONDS} seconds...")
            return RETRY_DELAY_SECONDS

        if not turbines:
            logger.info(f"No active turbines found. Retrying in {RETRY_DELAY_SECONDS} seconds...")
            return RETRY_DELAY_SECONDS

        logger.info(f"Found {len(turbines)} active turbines")

        for start in range(0, len(turbines), BATCH_SIZE):
            readings = self.generate_batch(turbines[start:start + BATCH_SIZE])
            outliers = sum(1 for reading in readings if reading.is_outlier)

            try:
                result = self.send_power_readings(readings)
            except (requests.RequestException, ValueError) as e:
                logger.error(f"❌ Error sending batch: {e}")
                logger.info(f"Retrying in {RETRY_DELAY_SECONDS} seconds...")
                return RETRY_DELAY_SECONDS

            self.sent_count += result.get("savedCount", 0)
            self.outlier_count += outliers
            suffix = f" ({outliers} outliers)" if outliers else ""
            logger.info(f"Sent {result.get('savedCount')}/{result.get('totalReceived')} "
                        f"power readings for batch{suffix}")

            if self.stop_event.wait(BATCH_PAUSE_SECONDS):
                break

        logger.info(f"Simulation cycle completed. Next cycle in {self.interval_seconds} seconds.")
        return self.interval_seconds

    def run(self, startup_delay=5):
        # Give the API a moment to come up when launched alongside it
        if self.stop_event.wait(startup_delay):
            return

        while not self.stop_event.is_set():
            try:
                delay = self.run_cycle()
            except Exception as e:
                logger.exception(f"Simulation error: {e}")
                delay = RETRY_DELAY_SECONDS
            self.stop_event.wait(delay)

        logger.info(f"🛑 Simulator stopped. {self.sent_count} readings sent, "
                    f"{self.outlier_count} outliers")

    def stop(self):
        self.stop_event.set()


def outlier_percent(value):
    try:
        percent = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("--outlier-chance must be a number between 0 and 100")
    if not 0 <= percent <= 100:
        raise argparse.ArgumentTypeError("--outlier-chance must be a number between 0 and 100")
    return percent


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Wind Turbine Power Data Simulator",
        epilog="Environment: API_BASE_URL, STREAMING_INTERVAL, OUTLIER_CHANCE",
    )
    parser.add_argument("-o", "--outlier-chance", type=outlier_percent, default=OUTLIER_CHANCE,
                        help=f"Percentage chance for outlier readings, 0-100 (default: {OUTLIER_CHANCE})")
    parser.add_argument("--startup-delay", type=float, default=5,
                        help="Seconds to wait for the API before the first cycle (default: 5)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging("simulator.log")

    simulator = PowerDataSimulator(outlier_chance=args.outlier_chance)

    def handle_signal(signum, frame):
        logger.info("Shutting down simulator...")
        simulator.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    print("=" * 70)
    print("  WIND TURBINE POWER DATA SIMULATOR")
    print("=" * 70)
    print(f"\n📍 API Base URL: {simulator.api_base_url}")
    print(f"⏱  Update Interval: {simulator.interval_seconds} seconds")
    print(f"📦 Batch Size: {BATCH_SIZE} turbines")
    state = "disabled" if simulator.outlier_chance == 0 else "enabled"
    print(f"🚨 Outlier Chance: {simulator.outlier_chance}% ({state})\n")

    simulator.run(startup_delay=args.startup_delay)


if __name__ == "__main__":
    main()
