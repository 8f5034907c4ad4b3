# synthetic_data/power_generator.py

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from services.time_utils import local_hour, to_iso

# Non-outlier readings never exceed this multiple of rated capacity (brief gusts)
MAX_CAPACITY_FACTOR = 1.2


@dataclass
class Reading:
    """One simulated power-output data point for a turbine."""
    turbine_id: str
    power_kw: float
    timestamp: datetime
    is_outlier: bool = False
    outlier_kind: Optional[str] = None

    def to_document(self):
        return {
            "windTurbineId": self.turbine_id,
            "powerKW": self.power_kw,
            "timestamp": self.timestamp,
            "isOutlier": self.is_outlier,
            "outlierKind": self.outlier_kind,
        }

    def to_payload(self):
        """Shape accepted by the batch ingest endpoint."""
        payload = {
            "windTurbineId": self.turbine_id,
            "powerKW": self.power_kw,
            "timestamp": to_iso(self.timestamp),
        }
        if self.is_outlier:
            payload["outlier"] = True
            payload["outlierType"] = self.outlier_kind
        return payload


# name, description, power as a function of (rated capacity, rng)
OUTLIER_TYPES = [
    ("negative_reading", "Negative power (sensor malfunction)",
     lambda rated, rng: -(rng.random() * rated * 0.5)),
    ("zero_reading", "Zero power (sensor disconnected)",
     lambda rated, rng: 0.0),
    ("extremely_high", "Extremely high reading (sensor spike)",
     lambda rated, rng: rated * (2 + rng.random() * 3)),
    ("minor_negative", "Minor negative reading (calibration issue)",
     lambda rated, rng: -(rng.random() * 50)),
    ("unrealistic_spike", "Unrealistic power spike",
     lambda rated, rng: rated * (1.5 + rng.random() * 2)),
]

OUTLIER_DESCRIPTIONS = {name: description for name, description, _ in OUTLIER_TYPES}


def time_of_day_factor(hour):
    """Wind is stronger at night and weaker around midday."""
    if hour >= 22 or hour <= 6:
        return 1.2
    if 10 <= hour <= 16:
        return 0.6
    return 0.9


def generate_outlier_reading(turbine, timestamp, rng=random):
    name, _, generator = rng.choice(OUTLIER_TYPES)
    power_kw = round(generator(turbine["ratedCapacityKW"], rng), 2)
    return Reading(
        turbine_id=turbine["id"],
        power_kw=power_kw,
        timestamp=timestamp,
        is_outlier=True,
        outlier_kind=name,
    )


def generate_reading(turbine, timestamp, outlier_chance_percent=0, weather_factor=1.0, rng=random):
    """
    Generate one simulated reading for a turbine.

    Args:
        turbine: mapping with "id" and "ratedCapacityKW"
        timestamp: time of the reading; its local hour selects the wind band
        outlier_chance_percent: 0-100 chance of a simulated sensor fault instead
        weather_factor: output multiplier from the weather model for this cycle
        rng: random source, module-level random unless a seeded one is given
    """
    if outlier_chance_percent > 0 and rng.random() * 100 < outlier_chance_percent:
        return generate_outlier_reading(turbine, timestamp, rng)

    rated = turbine["ratedCapacityKW"]
    wind_strength = time_of_day_factor(local_hour(timestamp)) * weather_factor
    wind_variation = rng.uniform(0.8, 1.2)
    # Drawn per call: models unit-to-unit variance, not a fixed trait
    turbine_efficiency = rng.uniform(0.85, 1.15)

    power_kw = rated * wind_strength * wind_variation * turbine_efficiency
    power_kw = max(0.0, min(power_kw, rated * MAX_CAPACITY_FACTOR))

    return Reading(turbine_id=turbine["id"], power_kw=round(power_kw, 2), timestamp=timestamp)


def generate_historical_reading(turbine, timestamp, rng):
    """Backfill variant: hour-band wind strength, no weather events, no outliers."""
    hour = local_hour(timestamp)
    if hour >= 22 or hour <= 6:
        wind_strength = rng.uniform(0.7, 1.0)
    elif 10 <= hour <= 16:
        wind_strength = rng.uniform(0.3, 0.7)
    else:
        wind_strength = rng.uniform(0.5, 0.9)

    rated = turbine["ratedCapacityKW"]
    power_kw = rated * wind_strength * rng.uniform(0.8, 1.2) * rng.uniform(0.85, 1.15)
    power_kw = max(0.0, min(power_kw, rated * MAX_CAPACITY_FACTOR))

    return Reading(turbine_id=turbine["id"], power_kw=round(power_kw, 2), timestamp=timestamp)
