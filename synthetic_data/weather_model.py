# synthetic_data/weather_model.py

import logging
import random
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# kind: (output factor, duration in generation cycles)
WEATHER_EVENTS = {
    "storm": (0.2, 5),
    "high_pressure": (1.5, 10),
    "maintenance_window": (0.0, 3),
}

EVENT_SPAWN_PROBABILITY = 0.05


@dataclass
class WeatherEvent:
    kind: str
    output_factor: float
    remaining_cycles: int


class WeatherModel:
    """
    Shared weather narrative biasing every reading generated in a cycle.

    tick() is called once per generation cycle, never once per turbine. At most
    one event is active at a time; the lock keeps that true when ticks arrive
    from several threads.
    """

    def __init__(self, spawn_probability=EVENT_SPAWN_PROBABILITY, rng=None):
        self.spawn_probability = spawn_probability
        self.rng = rng or random.Random()
        self.current_event = None
        self._lock = threading.Lock()

    def start_event(self, kind):
        if kind not in WEATHER_EVENTS:
            raise ValueError(f"Unknown weather event: {kind}")
        factor, duration = WEATHER_EVENTS[kind]
        with self._lock:
            self.current_event = WeatherEvent(kind, factor, duration)
        logger.info(f"[WeatherModel] Weather event started: {kind} for {duration} cycles")
        return self.current_event

    def tick(self):
        with self._lock:
            if self.current_event is None and self.rng.random() < self.spawn_probability:
                kind = self.rng.choice(list(WEATHER_EVENTS))
                factor, duration = WEATHER_EVENTS[kind]
                self.current_event = WeatherEvent(kind, factor, duration)
                logger.info(f"[WeatherModel] Weather event started: {kind} for {duration} cycles")

            event = self.current_event
            if event is None:
                return 1.0

            event.remaining_cycles -= 1
            if event.remaining_cycles <= 0:
                logger.info(f"[WeatherModel] Weather event ended: {event.kind}")
                self.current_event = None
            return event.output_factor

    def snapshot(self):
        event = self.current_event
        if event is None:
            return None
        return {"kind": event.kind, "outputFactor": event.output_factor,
                "remainingCycles": event.remaining_cycles}
