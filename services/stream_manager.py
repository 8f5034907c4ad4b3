# services/stream_manager.py

import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from services.errors import GenerationError, PersistenceError, TransportError, ValidationError
from services.time_utils import to_iso, utc_now
from synthetic_data.power_generator import generate_reading

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 1
MAX_INTERVAL_SECONDS = 300

# send(event_name, payload) delivers one event to one subscriber
EventSender = Callable[[str, dict], Awaitable[None]]


def parse_turbine_ids(raw):
    """Split a comma-separated id list, dropping blanks and duplicates."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(",")
    ids = []
    for item in raw:
        if not isinstance(item, str):
            raise ValidationError("Wind turbine IDs must be strings.")
        item = item.strip()
        if item and item not in ids:
            ids.append(item)
    return ids


def validate_subscription(turbine_ids, interval_seconds, require_ids=True):
    ids = parse_turbine_ids(turbine_ids)
    if require_ids and not ids:
        raise ValidationError(
            "At least one valid wind turbine ID must be provided in windTurbineIds parameter."
        )
    try:
        interval = int(interval_seconds)
    except (TypeError, ValueError):
        raise ValidationError("interval must be an integer number of seconds.") from None
    if not MIN_INTERVAL_SECONDS <= interval <= MAX_INTERVAL_SECONDS:
        raise ValidationError(
            f"interval must be between {MIN_INTERVAL_SECONDS} and {MAX_INTERVAL_SECONDS} seconds."
        )
    return ids, interval


def _new_connection_id():
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


@dataclass
class Subscription:
    subscription_id: str
    turbine_ids: List[str]
    interval_seconds: int
    started_at: datetime
    send: EventSender
    # fleet subscriptions re-read the whole active fleet every cycle
    follow_fleet: bool = False
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def uptime_seconds(self):
        return round((utc_now() - self.started_at).total_seconds())


class StreamManager:
    """
    Fan-out of simulated power readings to real-time subscribers.

    Every subscription owns one asyncio task that generates, persists and
    pushes a batch, sleeps for its interval, and repeats. Cycles of one
    subscription never overlap; subscriptions only share the weather model.
    """

    def __init__(self, repository, weather_model, outlier_chance_percent=0, max_turbines=25):
        self.repository = repository
        self.weather_model = weather_model
        self.outlier_chance_percent = outlier_chance_percent
        self.max_turbines = max_turbines
        self.subscriptions = {}

    async def subscribe(self, turbine_ids, interval_seconds, send: EventSender, follow_fleet=False):
        ids, interval = validate_subscription(turbine_ids, interval_seconds, require_ids=not follow_fleet)

        subscription = Subscription(
            subscription_id=_new_connection_id(),
            turbine_ids=ids,
            interval_seconds=interval,
            started_at=utc_now(),
            send=send,
            follow_fleet=follow_fleet,
        )
        self.subscriptions[subscription.subscription_id] = subscription

        await self._push(subscription, "connected", {
            "connectionId": subscription.subscription_id,
            "message": "Connected to power output stream",
            "intervalSeconds": interval,
            "turbineIds": ids,
            "turbineCount": len(ids),
        })
        logger.info(f"[StreamManager] Client {subscription.subscription_id} connected "
                    f"(interval: {interval}s, turbines: {len(ids)})")

        subscription.task = asyncio.create_task(self._run(subscription))
        return subscription.subscription_id

    def unsubscribe(self, subscription_id, reason="closed"):
        """Cancel the subscription's task and forget it. Safe to call twice."""
        subscription = self.subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False
        if subscription.task is not None:
            subscription.task.cancel()

        duration = subscription.uptime_seconds()
        turbine_count = len(subscription.turbine_ids)
        if reason == "error":
            logger.warning(f"[StreamManager] Client {subscription_id} disconnected unexpectedly "
                           f"(duration: {duration}s, turbines: {turbine_count})")
        else:
            logger.info(f"[StreamManager] Client {subscription_id} disconnected "
                        f"(duration: {duration}s, turbines: {turbine_count})")
        return True

    def shutdown(self):
        for subscription_id in list(self.subscriptions):
            self.unsubscribe(subscription_id)

    def status(self):
        connections = [
            {
                "connectionId": sub.subscription_id,
                "startTime": to_iso(sub.started_at),
                "turbineIds": sub.turbine_ids,
                "turbineCount": len(sub.turbine_ids),
                "intervalSeconds": sub.interval_seconds,
                "uptime": sub.uptime_seconds(),
            }
            for sub in self.subscriptions.values()
        ]
        return {
            "activeConnections": len(connections),
            "connections": connections,
            "weather": self.weather_model.snapshot(),
        }

    async def _run(self, subscription):
        # First batch goes out right away, then one per interval
        while True:
            await self.run_cycle(subscription)
            await asyncio.sleep(subscription.interval_seconds)

    async def run_cycle(self, subscription):
        """Generate, persist and push one batch. Failures become an error event."""
        try:
            batch = await self._generate_batch(subscription)
        except (PersistenceError, GenerationError) as e:
            logger.error(f"[StreamManager] Error generating power data for {subscription.subscription_id}: {e}")
            await self._push(subscription, "error", {"message": "Failed to generate power data"})
            return
        except Exception as e:
            logger.exception(f"[StreamManager] Unexpected error in stream cycle for {subscription.subscription_id}: {e}")
            await self._push(subscription, "error", {"message": "Failed to generate power data"})
            return
        await self._push(subscription, "power-output", batch)

    async def _generate_batch(self, subscription):
        # Turbines deactivated since subscribing drop out here
        turbines = await asyncio.to_thread(
            self.repository.list_active_turbines,
            turbine_ids=None if subscription.follow_fleet else subscription.turbine_ids,
            limit=self.max_turbines,
        )
        weather_factor = self.weather_model.tick()
        timestamp = utc_now()

        readings = []
        for turbine in turbines:
            try:
                reading = generate_reading(
                    turbine,
                    timestamp,
                    outlier_chance_percent=self.outlier_chance_percent,
                    weather_factor=weather_factor,
                )
            except (KeyError, TypeError, ValueError) as e:
                raise GenerationError(f"Cannot generate reading for turbine {turbine.get('id')}: {e}") from e

            await asyncio.to_thread(self.repository.create_reading, reading)

            rated = turbine["ratedCapacityKW"]
            readings.append({
                "turbineId": turbine["id"],
                "turbineName": turbine["name"],
                "powerKW": reading.power_kw,
                "ratedCapacityKW": rated,
                "efficiency": round(reading.power_kw / rated * 100, 2) if rated else 0.0,
                "timestamp": to_iso(timestamp),
                "isOutlier": reading.is_outlier,
                "outlierKind": reading.outlier_kind,
            })

        return {
            "timestamp": to_iso(timestamp),
            "turbineCount": len(readings),
            "readings": readings,
        }

    async def _push(self, subscription, event, payload):
        try:
            await subscription.send(event, payload)
        except TransportError as e:
            # Disconnects are detected by the transport, which unsubscribes
            logger.warning(f"[StreamManager] Failed to push '{event}' to {subscription.subscription_id}: {e}")
        except Exception as e:
            logger.exception(f"[StreamManager] Sender for {subscription.subscription_id} failed on '{event}': {e}")
