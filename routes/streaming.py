# routes/streaming.py

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from configs.app_config import DEFAULT_STREAM_INTERVAL
from routes.dependencies import get_repository, get_stream_manager
from services.errors import TransportError, ValidationError
from services.ingest_service import ingest_batch
from services.pagination import normalize_query_params
from services.time_utils import to_iso, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["streaming"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event, payload):
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


@router.get("/api/1/stream/power-output")
async def stream_power_output(request: Request, manager=Depends(get_stream_manager)):
    params = normalize_query_params(request.query_params, ["windTurbineIds", "interval"])
    if not params.get("windTurbineIds"):
        raise ValidationError(
            "windTurbineIds parameter is required. Provide a comma-separated list of wind turbine IDs."
        )

    queue = asyncio.Queue()

    async def send(event, payload):
        await queue.put(format_sse(event, payload))

    subscription_id = await manager.subscribe(
        params["windTurbineIds"],
        params.get("interval", DEFAULT_STREAM_INTERVAL),
        send,
    )

    async def event_stream():
        reason = "closed"
        try:
            while True:
                yield await queue.get()
        except Exception:
            reason = "error"
            raise
        finally:
            manager.unsubscribe(subscription_id, reason)

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/api/1/stream/status")
def stream_status(manager=Depends(get_stream_manager)):
    return manager.status()


@router.post("/api/1/stream/power-output/batch", status_code=201)
def submit_power_batch(payload: Any = Body(None), repository=Depends(get_repository)):
    saved, total = ingest_batch(repository, payload)
    return {
        "message": "Power readings saved successfully",
        "savedCount": saved,
        "totalReceived": total,
    }


@router.websocket("/api/1/ws/power-output")
async def websocket_power_output(websocket: WebSocket):
    manager = websocket.app.state.stream_manager
    await websocket.accept()
    logger.info("[WebSocket] New connection established")

    async def send(event, payload):
        try:
            await websocket.send_json({"type": event, **payload})
        except (WebSocketDisconnect, RuntimeError) as e:
            raise TransportError(f"WebSocket send failed: {e}") from e

    params = normalize_query_params(websocket.query_params, ["windTurbineIds", "interval"])
    # Without an explicit list the stream follows the active fleet as it changes
    turbine_ids = params.get("windTurbineIds")
    follow_fleet = not turbine_ids
    if follow_fleet:
        turbines = await asyncio.to_thread(
            manager.repository.list_active_turbines, limit=manager.max_turbines
        )
        turbine_ids = [turbine["id"] for turbine in turbines]

    try:
        subscription_id = await manager.subscribe(
            turbine_ids,
            params.get("interval", DEFAULT_STREAM_INTERVAL),
            send,
            follow_fleet=follow_fleet,
        )
    except ValidationError as e:
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close(code=1008)
        return

    reason = "closed"
    try:
        while True:
            message = await websocket.receive_text()
            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                logger.warning(f"[WebSocket] Ignoring malformed message from {subscription_id}")
                continue

            logger.debug(f"[WebSocket] Message from {subscription_id}: {data}")
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong", "timestamp": to_iso(utc_now())})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        reason = "error"
        logger.error(f"[WebSocket] Connection {subscription_id} failed: {e}")
    finally:
        manager.unsubscribe(subscription_id, reason)
