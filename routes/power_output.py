# routes/power_output.py

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from routes.dependencies import get_repository, parse_date_param
from services.errors import NotFoundError, ValidationError
from services.ingest_service import to_reading_document
from services.pagination import normalize_query_params, validate_limit
from services.statistics_service import AGGREGATION_FORMATS, StatisticsService
from services.time_utils import utc_now

router = APIRouter(prefix="/api/1/windturbines/{turbine_id}/power-output", tags=["power-output"])


@router.post("", status_code=201)
def create_power_output(turbine_id: str, payload: Any = Body(None), repository=Depends(get_repository)):
    payload = payload if isinstance(payload, dict) else {}
    document = to_reading_document(dict(payload, windTurbineId=turbine_id))
    if document is None:
        raise ValidationError("powerKW must be a number and timestamp a valid date")

    if repository.get_turbine(turbine_id) is None:
        raise NotFoundError("Wind turbine not found")

    return repository.insert_reading(document)


@router.get("")
def get_power_output(turbine_id: str, request: Request, repository=Depends(get_repository)):
    params = normalize_query_params(request.query_params, ["from", "to", "aggregation", "limit"])
    limit = validate_limit(params.get("limit"))
    aggregation = params.get("aggregation")
    if aggregation and aggregation not in AGGREGATION_FORMATS:
        raise ValidationError("aggregation must be one of: minute, hour, day")

    turbine = repository.get_turbine(turbine_id)
    if turbine is None:
        raise NotFoundError("Wind turbine not found")

    start = parse_date_param(params.get("from"), "from")
    end = parse_date_param(params.get("to"), "to")
    if start is None and end is None:
        end = utc_now()
        start = end - timedelta(hours=24)

    if aggregation:
        readings = repository.list_readings(turbine_id, start=start, end=end)
        data = StatisticsService.aggregate_power_output(readings, aggregation, limit=limit)
    else:
        data = repository.list_readings(turbine_id, start=start, end=end, limit=limit)

    return {
        "turbineId": turbine_id,
        "turbineName": turbine["name"],
        "aggregation": aggregation or "none",
        "totalRecords": len(data),
        "data": data,
    }
