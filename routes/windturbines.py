# routes/windturbines.py

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from routes.dependencies import as_list, get_repository, parse_date_param
from services.errors import NotFoundError, ValidationError
from services.ingest_service import is_number
from services.pagination import normalize_query_params, pagination_meta, parse_bool, validate_pagination

router = APIRouter(prefix="/api/1/windturbines", tags=["windturbines"])

LIST_PARAMS = [
    "name", "manufacturer", "builtDateFrom", "builtDateTo",
    "installationDateFrom", "installationDateTo", "active", "page", "limit",
]

SIMPLE_FIELDS = ("name", "latitude", "longitude", "active", "ratedCapacityKW")


def _turbine_fields(item, partial=False):
    """Validate a turbine body and flatten the manufacturer object."""
    if not isinstance(item, dict):
        raise ValidationError("Each turbine must be a JSON object")
    if not partial and not item.get("name"):
        raise ValidationError("Name is required for all turbines")

    data = {key: item[key] for key in SIMPLE_FIELDS if key in item}

    manufacturer = item.get("manufacturer")
    if isinstance(manufacturer, dict):
        data["manufacturerName"] = manufacturer.get("name")
        data["manufacturerCountry"] = manufacturer.get("country")
    for key in ("manufacturerName", "manufacturerCountry"):
        if key in item:
            data[key] = item[key]

    for key in ("builtDate", "installationDate"):
        if key in item:
            data[key] = parse_date_param(item[key], key)

    if "ratedCapacityKW" in data and not is_number(data["ratedCapacityKW"]):
        raise ValidationError("ratedCapacityKW must be a number")
    for key in ("latitude", "longitude"):
        if data.get(key) is not None and not is_number(data[key]):
            raise ValidationError(f"{key} must be a number")
    if "active" in data and not isinstance(data["active"], bool):
        raise ValidationError("active must be a boolean")
    return data


@router.get("")
def list_turbines(request: Request, repository=Depends(get_repository)):
    params = normalize_query_params(request.query_params, LIST_PARAMS)
    page, limit, offset = validate_pagination(params.get("page"), params.get("limit"))

    turbines, total = repository.list_turbines(
        name=params.get("name"),
        manufacturer=params.get("manufacturer"),
        built_from=parse_date_param(params.get("builtDateFrom"), "builtDateFrom"),
        built_to=parse_date_param(params.get("builtDateTo"), "builtDateTo"),
        installed_from=parse_date_param(params.get("installationDateFrom"), "installationDateFrom"),
        installed_to=parse_date_param(params.get("installationDateTo"), "installationDateTo"),
        active=parse_bool(params.get("active")),
        skip=offset,
        limit=limit,
    )
    return {"data": turbines, "pagination": pagination_meta(page, limit, total)}


@router.post("", status_code=201)
def create_turbines(payload: Any = Body(None), repository=Depends(get_repository)):
    items, is_batch = as_list(payload)
    turbines = [_turbine_fields(item) for item in items]

    created = [repository.create_turbine(data) for data in turbines]
    return created if is_batch else created[0]


@router.get("/{turbine_id}")
def get_turbine(turbine_id: str, repository=Depends(get_repository)):
    turbine = repository.get_turbine(turbine_id)
    if turbine is None:
        raise NotFoundError("Wind turbine not found")

    turbine["recentWorkOrders"] = repository.recent_work_orders(turbine_id, limit=10)
    turbine["recentPowerOutputs"] = repository.list_readings(turbine_id, limit=24)
    return turbine


@router.patch("/{turbine_id}")
def update_turbine(turbine_id: str, payload: Any = Body(None), repository=Depends(get_repository)):
    updates = _turbine_fields(payload or {}, partial=True)
    turbine = repository.update_turbine(turbine_id, updates)
    if turbine is None:
        raise NotFoundError("Wind turbine not found")
    return turbine


@router.delete("/{turbine_id}", status_code=204)
def delete_turbine(turbine_id: str, repository=Depends(get_repository)):
    if not repository.delete_turbine(turbine_id):
        raise NotFoundError("Wind turbine not found")
    return Response(status_code=204)


@router.delete("", status_code=204)
def delete_turbines(payload: Any = Body(None), repository=Depends(get_repository)):
    ids = payload.get("ids") if isinstance(payload, dict) else None
    if not ids or not isinstance(ids, list):
        raise ValidationError("ids array is required")
    repository.delete_turbines(ids)
    return Response(status_code=204)
