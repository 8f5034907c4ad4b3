# routes/workorders.py

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from routes.dependencies import as_list, get_repository, parse_date_param
from services.errors import NotFoundError, ValidationError
from services.pagination import normalize_query_params, pagination_meta, parse_bool, validate_pagination
from services.statistics_service import StatisticsService
from services.time_utils import utc_now

router = APIRouter(prefix="/api/1/workorders", tags=["workorders"])

WORK_ORDER_STATUSES = ("open", "in_progress", "closed")

LIST_PARAMS = [
    "windTurbineId", "status", "createdFrom", "createdTo",
    "resolvedFrom", "resolvedTo", "includeDeleted", "page", "limit",
]


def _check_status(status):
    if status is not None and status not in WORK_ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(WORK_ORDER_STATUSES)}")


@router.get("")
def list_work_orders(request: Request, repository=Depends(get_repository)):
    params = normalize_query_params(request.query_params, LIST_PARAMS)
    page, limit, offset = validate_pagination(params.get("page"), params.get("limit"))

    orders, total = repository.list_work_orders(
        turbine_id=params.get("windTurbineId"),
        status=params.get("status"),
        created_from=parse_date_param(params.get("createdFrom"), "createdFrom"),
        created_to=parse_date_param(params.get("createdTo"), "createdTo"),
        resolved_from=parse_date_param(params.get("resolvedFrom"), "resolvedFrom"),
        resolved_to=parse_date_param(params.get("resolvedTo"), "resolvedTo"),
        include_deleted=bool(parse_bool(params.get("includeDeleted"))),
        skip=offset,
        limit=limit,
    )
    return {"data": orders, "pagination": pagination_meta(page, limit, total)}


@router.post("", status_code=201)
def create_work_orders(payload: Any = Body(None), repository=Depends(get_repository)):
    items, is_batch = as_list(payload)

    orders = []
    for item in items:
        if not isinstance(item, dict) or not item.get("windTurbineId") or not item.get("title"):
            raise ValidationError("windTurbineId and title are required for all work orders")
        if repository.get_turbine(item["windTurbineId"]) is None:
            raise ValidationError(f"Wind turbine with ID {item['windTurbineId']} not found")
        _check_status(item.get("status"))

        order = {key: item.get(key) for key in ("windTurbineId", "title", "description", "status")}
        order["status"] = order["status"] or "open"
        order["creationDate"] = parse_date_param(item.get("creationDate"), "creationDate")
        order["resolutionDate"] = parse_date_param(item.get("resolutionDate"), "resolutionDate")
        orders.append(order)

    created = []
    for order in orders:
        work_order = repository.create_work_order(order)
        created.append(repository.get_work_order_with_turbine(work_order["id"]))
    return created if is_batch else created[0]


@router.get("/statistics")
def work_order_statistics(repository=Depends(get_repository)):
    orders = repository.work_orders_for_stats()
    return StatisticsService.work_order_statistics(orders, utc_now())


@router.get("/{work_order_id}")
def get_work_order(work_order_id: str, repository=Depends(get_repository)):
    order = repository.get_work_order_details(work_order_id)
    if order is None:
        raise NotFoundError("Work order not found")
    return order


@router.patch("/{work_order_id}")
def update_work_order(work_order_id: str, payload: Any = Body(None), repository=Depends(get_repository)):
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    order = repository.get_work_order(work_order_id)
    if order is None:
        raise NotFoundError("Work order not found")

    updates = {key: payload[key] for key in ("title", "description", "status") if key in payload}
    _check_status(updates.get("status"))
    for key in ("creationDate", "resolutionDate"):
        if key in payload:
            updates[key] = parse_date_param(payload[key], key)

    status = updates.get("status")
    if status == "closed" and order["status"] != "closed":
        updates["resolutionDate"] = utc_now()
    if status and status != "closed" and order["status"] == "closed":
        updates["resolutionDate"] = None

    repository.update_work_order(work_order_id, updates)
    return repository.get_work_order_with_turbine(work_order_id)


@router.delete("/{work_order_id}", status_code=204)
def delete_work_order(work_order_id: str, repository=Depends(get_repository)):
    if not repository.soft_delete_work_order(work_order_id):
        raise NotFoundError("Work order not found")
    return Response(status_code=204)


@router.post("/{work_order_id}/comments", status_code=201)
def create_comment(work_order_id: str, payload: Any = Body(None), repository=Depends(get_repository)):
    payload = payload if isinstance(payload, dict) else {}
    user_id = payload.get("userId")
    content = payload.get("content")
    if not user_id or not content:
        raise ValidationError("userId and content are required")

    if repository.get_work_order(work_order_id) is None:
        raise NotFoundError("Work order not found")
    return repository.create_comment(work_order_id, user_id, content)


@router.get("/{work_order_id}/comments")
def list_comments(work_order_id: str, request: Request, repository=Depends(get_repository)):
    params = normalize_query_params(request.query_params, ["page", "limit"])
    page, limit, offset = validate_pagination(params.get("page"), params.get("limit"))

    if repository.get_work_order(work_order_id) is None:
        raise NotFoundError("Work order not found")

    comments, total = repository.list_comments(work_order_id, skip=offset, limit=limit)
    return {"data": comments, "pagination": pagination_meta(page, limit, total)}
