# routes/summary.py

from datetime import timedelta

from fastapi import APIRouter, Depends

from routes.dependencies import get_repository
from services.errors import NotFoundError
from services.statistics_service import StatisticsService
from services.time_utils import utc_now

router = APIRouter(prefix="/api/1/summary", tags=["summary"])


@router.get("")
def get_summary(repository=Depends(get_repository)):
    since = utc_now() - timedelta(hours=24)
    recent_power = repository.power_values_since(since)

    return {
        "totalTurbines": repository.count_turbines(),
        "activeTurbines": repository.count_turbines(active=True),
        "totalWorkOrders": repository.count_work_orders(),
        "openWorkOrders": repository.count_work_orders(status="open"),
        "inProgressWorkOrders": repository.count_work_orders(status="in_progress"),
        "avgPowerOutput": StatisticsService.average_power(recent_power),
    }


@router.get("/windturbines/{turbine_id}/workorders")
def turbine_work_order_summary(turbine_id: str, repository=Depends(get_repository)):
    turbine = repository.get_turbine(turbine_id)
    if turbine is None:
        raise NotFoundError("Wind turbine not found")

    orders = repository.work_orders_for_stats(turbine_id)
    return {
        "turbineId": turbine_id,
        "turbineName": turbine["name"],
        "totalWorkOrders": len(orders),
        "statusBreakdown": StatisticsService.status_breakdown(orders),
        "averageResolutionDays": StatisticsService.average_resolution_days(orders),
    }


@router.get("/debug/first-turbine")
def first_turbine(repository=Depends(get_repository)):
    """Helper for manual testing: the first turbine by name and URLs to try."""
    turbine = repository.first_turbine()
    if turbine is None:
        raise NotFoundError("No turbines found")

    turbine_url = f"/api/1/windturbines/{turbine['id']}"
    return {
        "id": turbine["id"],
        "name": turbine["name"],
        "testUrls": {
            "getTurbine": turbine_url,
            "updateTurbine": turbine_url,
            "deleteTurbine": turbine_url,
            "workOrderSummary": f"/api/1/summary/windturbines/{turbine['id']}/workorders",
        },
    }
