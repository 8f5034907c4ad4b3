# python main.py

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from configs.app_config import HOST, PORT, STREAM_MAX_TURBINES, STREAM_OUTLIER_CHANCE
from configs.logging_config import setup_logging
from routes import power_output, streaming, summary, windturbines, workorders
from services.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from services.repository import WindFarmRepository
from services.stream_manager import StreamManager
from services.time_utils import to_iso, utc_now
from synthetic_data.weather_model import WeatherModel

logger = logging.getLogger(__name__)

ERROR_RESPONSES = [
    (ValidationError, 400, "Validation Error"),
    (NotFoundError, 404, "Not Found"),
    (ConflictError, 409, "Conflict"),
    (PersistenceError, 500, "Internal Server Error"),
]


def _error_handler(status_code, title):
    async def handler(request: Request, exc):
        if status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content={"error": title, "message": str(exc)})
    return handler


def register_error_handlers(app):
    for exc_class, status_code, title in ERROR_RESPONSES:
        app.add_exception_handler(exc_class, _error_handler(status_code, title))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Validation Error", "message": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Not Found" if exc.status_code == 404 else "Error", "message": message},
        )


def create_app(repository=None, weather_model=None):
    app = FastAPI(title="Wind Turbine Management System API", version="1.0.0")

    app.state.repository = repository or WindFarmRepository.from_settings()
    app.state.stream_manager = StreamManager(
        app.state.repository,
        weather_model or WeatherModel(),
        outlier_chance_percent=STREAM_OUTLIER_CHANCE,
        max_turbines=STREAM_MAX_TURBINES,
    )

    # Browser dashboards on other origins use the REST API and the SSE stream
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # power-output routes go before the general turbine routes
    app.include_router(power_output.router)
    app.include_router(windturbines.router)
    app.include_router(workorders.router)
    app.include_router(summary.router)
    app.include_router(streaming.router)

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "timestamp": to_iso(utc_now()),
            "message": "Wind Turbine Management System API is running",
        }

    @app.get("/api/1")
    def api_index():
        return {
            "message": "Wind Turbine Management System API v1",
            "timestamp": to_iso(utc_now()),
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "windturbines": "/api/1/windturbines",
                "powerOutput": "/api/1/windturbines/{id}/power-output",
                "workorders": "/api/1/workorders",
                "summary": "/api/1/summary",
                "stream": "/api/1/stream/power-output",
                "streamStatus": "/api/1/stream/status",
                "websocket": "/api/1/ws/power-output",
            },
        }

    @app.on_event("startup")
    def on_startup():
        setup_logging()
        app.state.repository.ensure_indexes()
        print(f"[Main] Wind farm API ready on port {PORT}")

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.stream_manager.shutdown()
        print("[Main] Stream subscriptions closed")

    return app


app = create_app()


def main():
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
