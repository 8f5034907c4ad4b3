# configs/app_config.py

from dotenv import load_dotenv
import os

load_dotenv()


def _env_int(name, default):
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw)
    except ValueError:
        return default


# API server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 8000)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Real-time stream (SSE / WebSocket)
DEFAULT_STREAM_INTERVAL = _env_int("DEFAULT_STREAM_INTERVAL", 10)
STREAM_OUTLIER_CHANCE = _env_int("STREAM_OUTLIER_CHANCE", 0)
STREAM_MAX_TURBINES = _env_int("STREAM_MAX_TURBINES", 25)

# External simulator
API_BASE_URL = os.getenv("API_BASE_URL", f"http://localhost:{PORT}").rstrip("/")
STREAMING_INTERVAL = _env_int("STREAMING_INTERVAL", 10)
OUTLIER_CHANCE = _env_int("OUTLIER_CHANCE", 5)
