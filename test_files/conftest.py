# test_files/conftest.py

from datetime import datetime

import mongomock
import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.repository import WindFarmRepository
from synthetic_data.weather_model import WeatherModel


@pytest.fixture
def repository():
    repo = WindFarmRepository(mongomock.MongoClient()["windfarm_test"])
    repo.ensure_indexes()
    return repo


@pytest.fixture
def calm_weather():
    return WeatherModel(spawn_probability=0)


@pytest.fixture
def client(repository, calm_weather):
    return TestClient(create_app(repository=repository, weather_model=calm_weather))


@pytest.fixture
def turbine(repository):
    return repository.create_turbine({
        "name": "Swift-Eagle-001",
        "latitude": 31.5,
        "longitude": -100.2,
        "manufacturerName": "Vestas",
        "manufacturerCountry": "Denmark",
        "installationDate": datetime(2020, 5, 1),
        "ratedCapacityKW": 2000,
    })
