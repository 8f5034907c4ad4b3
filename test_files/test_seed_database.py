# test_files/test_seed_database.py

from datetime import timedelta

from seed_database import check_seed_data_exists, parse_args, seed_database
from services.time_utils import utc_now
from synthetic_data.fleet_generator import (
    INSTALLATION_END,
    INSTALLATION_START,
    generate_historical_readings,
    generate_turbine_name,
    generate_wind_turbine,
    generate_work_order,
    generate_work_order_comments,
    make_faker,
    status_weights,
)


def test_turbine_names():
    assert generate_turbine_name(0) == "Swift-Eagle-001"
    assert generate_turbine_name(11) == "Mighty-Falcon-012"
    assert generate_turbine_name(149) == "Strong-Wind-150"


def test_generated_turbines_are_reproducible():
    first = [generate_wind_turbine(i, make_faker()) for i in range(3)]
    second = [generate_wind_turbine(i, make_faker()) for i in range(3)]
    assert first == second


def test_generated_turbine_fields():
    fake = make_faker()
    turbines = [generate_wind_turbine(i, fake) for i in range(150)]

    assert all(t["active"] for t in turbines[:140])
    for turbine in turbines:
        assert INSTALLATION_START <= turbine["installationDate"] <= INSTALLATION_END
        assert turbine["builtDate"] < turbine["installationDate"]
        assert turbine["ratedCapacityKW"] in (1500, 2000, 2500, 3000, 3500)


def test_status_weights_by_age():
    assert status_weights(45)["closed"] == 70
    assert status_weights(10)["closed"] == 40
    assert status_weights(1)["open"] == 50


def test_generated_work_order_dates():
    fake = make_faker()
    now = utc_now().replace(microsecond=0)
    installed = now - timedelta(days=400)
    for _ in range(30):
        order = generate_work_order("T1", installed, fake, now=now)
        assert installed <= order["creationDate"] <= now
        assert order["status"] in ("open", "in_progress", "closed")
        if order["status"] == "closed":
            assert order["creationDate"] <= order["resolutionDate"] <= now
        else:
            assert order["resolutionDate"] is None


def test_generated_comments_are_chronological():
    fake = make_faker()
    comments = generate_work_order_comments("W1", "closed", fake)
    assert 3 <= len(comments) <= 5
    dates = [comment["createdAt"] for comment in comments]
    assert dates == sorted(dates)


def test_historical_readings_cover_a_week():
    turbine = {"id": "T1", "ratedCapacityKW": 2000}
    readings = generate_historical_readings(turbine, make_faker(), availability=100)
    assert len(readings) == 7 * 12 + 1
    assert all(0 <= r.power_kw <= 2400 for r in readings)


def test_seed_database_fills_every_collection(repository):
    assert not check_seed_data_exists(repository)

    counts = seed_database(repository, turbine_count=5)

    assert check_seed_data_exists(repository)
    assert counts["turbines"] == 5
    assert 10 <= counts["workOrders"] <= 40
    assert 3 * counts["workOrders"] <= counts["comments"] <= 5 * counts["workOrders"]
    assert counts["powerOutputs"] > 0
    assert repository.count_turbines() == 5


def test_reseeding_replaces_existing_data(repository):
    seed_database(repository, turbine_count=3)
    seed_database(repository, turbine_count=3)
    assert repository.count_turbines() == 3


def test_seeder_arguments():
    args = parse_args(["--reset", "--force"])
    assert args.reset and args.force and not args.clear
    assert parse_args(["--check"]).check
