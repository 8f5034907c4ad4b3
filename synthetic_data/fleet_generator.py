# synthetic_data/fleet_generator.py

from collections import OrderedDict
from datetime import datetime, timedelta

from faker import Faker

from services.time_utils import utc_now
from synthetic_data.power_generator import generate_historical_reading

FAKER_SEED = 12345
TURBINE_COUNT = 150
ALWAYS_ACTIVE_COUNT = 140
HISTORY_DAYS = 7
HISTORY_STEP_HOURS = 2
INSTALLATION_START = datetime(2015, 1, 1)
INSTALLATION_END = datetime(2023, 12, 31)

MANUFACTURERS = [
    ("General Electric", "United States"),
    ("Vestas", "Denmark"),
    ("Siemens Gamesa", "Germany"),
    ("Goldwind", "China"),
    ("Enercon", "Germany"),
    ("Nordex", "Germany"),
    ("Mingyang", "China"),
    ("Envision Energy", "China"),
]

# state, latitude range, longitude range
WIND_FARM_LOCATIONS = [
    ("Texas", (25.8, 36.5), (-106.6, -93.5)),
    ("Iowa", (40.4, 43.5), (-96.6, -90.1)),
    ("California", (32.5, 42.0), (-124.4, -114.1)),
    ("Kansas", (37.0, 40.0), (-102.0, -94.6)),
    ("Oklahoma", (33.6, 37.0), (-103.0, -94.4)),
    ("Nebraska", (40.0, 43.0), (-104.0, -95.3)),
    ("Wyoming", (41.0, 45.0), (-111.0, -104.0)),
]

RATED_CAPACITIES_KW = [1500, 2000, 2500, 3000, 3500]

NAME_ADJECTIVES = ["Swift", "Mighty", "Thunder", "Storm", "Wind", "Sky", "Power", "Energy", "Force", "Strong"]
NAME_NOUNS = ["Eagle", "Falcon", "Hawk", "Storm", "Wind", "Power", "Force", "Giant", "Titan", "Guardian"]

WORK_ORDER_TYPES = {
    "Routine Maintenance": [
        "Quarterly turbine inspection and maintenance",
        "Annual gearbox oil change and filter replacement",
        "Blade inspection and cleaning",
        "Generator maintenance and testing",
        "Electrical system inspection",
        "Safety system testing and calibration",
    ],
    "Emergency Repair": [
        "Gearbox failure - emergency replacement required",
        "Generator overheating - immediate shutdown",
        "Blade damage from storm - safety inspection needed",
        "Electrical fault causing power fluctuations",
        "Brake system malfunction - urgent repair",
        "Control system failure - replacement needed",
    ],
    "Performance Investigation": [
        "Power output below expected levels - investigation required",
        "Unusual vibration patterns detected",
        "Efficiency drop compared to neighboring turbines",
        "Intermittent power generation issues",
        "Wind speed vs power output analysis needed",
        "Comparative performance study with similar turbines",
    ],
    "Upgrade": [
        "Control system software upgrade",
        "Blade aerodynamic enhancement installation",
        "Generator efficiency improvement",
        "SCADA system upgrade",
        "Lightning protection system enhancement",
        "Condition monitoring system installation",
    ],
}

WORK_ORDER_COMMENTS = {
    "initial": [
        "Work order created. Initial assessment scheduled.",
        "Received alert from monitoring system. Investigating issue.",
        "Site inspection planned for tomorrow morning.",
        "Maintenance request submitted by operations team.",
        "Safety assessment completed. Work authorized to proceed.",
        "Initial diagnostic completed. Issue confirmed.",
        "Equipment shutdown safely. Beginning detailed inspection.",
        "Weather window identified. Crew deployment authorized.",
    ],
    "in_progress": [
        "Maintenance crew dispatched to site.",
        "Parts ordered from manufacturer. ETA 2-3 business days.",
        "Initial assessment completed. Scope of work confirmed.",
        "Waiting for manufacturer technical support response.",
        "Additional specialist required. Scheduling coordination in progress.",
        "Weather conditions delaying work. Monitoring forecast.",
        "Safety meeting completed with crew. Work proceeding.",
        "Access equipment positioned. Beginning maintenance work.",
        "Diagnostic testing in progress. Preliminary results positive.",
        "Replacement parts received. Quality inspection passed.",
        "Working with vendor on calibration procedures.",
        "Progress update: 60% complete. On schedule for completion.",
    ],
    "complications": [
        "Additional issues discovered during inspection.",
        "Unexpected component wear found. Expanding scope of work.",
        "Weather conditions deteriorating. Work suspended temporarily.",
        "Parts delivery delayed due to shipping issues.",
        "Escalating to senior technician for technical guidance.",
        "Manufacturer consulted on unusual findings.",
        "Additional safety precautions implemented.",
        "Extended downtime required for thorough inspection.",
        "Waiting for specialized equipment to arrive on site.",
        "Issue more complex than initially assessed.",
    ],
    "completion": [
        "Repair completed successfully. System back online.",
        "Quality check passed. Work order ready for closure.",
        "Functional testing completed. All parameters normal.",
        "System performance verified. Operating within specifications.",
        "Final inspection completed. Work meets all requirements.",
        "Equipment returned to service. Monitoring for 24 hours.",
        "Commissioning tests passed. Turbine back in production.",
        "Work completed ahead of schedule. Excellent crew performance.",
        "All safety protocols followed. Zero incidents reported.",
        "Customer sign-off received. Work order closed.",
    ],
    "follow_up": [
        "Regular monitoring recommended for next 30 days.",
        "Follow-up inspection scheduled in 6 months.",
        "Trending analysis shows improved performance.",
        "Recommend similar maintenance on adjacent units.",
        "Documentation updated in maintenance management system.",
        "Lessons learned captured for future reference.",
        "Performance data indicates successful repair.",
        "Reliability improvement noted since completion.",
    ],
}

# Older work orders are more likely to be resolved
STATUS_WEIGHTS_BY_AGE = [
    (30, OrderedDict([("closed", 70), ("in_progress", 20), ("open", 10)])),
    (7, OrderedDict([("closed", 40), ("in_progress", 40), ("open", 20)])),
    (0, OrderedDict([("closed", 20), ("in_progress", 30), ("open", 50)])),
]

FINAL_COMMENT_CATEGORY = {"closed": "completion", "in_progress": "in_progress"}


def make_faker(seed=FAKER_SEED):
    fake = Faker()
    fake.seed_instance(seed)
    return fake


def status_weights(age_days):
    for min_age, weights in STATUS_WEIGHTS_BY_AGE:
        if age_days > min_age:
            return weights
    return STATUS_WEIGHTS_BY_AGE[-1][1]


def _weighted_choice(fake, weights):
    return fake.random_elements(elements=weights, length=1, use_weighting=True)[0]


def generate_turbine_name(index):
    adjective = NAME_ADJECTIVES[index % len(NAME_ADJECTIVES)]
    noun = NAME_NOUNS[(index // len(NAME_ADJECTIVES)) % len(NAME_NOUNS)]
    return f"{adjective}-{noun}-{index + 1:03d}"


def generate_wind_turbine(index, fake):
    _, lat_range, lng_range = fake.random_element(WIND_FARM_LOCATIONS)
    manufacturer, country = fake.random_element(MANUFACTURERS)

    installation_date = fake.date_time_between_dates(
        datetime_start=INSTALLATION_START, datetime_end=INSTALLATION_END
    )
    # Built 2-6 months before installation
    built_date = installation_date - timedelta(days=30 * fake.random_int(min=2, max=6))

    return {
        "name": generate_turbine_name(index),
        "latitude": round(fake.random.uniform(*lat_range), 6),
        "longitude": round(fake.random.uniform(*lng_range), 6),
        "manufacturerName": manufacturer,
        "manufacturerCountry": country,
        "builtDate": built_date,
        "installationDate": installation_date,
        "active": True if index < ALWAYS_ACTIVE_COUNT else fake.boolean(chance_of_getting_true=85),
        "ratedCapacityKW": fake.random_element(RATED_CAPACITIES_KW),
    }


def generate_work_order(turbine_id, installation_date, fake, now=None):
    now = now or utc_now()
    work_type = fake.random_element(list(WORK_ORDER_TYPES))
    description = fake.random_element(WORK_ORDER_TYPES[work_type])

    creation_date = fake.date_time_between_dates(datetime_start=installation_date, datetime_end=now)
    age_days = (now - creation_date).total_seconds() / 86400
    status = _weighted_choice(fake, status_weights(age_days))

    resolution_date = None
    if status == "closed":
        resolution_date = fake.date_time_between_dates(datetime_start=creation_date, datetime_end=now)

    return {
        "windTurbineId": turbine_id,
        "title": f"{work_type}: {description.split(' - ')[0]}",
        "description": description,
        "status": status,
        "creationDate": creation_date,
        "resolutionDate": resolution_date,
    }


def generate_work_order_comments(work_order_id, status, fake, now=None):
    """3-5 comments in chronological order: opening note, progress notes, closing note by status."""
    now = now or utc_now()
    count = fake.random_int(min=3, max=5)

    created_at = fake.date_time_between_dates(datetime_start=now - timedelta(days=365), datetime_end=now)
    comments = [{
        "workOrderId": work_order_id,
        "userId": fake.name(),
        "content": fake.random_element(WORK_ORDER_COMMENTS["initial"]),
        "createdAt": created_at,
    }]

    categories = []
    for _ in range(count - 2):
        roll = fake.random.random()
        if roll < 0.6:
            categories.append("in_progress")
        elif roll < 0.8:
            categories.append("complications")
        else:
            categories.append("follow_up")
    categories.append(FINAL_COMMENT_CATEGORY.get(status, "initial"))

    for category in categories:
        created_at = fake.date_time_between_dates(datetime_start=created_at, datetime_end=now)
        comments.append({
            "workOrderId": work_order_id,
            "userId": fake.name(),
            "content": fake.random_element(WORK_ORDER_COMMENTS[category]),
            "createdAt": created_at,
        })
    return comments


def generate_historical_readings(turbine, fake, now=None, days=HISTORY_DAYS,
                                 step_hours=HISTORY_STEP_HOURS, availability=95):
    """Backfilled readings every step_hours for the last `days`, with occasional gaps."""
    now = now or utc_now()
    timestamp = now - timedelta(days=days)
    readings = []
    while timestamp <= now:
        if fake.boolean(chance_of_getting_true=availability):
            readings.append(generate_historical_reading(turbine, timestamp, fake.random))
        timestamp += timedelta(hours=step_hours)
    return readings
