"""
Wind Turbine Management System - Data Seeder
Fills MongoDB with a reproducible fleet, work orders, comments
and a week of historical power output
"""

import argparse
import logging
import sys

from configs.logging_config import setup_logging
from services.errors import WindFarmError
from services.repository import WindFarmRepository
from services.time_utils import utc_now
from synthetic_data.fleet_generator import (
    TURBINE_COUNT,
    generate_historical_readings,
    generate_wind_turbine,
    generate_work_order,
    generate_work_order_comments,
    make_faker,
)

logger = logging.getLogger(__name__)


def check_seed_data_exists(repository):
    return repository.count_turbines() > 0


def seed_database(repository, fake=None, turbine_count=TURBINE_COUNT):
    """
    Replace the database contents with generated seed data.

    Returns:
        dict with the number of turbines, work orders, comments and readings created
    """
    fake = fake or make_faker()
    now = utc_now()

    logger.info("Starting database seeding...")
    repository.clear_all()
    logger.info("Cleared existing data.")

    turbines = [repository.create_turbine(generate_wind_turbine(i, fake)) for i in range(turbine_count)]
    logger.info(f"Created {len(turbines)} wind turbines.")

    work_orders = []
    for turbine in turbines:
        for _ in range(fake.random_int(min=2, max=8)):
            order = generate_work_order(turbine["id"], turbine["installationDate"], fake, now=now)
            work_orders.append(repository.create_work_order(order))
    logger.info(f"Created {len(work_orders)} work orders.")

    comment_count = 0
    for order in work_orders:
        for comment in generate_work_order_comments(order["id"], order["status"], fake, now=now):
            repository.create_comment(
                comment["workOrderId"], comment["userId"], comment["content"], created_at=comment["createdAt"]
            )
            comment_count += 1
    if work_orders:
        logger.info(f"Created {comment_count} work order comments "
                    f"(average {comment_count / len(work_orders):.2f} per work order).")

    reading_count = 0
    for turbine in turbines:
        if not turbine["active"]:
            continue
        readings = generate_historical_readings(turbine, fake, now=now)
        reading_count += repository.create_readings([reading.to_document() for reading in readings])
    logger.info(f"Created {reading_count} power output records.")

    logger.info("Database seeding completed successfully!")
    return {
        "turbines": len(turbines),
        "workOrders": len(work_orders),
        "comments": comment_count,
        "powerOutputs": reading_count,
    }


def confirm_reset():
    answer = input("This will permanently delete all data. Are you sure? (yes/no): ")
    return answer.strip().lower() in ("yes", "y")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Wind Turbine Management System - Data Seeder")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--reset", action="store_true", help="Clear the database and regenerate seed data")
    group.add_argument("--clear", action="store_true", help="Clear the database only (no regeneration)")
    group.add_argument("--check", action="store_true",
                       help="Exit 0 if seed data exists, 1 otherwise")
    parser.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompts")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging("seeder.log")

    print("Wind Turbine Management System - Data Seeder")
    print("=" * 46)

    try:
        repository = WindFarmRepository.from_settings()
        repository.ensure_indexes()

        if args.check:
            exists = check_seed_data_exists(repository)
            print("Seed data already exists" if exists else "No seed data found")
            return 0 if exists else 1

        if args.reset or args.clear:
            print("\n🗑️  This will clear all wind turbine data including:")
            print("   • Wind turbines")
            print("   • Work orders and comments")
            print("   • Power output history\n")

            if not args.force:
                if not confirm_reset():
                    print("❌ Operation cancelled")
                    return 0
            else:
                print("⚠️  Force mode enabled, skipping confirmation")

            print("🧹 Clearing database...")
            repository.clear_all()
            print("✅ Database cleared successfully!")

            if args.clear:
                print('💡 Run "python seed_database.py" to generate new test data')
                return 0
        elif check_seed_data_exists(repository):
            print("✅ Seed data already exists. Use --reset to regenerate it.")
            return 0

        seed_database(repository)
        print("\n✅ Database seeding completed successfully!")
        print("You can now start the API server with: python main.py")
        return 0

    except WindFarmError as e:
        logger.error(f"❌ Database seeding failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
