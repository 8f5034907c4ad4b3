import argparse
import os
import subprocess
import sys
import time
from pathlib import Path


def check_seed_data():
    """True when the database already holds turbines"""
    result = subprocess.run([sys.executable, "seed_database.py", "--check"])
    return result.returncode == 0


def run_seeder():
    print("📦 No seed data found, running seeder...")
    subprocess.check_call([sys.executable, "seed_database.py"])
    print("✅ Seeding completed successfully")


def start_service(cmd, name):
    print(f"Starting {name}...")
    print(f"Command: {' '.join(cmd)}")
    proc = subprocess.Popen(cmd)
    time.sleep(1)
    if proc.poll() is None:
        print(f"✅ {name} started successfully")
    else:
        print(f"❌ {name} exited with code {proc.returncode}")
    return proc


def stop_services(processes):
    for name, proc in processes:
        if proc.poll() is None:
            print(f"Stopping {name}...")
            proc.terminate()
    for _, proc in processes:
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()


def main():
    parser = argparse.ArgumentParser(description="Wind Turbine Management System - Startup")
    parser.add_argument("--skip-seed", action="store_true", help="Skip seeding even if no data exists")
    parser.add_argument("--backend-only", action="store_true", help="Start only the API (no simulator)")
    parser.add_argument("--no-simulator", action="store_true", help="Start the API without the simulator")
    args = parser.parse_args()

    os.chdir(Path(__file__).parent)

    print("Wind Turbine Management System - Startup")
    print("=" * 40)

    if args.skip_seed:
        print("⏭️  Skipping seed data check (--skip-seed specified)")
    else:
        print("🔍 Checking for existing seed data...")
        if check_seed_data():
            print("✅ Seed data already exists, skipping seeding step")
        else:
            run_seeder()

    processes = [("Backend API", start_service([sys.executable, "main.py"], "Backend API"))]

    if not (args.backend_only or args.no_simulator):
        processes.append(("Data Simulator", start_service([sys.executable, "simulator.py"], "Data Simulator")))
    else:
        print("⏭️  Simulator disabled")

    print("\nAll services started. Press Ctrl+C to stop.")
    try:
        while all(proc.poll() is None for _, proc in processes):
            time.sleep(1)
        print("❌ A service exited, shutting down the rest")
    except KeyboardInterrupt:
        print("\n🛑 Shutting down services...")
    finally:
        stop_services(processes)


if __name__ == "__main__":
    main()
