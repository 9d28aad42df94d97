#!/usr/bin/env python3
"""
Create the fire dispatch schema and optionally seed a demo station.

The demo station gets an Operations department with two units, a public
reporter and a personnel reporter, enough to exercise the alert flow by hand.
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select  # noqa: E402

from fireops.database import async_session_maker, engine, init_db  # noqa: E402
from fireops.models import Department, FirePersonnel, Station, Unit, User  # noqa: E402

DEMO_PLACE_ID = "demo-station-accra-central"


def log(msg):
    """Print with flush for immediate output."""
    print(msg, flush=True)


async def seed_demo() -> None:
    async with async_session_maker() as db:
        result = await db.execute(select(Station).where(Station.place_id == DEMO_PLACE_ID))
        if result.scalar_one_or_none() is not None:
            log("Demo station already present, skipping seed")
            return

        station = Station(
            name="Accra Central Fire Station",
            call_sign="ACC-01",
            location="Accra Central",
            lat=5.5502,
            lng=-0.2174,
            region="Greater Accra",
            phone_number="+233 30 000 0000",
            place_id=DEMO_PLACE_ID,
        )
        db.add(station)
        await db.flush()

        operations = Department(name="Operations", station_id=station.id)
        admin = Department(name="Administration", station_id=station.id)
        db.add_all([operations, admin])
        await db.flush()

        db.add_all(
            [
                Unit(name="Red Watch", color="#d32f2f", department_id=operations.id),
                Unit(name="Blue Watch", color="#1976d2", department_id=operations.id),
                User(name="Demo Reporter", email="reporter@example.com", phone="+233 20 000 0000"),
                FirePersonnel(
                    name="Demo Officer",
                    email="officer@example.com",
                    rank="Station Officer",
                    station_id=station.id,
                    department_id=operations.id,
                ),
            ]
        )
        await db.commit()
        log(f"Seeded demo station {station.id}")


async def main(seed: bool) -> None:
    log("Creating tables...")
    await init_db()
    log("Tables ready")

    if seed:
        await seed_demo()

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialise the fire dispatch database")
    parser.add_argument("--seed", action="store_true", help="Insert a demo station with units")
    args = parser.parse_args()
    asyncio.run(main(args.seed))
