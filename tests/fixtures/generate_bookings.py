"""
Generate backend booking rows for tests.

Rows mirror the bookings table: one row per staff assignment, with the
joined clients/staff/services/branches objects the calendar query selects.
"""

import random
from datetime import datetime, timedelta, timezone

from faker import Faker

fake = Faker("en_GB")

SERVICES = [
    "Personal Care",
    "Medication Support",
    "Meal Preparation",
    "Companionship",
    "Night Sitting",
]

VISIT_LENGTHS_MINUTES = [30, 45, 60, 90]


def make_person(prefix: str) -> dict:
    return {
        "id": f"{prefix}-{fake.uuid4()[:8]}",
        "first_name": fake.first_name(),
        "last_name": fake.last_name(),
    }


def make_client() -> dict:
    client = make_person("client")
    client["address"] = fake.street_address()
    return client


def booking_row(
    client: dict,
    staff: dict | None,
    start: datetime,
    minutes: int,
    service: dict,
    branch: dict,
) -> dict:
    """One bookings-table row for a staff assignment (staff None = unassigned)."""
    return {
        "id": f"booking-{fake.uuid4()[:8]}",
        "client_id": client["id"],
        "staff_id": staff["id"] if staff else None,
        "service_id": service["id"],
        "branch_id": branch["id"],
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(minutes=minutes)).isoformat(),
        "status": "scheduled",
        "is_late_start": False,
        "late_start_minutes": 0,
        "is_missed": False,
        "clients": client,
        "staff": staff,
        "services": service,
        "branches": branch,
    }


def generate_booking_rows(
    day: datetime,
    branch: dict,
    num_visits: int = 10,
    num_carers: int = 4,
    double_handed_ratio: float = 0.3,
    unassigned_ratio: float = 0.1,
    seed: int = 1234,
) -> list[dict]:
    """
    Rows for a day of visits. Double-handed visits produce two rows with the
    same client, window and service; unassigned visits have no staff.
    """
    Faker.seed(seed)
    rng = random.Random(seed)

    carers = [make_person("staff") for _ in range(num_carers)]
    services = [{"id": f"service-{i}", "title": title} for i, title in enumerate(SERVICES)]
    day = day.replace(hour=7, minute=0, second=0, microsecond=0, tzinfo=timezone.utc)

    rows = []
    for _ in range(num_visits):
        client = make_client()
        service = rng.choice(services)
        start = day + timedelta(minutes=15 * rng.randint(0, 48))
        minutes = rng.choice(VISIT_LENGTHS_MINUTES)

        roll = rng.random()
        if roll < unassigned_ratio:
            rows.append(booking_row(client, None, start, minutes, service, branch))
        elif roll < unassigned_ratio + double_handed_ratio:
            for carer in rng.sample(carers, 2):
                rows.append(booking_row(client, carer, start, minutes, service, branch))
        else:
            rows.append(booking_row(client, rng.choice(carers), start, minutes, service, branch))

    rng.shuffle(rows)
    return rows
