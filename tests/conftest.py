"""
Pytest configuration and shared fixtures.
"""

import copy
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src and fixture generators to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent / "fixtures"))

from models.events import make_event


# =============================================================================
# FAKE BACKEND
# =============================================================================


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable stand-in for a table query; filters apply to in-memory rows."""

    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.filters = []
        self.operation = "select"
        self.payload = None
        self.count = None
        self.order_by = None
        self.max_rows = None
        self.single_row = False

    def select(self, columns="*", count=None):
        self.count = count
        return self

    def update(self, values):
        self.operation = "update"
        self.payload = values
        return self

    def insert(self, values):
        self.operation = "insert"
        self.payload = values
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] <= value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] < value)
        return self

    def is_(self, column, value):
        expected = None if value == "null" else value
        self.filters.append(lambda row: row.get(column) == expected)
        return self

    def or_(self, expression):
        self.backend.or_filters.append((self.table, expression))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def single(self):
        self.single_row = True
        return self

    def execute(self):
        self.backend.executed.append((self.table, self.operation))
        if self.table in self.backend.failing_tables:
            raise RuntimeError(f"{self.table} unavailable")

        rows = self.backend.tables.setdefault(self.table, [])
        if self.operation == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            rows.extend(copy.deepcopy(new_rows))
            return FakeResponse(new_rows)

        matched = [row for row in rows if all(f(row) for f in self.filters)]
        if self.operation == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse(matched)

        if self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self.max_rows is not None:
            matched = matched[: self.max_rows]
        if self.single_row:
            if len(matched) != 1:
                raise RuntimeError("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(copy.deepcopy(matched[0]))
        count = len(matched) if self.count else None
        return FakeResponse(copy.deepcopy(matched), count)


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        self.storage.objects[(self.name, path)] = file
        return {"Key": f"{self.name}/{path}"}

    def download(self, path):
        return self.storage.objects[(self.name, path)]

    def list(self, folder=""):
        prefix = f"{folder}/" if folder else ""
        return [
            {"name": path[len(prefix):]}
            for bucket, path in self.storage.objects
            if bucket == self.name and path.startswith(prefix)
        ]

    def remove(self, paths):
        return [
            {"name": path}
            for path in paths
            if self.storage.objects.pop((self.name, path), None) is not None
        ]

    def create_signed_url(self, path, expires_in):
        return {"signedURL": f"https://storage.test/{self.name}/{path}?expires={expires_in}"}


class FakeStorage:
    def __init__(self):
        self.objects = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeFunctions:
    def __init__(self):
        self.calls = []
        self.error = None

    def invoke(self, name, invoke_options=None):
        self.calls.append((name, invoke_options["body"]))
        if self.error:
            raise self.error
        return {"success": True}


class FakeBackend:
    """In-memory backend client: tables, storage and edge functions."""

    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.failing_tables = set()
        self.executed = []
        self.or_filters = []
        self.storage = FakeStorage()
        self.functions = FakeFunctions()

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_backend():
    return FakeBackend()


# =============================================================================
# CLOCK
# =============================================================================


@pytest.fixture
def late_evening_clock():
    """datetime stand-in pinned to 23:30 UTC on 10 Nov 2025."""
    moment = datetime(2025, 11, 10, 23, 30, tzinfo=timezone.utc)

    class LateEveningClock(datetime):
        @classmethod
        def now(cls, tz=None):
            return moment.astimezone(tz) if tz else moment.replace(tzinfo=None)

    return LateEveningClock


# =============================================================================
# EVENTS
# =============================================================================


@pytest.fixture
def booking_event():
    """Factory for booking events with staff assignments."""

    def _make(event_id, start, end, staff_ids, **kwargs):
        participants = [{"id": s, "name": f"Carer {s}", "role": "carer"} for s in staff_ids]
        return make_event(
            event_id,
            "booking",
            kwargs.pop("title", f"Visit {event_id}"),
            start,
            end,
            participants=participants,
            staff_ids=list(staff_ids),
            branch={"id": "branch-1", "name": "North"},
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_notifications():
    """Stored notifications across several categories."""
    return [
        {
            "id": "n1",
            "type": "booking",
            "priority": "high",
            "title": "Booking overdue",
            "message": "Visit for Jane Doe overdue",
            "read_at": None,
            "created_at": "2025-11-10T08:00:00+00:00",
            "branch_id": "branch-1",
            "user_id": "user-1",
        },
        {
            "id": "n2",
            "type": "leave_request",
            "priority": "medium",
            "title": "Leave requested",
            "message": "",
            "read_at": "2025-11-10T09:00:00+00:00",
            "created_at": "2025-11-09T08:00:00+00:00",
            "branch_id": "branch-1",
            "user_id": "user-1",
        },
        {
            "id": "n3",
            "type": "medication_alert",
            "priority": "urgent",
            "title": "Medication missed",
            "message": "",
            "read_at": None,
            "created_at": "2025-11-10T07:00:00+00:00",
            "branch_id": "branch-1",
            "user_id": "user-1",
            "data": {"medication_id": "med-1"},
        },
        {
            "id": "n4",
            "type": "system_alert",
            "priority": "low",
            "title": "Maintenance window",
            "message": "",
            "read_at": None,
            "created_at": "2025-11-08T07:00:00+00:00",
            "branch_id": "branch-1",
            "user_id": "user-2",
        },
        {
            "id": "n5",
            "type": "unmapped_type",
            "priority": "high",
            "title": "Orphan",
            "message": "",
            "read_at": None,
            "created_at": "2025-11-10T07:00:00+00:00",
            "branch_id": "branch-1",
            "user_id": "user-1",
        },
    ]
