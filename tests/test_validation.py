"""Tests for conflict detection and authority validation."""

from datetime import datetime, timezone

import pytest

from core.validation import (
    count_conflict_pairs,
    detect_conflicts,
    events_overlap,
    share_staff,
    validate_authority,
)


def at(hour, minute=0):
    return datetime(2025, 11, 10, hour, minute, tzinfo=timezone.utc)


# =============================================================================
# CONFLICTS
# =============================================================================


def test_overlap_is_half_open():
    a = {"start_time": at(9), "end_time": at(10)}
    b = {"start_time": at(10), "end_time": at(11)}
    c = {"start_time": at(9, 59), "end_time": at(11)}
    assert not events_overlap(a, b)
    assert events_overlap(a, c)
    assert events_overlap(c, a)


def test_share_staff():
    assert share_staff({"staff_ids": ["s1", "s2"]}, {"staff_ids": ["s2"]})
    assert not share_staff({"staff_ids": ["s1"]}, {"staff_ids": ["s2"]})


def test_overlapping_shared_staff_conflicts_both_ways(booking_event):
    a = booking_event("A", at(9), at(10), ["S1"])
    b = booking_event("B", at(9, 30), at(10, 30), ["S1"])
    c = booking_event("C", at(10), at(11), ["S1"])

    detect_conflicts([a, b, c])

    assert a["conflicts_with"] == ["B"]
    assert b["conflicts_with"] == ["A", "C"]
    assert c["conflicts_with"] == ["B"]
    assert "C" not in a["conflicts_with"]


def test_conflict_relation_is_symmetric(booking_event):
    events = [
        booking_event("e1", at(8), at(12), ["S1", "S2"]),
        booking_event("e2", at(9), at(10), ["S2"]),
        booking_event("e3", at(11), at(13), ["S1"]),
        booking_event("e4", at(9), at(10), ["S3"]),
    ]

    detect_conflicts(events)

    by_id = {e["id"]: e for e in events}
    for event in events:
        for other_id in event["conflicts_with"]:
            assert event["id"] in by_id[other_id]["conflicts_with"]
    assert by_id["e4"]["conflicts_with"] == []
    assert count_conflict_pairs(events) == 2


def test_events_without_staff_never_conflict(booking_event):
    unassigned = booking_event("u1", at(9), at(10), [])
    other_unassigned = booking_event("u2", at(9), at(10), [])

    detect_conflicts([unassigned, other_unassigned])

    assert unassigned["conflicts_with"] == []
    assert other_unassigned["conflicts_with"] == []


def test_detect_conflicts_resets_previous_results(booking_event):
    a = booking_event("A", at(9), at(10), ["S1"])
    a["conflicts_with"] = ["stale"]

    detect_conflicts([a])

    assert a["conflicts_with"] == []


# =============================================================================
# AUTHORITY
# =============================================================================


def test_valid_authority():
    authority = validate_authority(
        {
            "organization": "  Kent County Council ",
            "telephone": "+44 (0)1622 123-456",
            "email": "care@kent.gov.uk",
            "invoice_email": "",
            "needs_cm2000": True,
        }
    )
    assert authority.organization == "Kent County Council"
    assert authority.needs_cm2000 is True


def test_blank_organization_rejected():
    with pytest.raises(ValueError) as exc_info:
        validate_authority({"organization": "   "})
    assert str(exc_info.value) == "organization: Organization is required"


def test_missing_organization_rejected():
    with pytest.raises(ValueError, match="organization: Organization is required"):
        validate_authority({})


def test_invalid_phone_and_emails_reported_per_field():
    with pytest.raises(ValueError) as exc_info:
        validate_authority(
            {
                "organization": "Kent",
                "telephone": "call me",
                "contact_email": "not-an-email",
                "invoice_email": "billing@",
            }
        )
    lines = str(exc_info.value).splitlines()
    assert "telephone: Invalid phone number" in lines
    assert "contact_email: Invalid email address" in lines
    assert "invoice_email: Invalid email address" in lines
    assert len(lines) == 3
