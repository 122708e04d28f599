"""
Unit tests for progress sanitization and dashboard math.
"""
from __future__ import annotations

import math

import pytest

from learner_progress.tracker import ProgressTracker, as_non_negative_int, completion_pct, sanitize_snapshot
from persistence.memory import MemoryStore


@pytest.mark.parametrize(
    "raw, expected",
    [
        (5, 5),
        (5.9, 5),
        ("12", 12),
        (" 3.7 ", 3),
        (-1, 0),
        ("-4", 0),
        (math.inf, 0),
        (math.nan, 0),
        ("abc", 0),
        ("", 0),
        (None, 0),
        ([1], 0),
        (True, 1),
        (10**12, 2**31 - 1),
    ],
)
def test_as_non_negative_int(raw, expected):
    assert as_non_negative_int(raw) == expected


def test_sanitize_clamps_completed_to_total():
    snap = sanitize_snapshot({"total_terms": 5, "completed_terms": 9999, "interview_total": 1, "interview_answered": 4})
    assert snap["completed_terms"] == 5
    assert snap["interview_answered"] == 1


def test_sanitize_truncates_module_and_defaults_home():
    assert sanitize_snapshot({"module": "x" * 40})["module"] == "x" * 32
    assert sanitize_snapshot({"module": ""})["module"] == "home"
    assert sanitize_snapshot({})["module"] == "home"


@pytest.mark.parametrize(
    "done, total, pct",
    [(1, 3, 33.3), (2, 3, 66.7), (1, 8, 12.5), (0, 0, 0.0), (None, None, 0.0), (4, 4, 100.0)],
)
def test_completion_pct_rounds_half_up(done, total, pct):
    assert completion_pct(done, total) == pct


def test_dashboard_sorts_by_latest_activity():
    store = MemoryStore()
    from identity_access.domain import Role

    a = store.create_user(subject="a", email="a@x.io", name="A", avatar_url=None, role=Role.VIEWER, is_allowed=True)
    b = store.create_user(subject="b", email="b@x.io", name="B", avatar_url=None, role=Role.VIEWER, is_allowed=True)
    store.users[a.id].last_login = "2024-01-01T00:00:00+00:00"
    store.users[b.id].last_login = "2024-02-01T00:00:00+00:00"
    tracker = ProgressTracker(store)
    tracker.record(a.id, {"total_terms": 2, "completed_terms": 1})
    store.progress[a.id]["updated_at"] = "2024-03-01T00:00:00+00:00"

    rows = tracker.dashboard()
    assert [r["email"] for r in rows] == ["a@x.io", "b@x.io"]
    assert rows[0]["flashcard_completion_pct"] == 50.0
    assert rows[1]["total_terms"] is None
