import unittest
from datetime import date

import pytest

from school_office.services.sessions import CANCELLED, COMPLETED, merge_session_status


class TestMergeSessionStatus(unittest.TestCase):
    def test_attendance_marks_session_completed(self):
        merged = merge_session_status([(5, date(2025, 1, 10))], [])
        self.assertEqual(merged, {(5, date(2025, 1, 10)): COMPLETED})

    def test_explicit_status_wins_over_attendance(self):
        merged = merge_session_status(
            [(5, date(2025, 1, 10)), (6, date(2025, 1, 10))],
            [(5, date(2025, 1, 10), CANCELLED)],
        )
        self.assertEqual(merged[(5, date(2025, 1, 10))], CANCELLED)
        self.assertEqual(merged[(6, date(2025, 1, 10))], COMPLETED)

    def test_override_without_attendance_is_reported(self):
        merged = merge_session_status([], [(7, date(2025, 1, 11), COMPLETED)])
        self.assertEqual(merged, {(7, date(2025, 1, 11)): COMPLETED})


@pytest.fixture
def schedule(client, program, make_subject):
    subject = make_subject("Tajweed", "Grade 1")
    return client.post("/api/schedules", json={
        "programId": program["id"], "subjectId": subject["id"],
        "day": "Friday", "startTime": "09:00", "endTime": "10:00",
    }).json()


def _take_attendance(client, schedule_id, day):
    response = client.post("/api/attendance/class", json={
        "scheduleId": schedule_id, "date": day,
        "records": [{"studentId": "S001", "status": "Present"}, {"studentId": "S002", "status": "Absent"}],
    })
    assert response.status_code == 200


def test_sessions_from_attendance_and_overrides(client, schedule):
    _take_attendance(client, schedule["id"], "2025-01-10")
    _take_attendance(client, schedule["id"], "2025-01-17")

    response = client.put("/api/attendance/sessions", json={
        "scheduleId": schedule["id"], "date": "2025-01-17", "status": "Cancelled",
    })
    assert response.json() == {"schedule_id": schedule["id"], "date": "2025-01-17", "status": "Cancelled"}

    sessions = client.get("/api/attendance/sessions", params={"start": "2025-01-01", "end": "2025-01-31"}).json()
    assert sessions == [
        {"schedule_id": schedule["id"], "date": "2025-01-10", "status": "Completed"},
        {"schedule_id": schedule["id"], "date": "2025-01-17", "status": "Cancelled"},
    ]


def test_session_range_is_inclusive(client, schedule):
    _take_attendance(client, schedule["id"], "2025-01-10")
    sessions = client.get("/api/attendance/sessions", params={"start": "2025-01-10", "end": "2025-01-10"}).json()
    assert len(sessions) == 1
    assert client.get("/api/attendance/sessions", params={"start": "2025-01-11", "end": "2025-01-31"}).json() == []


def test_saving_status_twice_keeps_one_override(client, schedule):
    body = {"scheduleId": schedule["id"], "date": "2025-01-24", "status": "Cancelled"}
    client.put("/api/attendance/sessions", json=body)
    client.put("/api/attendance/sessions", json={**body, "status": "Completed"})

    sessions = client.get("/api/attendance/sessions", params={"start": "2025-01-24", "end": "2025-01-24"}).json()
    assert sessions == [{"schedule_id": schedule["id"], "date": "2025-01-24", "status": "Completed"}]


def test_session_input_validation(client, schedule):
    response = client.put("/api/attendance/sessions", json={
        "scheduleId": schedule["id"], "date": "2025-01-24", "status": "Postponed",
    })
    assert response.status_code == 400
    response = client.get("/api/attendance/sessions", params={"start": "2025-02-01", "end": "2025-01-01"})
    assert response.status_code == 400
