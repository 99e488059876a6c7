import unittest
from datetime import date, datetime, time

import pytest

from school_office.services.exams import effective_status


class TestEffectiveStatus(unittest.TestCase):
    exam_day = date(2025, 5, 20)

    def _status(self, now, stored="Upcoming", start=time(9, 0), end=time(12, 0)):
        return effective_status(stored, self.exam_day, start, end, now=now)

    def test_before_start_is_upcoming(self):
        self.assertEqual(self._status(datetime(2025, 5, 20, 8, 59)), "Upcoming")

    def test_during_exam_is_ongoing(self):
        self.assertEqual(self._status(datetime(2025, 5, 20, 9, 0)), "Ongoing")
        self.assertEqual(self._status(datetime(2025, 5, 20, 12, 0)), "Ongoing")

    def test_after_end_is_completed(self):
        self.assertEqual(self._status(datetime(2025, 5, 20, 12, 1)), "Completed")
        self.assertEqual(self._status(datetime(2025, 6, 1), stored="Ongoing"), "Completed")

    def test_cancelled_is_kept(self):
        self.assertEqual(self._status(datetime(2025, 6, 1), stored="Cancelled"), "Cancelled")

    def test_missing_times_cover_the_whole_day(self):
        now = datetime(2025, 5, 20, 23, 0)
        self.assertEqual(effective_status("Upcoming", self.exam_day, now=now), "Ongoing")
        now = datetime(2025, 5, 20, 23, 59, 30)
        self.assertEqual(effective_status("Upcoming", self.exam_day, now=now), "Completed")


@pytest.fixture
def students(client):
    for index, first in (("S1", "Bilal"), ("S2", "Aisha")):
        client.post("/api/students", data={"indexNumber": index, "firstName": first})
    return ["S1", "S2"]


@pytest.fixture
def exam(client, program, make_subject, make_teacher, students):
    subject = make_subject("Tajweed", "Grade 1")
    supervisor = make_teacher("EMP-9", "Ustaz Hamid")
    response = client.post("/api/exams", json={
        "title": "Mid term",
        "programId": program["id"],
        "subjectId": subject["id"],
        "supervisorId": supervisor["id"],
        "parts": [
            {"date": "2030-03-10", "startTime": "09:00", "endTime": "11:00", "venue": "Hall A"},
            {"date": "2030-03-11", "startTime": "09:00", "endTime": "10:00", "venue": "Hall B"},
        ],
        "studentIds": students,
    })
    assert response.status_code == 201
    assert response.json()["message"] == "Exam created successfully"
    return response.json()["examId"]


def test_first_part_sets_the_exam_schedule(client, exam):
    details = client.get(f"/api/exams/{exam}/details").json()
    assert details["exam"]["exam_date"] == "2030-03-10"
    assert details["exam"]["venue"] == "Hall A"
    assert details["exam"]["supervisor_name"] == "Ustaz Hamid"
    assert details["exam"]["subject_name"] == "Tajweed"
    assert [(p["position"], p["venue"]) for p in details["parts"]] == [(0, "Hall A"), (1, "Hall B")]
    assert [s["name"] for s in details["students"]] == ["Aisha", "Bilal"]


def test_listing_shows_counts_and_derived_status(client, exam):
    listed = client.get("/api/exams").json()
    assert len(listed) == 1
    assert listed[0]["status"] == "Upcoming"
    assert listed[0]["assigned_students"] == 2
    assert listed[0]["present_students"] == 2
    assert listed[0]["absent_students"] == 0
    assert listed[0]["program_name"] == "Hifzul Quran"


def test_results_are_saved(client, exam):
    response = client.post(f"/api/exams/{exam}/results", json={
        "results": [
            {"id": "S1", "marksObtained": 78.5, "grade": "A", "status": "Present"},
            {"id": "S2", "status": "Absent", "remarks": "Sick"},
        ],
        "status": "Completed",
    })
    assert response.json() == {"message": "Saved"}

    details = client.get(f"/api/exams/{exam}/details").json()
    by_id = {s["id"]: s for s in details["students"]}
    assert by_id["S1"]["marks_obtained"] == 78.5
    assert by_id["S1"]["grade"] == "A"
    assert by_id["S2"]["status"] == "Absent"
    assert details["exam"]["status"] == "Completed"


def test_update_adds_students_and_keeps_marks(client, exam):
    client.post(f"/api/exams/{exam}/results", json={"results": [{"id": "S1", "marksObtained": 90}]})
    client.post("/api/students", data={"indexNumber": "S3", "firstName": "Yusuf"})

    response = client.put(f"/api/exams/{exam}", json={"title": "Mid term (rescheduled)", "studentIds": ["S1", "S3"]})
    assert response.status_code == 200

    details = client.get(f"/api/exams/{exam}/details").json()
    assert details["exam"]["title"] == "Mid term (rescheduled)"
    assert details["exam"]["exam_date"] == "2030-03-10"
    by_id = {s["id"]: s for s in details["students"]}
    assert set(by_id) == {"S1", "S2", "S3"}
    assert by_id["S1"]["marks_obtained"] == 90


def test_status_patch_and_cancelled_listing(client, exam):
    assert client.patch(f"/api/exams/{exam}/status", json={}).status_code == 400
    assert client.patch(f"/api/exams/{exam}/status", json={"status": "Cancelled"}).status_code == 200
    assert client.get("/api/exams").json()[0]["status"] == "Cancelled"


def test_delete_removes_parts_and_results(client, exam):
    assert client.delete(f"/api/exams/{exam}").json() == {"message": "Deleted"}
    assert client.get("/api/exams").json() == []
    assert client.get(f"/api/exams/{exam}/details").status_code == 404


def test_exam_requires_a_date(client):
    response = client.post("/api/exams", json={"title": "No date"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Exam date is required"


def test_flat_schedule_without_parts(client):
    response = client.post("/api/exams", json={"title": "Oral", "examDate": "2030-01-05", "venue": "Room 2"})
    exam_id = response.json()["examId"]
    details = client.get(f"/api/exams/{exam_id}/details").json()
    assert details["exam"]["venue"] == "Room 2"
    assert details["parts"] == []
