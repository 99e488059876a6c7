import unittest
from datetime import time

import pytest

from school_office.database import ProgramDB, ScheduleDB, SubjectDB, TeacherDB
from school_office.services.conflicts import GENERAL, ScheduleConflictChecker, normalize_year


class TestNormalizeYear(unittest.TestCase):
    def test_grade_prefix_and_case_are_ignored(self):
        self.assertEqual(normalize_year("Grade 1"), "1")
        self.assertEqual(normalize_year(" grade 1 "), "1")
        self.assertEqual(normalize_year("GRADE  2"), "2")
        self.assertEqual(normalize_year("1"), "1")

    def test_missing_labels_are_general(self):
        self.assertEqual(normalize_year(None), GENERAL)
        self.assertEqual(normalize_year(""), GENERAL)
        self.assertEqual(normalize_year("   "), GENERAL)
        self.assertEqual(normalize_year("Grade"), GENERAL)
        self.assertEqual(normalize_year("General"), GENERAL)

    def test_other_labels_are_kept(self):
        self.assertEqual(normalize_year("Year 3"), "year 3")


@pytest.fixture
def timetable(db_session):
    program = ProgramDB(name="Hifz")
    other_program = ProgramDB(name="Alim")
    teacher = TeacherDB(emp_id="T1", name="Ustaz Ali")
    db_session.add_all([program, other_program, teacher])
    db_session.flush()

    grade1 = SubjectDB(name="Tajweed", program_id=program.id, year="Grade 1")
    grade2 = SubjectDB(name="Arabic", program_id=program.id, year="2")
    general = SubjectDB(name="Assembly", program_id=program.id, year="")
    db_session.add_all([grade1, grade2, general])
    db_session.flush()

    monday = ScheduleDB(program_id=program.id, subject_id=grade1.id, teacher_id=teacher.id,
                        day_of_week="Monday", start_time=time(9, 0), end_time=time(10, 0))
    db_session.add(monday)
    db_session.commit()
    return {
        "program": program, "other_program": other_program, "teacher": teacher,
        "grade1": grade1, "grade2": grade2, "general": general, "monday": monday,
    }


def test_teacher_overlap_reports_existing_range(db_session, timetable):
    checker = ScheduleConflictChecker(db_session)
    reason = checker.teacher_conflict(timetable["teacher"].id, "Monday", time(9, 30), time(10, 30))
    assert reason == "Teacher is already booked (09:00:00 - 10:00:00)."


def test_touching_intervals_do_not_overlap(db_session, timetable):
    checker = ScheduleConflictChecker(db_session)
    t = timetable
    assert checker.check(t["program"].id, t["grade1"].id, t["teacher"].id, "Monday", time(10, 0), time(11, 0)) is None
    assert checker.check(t["program"].id, t["grade1"].id, t["teacher"].id, "Monday", time(8, 0), time(9, 0)) is None


def test_other_day_is_free(db_session, timetable):
    t = timetable
    reason = ScheduleConflictChecker(db_session).check(
        t["program"].id, t["grade1"].id, t["teacher"].id, "Tuesday", time(9, 0), time(10, 0))
    assert reason is None


def test_same_cohort_in_program_conflicts(db_session, timetable):
    t = timetable
    reason = ScheduleConflictChecker(db_session).cohort_conflict(
        t["program"].id, t["grade1"].id, "Monday", time(9, 15), time(9, 45))
    assert reason == "Student batch (Grade 1) is busy with Tajweed (09:00:00 - 10:00:00)."


def test_grade_prefix_matches_bare_number(db_session, timetable):
    t = timetable
    subject = SubjectDB(name="Hadith", program_id=t["program"].id, year="1")
    db_session.add(subject)
    db_session.commit()
    reason = ScheduleConflictChecker(db_session).cohort_conflict(
        t["program"].id, subject.id, "Monday", time(9, 15), time(9, 45))
    assert reason is not None


def test_different_cohorts_can_share_a_slot(db_session, timetable):
    t = timetable
    reason = ScheduleConflictChecker(db_session).check(
        t["program"].id, t["grade2"].id, None, "Monday", time(9, 0), time(10, 0))
    assert reason is None


def test_general_subject_clashes_with_every_cohort(db_session, timetable):
    t = timetable
    reason = ScheduleConflictChecker(db_session).check(
        t["program"].id, t["general"].id, None, "Monday", time(9, 30), time(10, 30))
    assert reason.startswith("Student batch (Grade 1) is busy with Tajweed")


def test_cohorts_are_scoped_to_program(db_session, timetable):
    t = timetable
    subject = SubjectDB(name="Tajweed", program_id=t["other_program"].id, year="Grade 1")
    db_session.add(subject)
    db_session.commit()
    reason = ScheduleConflictChecker(db_session).check(
        t["other_program"].id, subject.id, None, "Monday", time(9, 0), time(10, 0))
    assert reason is None


def test_edited_entry_is_excluded(db_session, timetable):
    t = timetable
    reason = ScheduleConflictChecker(db_session).check(
        t["program"].id, t["grade1"].id, t["teacher"].id, "Monday", time(9, 30), time(10, 30),
        exclude_id=t["monday"].id,
    )
    assert reason is None


def test_teacher_rule_is_reported_first(db_session, timetable):
    t = timetable
    reason = ScheduleConflictChecker(db_session).check(
        t["program"].id, t["grade1"].id, t["teacher"].id, "Monday", time(9, 0), time(10, 0))
    assert reason.startswith("Teacher is already booked")
