"""
Tests for row/DataFrame to record conversion.
"""

from datetime import datetime

import pandas as pd
import pytest

from converters import (
    assignment_from_row,
    assignments_from_frame,
    courses_from_frame,
    goal_from_row,
    session_from_row,
    sessions_from_frame,
    submission_from_row,
    submissions_from_frame,
    to_datetime,
    user_from_row,
    users_from_frame,
)


class TestToDatetime:

    def test_iso_string(self):
        assert to_datetime("2024-01-05T10:30:00") == datetime(2024, 1, 5, 10, 30)

    def test_bare_date_is_midnight(self):
        assert to_datetime("2024-01-05") == datetime(2024, 1, 5)

    def test_missing_values(self):
        assert to_datetime(None) is None
        assert to_datetime(float("nan")) is None
        assert to_datetime(pd.NaT) is None

    def test_timezone_aware_becomes_naive(self):
        result = to_datetime("2024-01-05T10:30:00+00:00")
        assert result.tzinfo is None


class TestRowConverters:

    def test_session(self):
        s = session_from_row({
            "id": "s1", "duration": 45, "subject": "Math",
            "date": "2024-01-05T09:00:00", "completed": 1,
        })
        assert s.duration_minutes == 45
        assert s.completed is True
        assert s.date == datetime(2024, 1, 5, 9)

    def test_goal(self):
        g = goal_from_row({
            "id": "g1", "subject": "Math", "target_hours": "10",
            "period": "Weekly", "start_date": "2024-01-01", "end_date": "2024-01-07T23:59:59",
        })
        assert g.target_hours == 10.0
        assert g.period == "weekly"
        assert g.end_date == datetime(2024, 1, 7, 23, 59, 59)

    def test_goal_unknown_period(self):
        with pytest.raises(ValueError):
            goal_from_row({
                "id": "g1", "subject": "Math", "target_hours": 1,
                "period": "yearly", "start_date": "2024-01-01", "end_date": "2024-01-07",
            })

    def test_assignment_defaults(self):
        a = assignment_from_row({"id": "a1", "course_id": "c1", "title": "Essay"})
        assert a.priority == "medium"
        assert a.status == "todo"
        assert a.due_date is None
        assert a.description is None

    def test_assignment_unknown_priority(self):
        with pytest.raises(ValueError):
            assignment_from_row({"id": "a1", "course_id": "c1", "title": "Essay", "priority": "urgent"})

    def test_submission_nan_hours_become_none(self):
        sub = submission_from_row(pd.Series({
            "id": "x", "assignment_id": "a1", "student_id": "u1",
            "status": "graded", "estimated_hours": float("nan"), "actual_hours": 2.5,
        }))
        assert sub.estimated_hours is None
        assert sub.actual_hours == 2.5
        assert sub.is_completed

    def test_user_default_type(self):
        u = user_from_row({"id": "u1", "email": "a@b.co", "full_name": None, "user_type": None})
        assert u.user_type == "student"
        assert u.full_name is None


class TestFrameConverters:

    def test_empty_frame(self):
        assert sessions_from_frame(pd.DataFrame()) == []
        assert assignments_from_frame(None) == []

    def test_frame_rows(self):
        df = pd.DataFrame([
            {"id": "s1", "duration": 30, "subject": "Math", "date": "2024-01-05", "completed": 1},
            {"id": "s2", "duration": 20, "subject": "Art", "date": "2024-01-04", "completed": 0},
        ])
        sessions = sessions_from_frame(df)
        assert [s.id for s in sessions] == ["s1", "s2"]
        assert [s.completed for s in sessions] == [True, False]

    def test_submission_frame_with_missing_columns_values(self):
        df = pd.DataFrame([
            {"id": "x1", "assignment_id": "a1", "student_id": "u1", "status": "submitted",
             "estimated_hours": None, "actual_hours": None},
        ])
        sub = submissions_from_frame(df)[0]
        assert sub.estimated_hours is None
        assert sub.actual_hours is None

    def test_course_and_user_frames(self):
        courses = courses_from_frame(pd.DataFrame([
            {"id": "c1", "title": "Algebra", "description": None, "teacher_id": None},
        ]))
        assert courses[0].title == "Algebra"
        assert courses[0].teacher_id is None

        users = users_from_frame(pd.DataFrame([
            {"id": "u1", "email": "a@b.co", "full_name": "Ana", "user_type": "admin"},
        ]))
        assert users[0].user_type == "admin"
