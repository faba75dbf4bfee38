"""
Shared pytest fixtures.
Database tests run against a throwaway SQLite file (no Streamlit required).
"""

from datetime import datetime

import pytest

import db
from models import Assignment, AssignmentSubmission, StudyGoal, StudySession


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point DATABASE_URL at a fresh SQLite file and apply all migrations."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    db.reset_db_config()
    db.init_db()
    yield db
    db.reset_db_config()


@pytest.fixture
def student(temp_db):
    from services.core import create_user
    return create_user("student@example.com", "Test Student")


def session(duration, subject="Math", when=None, completed=True, id=None):
    """Build a StudySession with sensible defaults."""
    return StudySession(
        id=id or f"s-{subject}-{duration}-{when}",
        duration_minutes=duration,
        subject=subject,
        date=when or datetime(2024, 1, 3, 10, 0),
        completed=completed,
    )


def goal(subject="Math", target_hours=10, start=None, end=None, period="weekly"):
    return StudyGoal(
        id=f"g-{subject}",
        subject=subject,
        target_hours=target_hours,
        period=period,
        start_date=start or datetime(2024, 1, 1),
        end_date=end or datetime(2024, 1, 7, 23, 59, 59),
    )


def assignment(id, course_id="c1", priority="medium", due=None, status="todo"):
    return Assignment(id=id, course_id=course_id, title=f"Assignment {id}",
                      priority=priority, status=status, due_date=due)


def submission(assignment_id, status="submitted", estimated=None, actual=None, student_id="u1"):
    return AssignmentSubmission(
        id=f"sub-{assignment_id}-{student_id}",
        assignment_id=assignment_id,
        student_id=student_id,
        status=status,
        estimated_hours=estimated,
        actual_hours=actual,
    )
