"""
Record types for the Study Planner.

Plain immutable value records handed to the metric functions.
They carry no behaviour beyond construction; the data-access layer
builds them from database rows (see converters.py).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# ============ ENUM VALUES ============

GOAL_PERIODS = ("daily", "weekly", "monthly")
ASSIGNMENT_STATUSES = ("todo", "doing", "done")
PRIORITIES = ("high", "medium", "low")
SUBMISSION_STATUSES = ("not_started", "in_progress", "submitted", "graded")
USER_TYPES = ("student", "admin")

# A submission in one of these states counts as completed
COMPLETED_SUBMISSION_STATUSES = frozenset({"submitted", "graded"})


# ============ RECORDS ============

@dataclass(frozen=True)
class StudySession:
    """One logged study interval. Only completed sessions count toward totals."""
    id: str
    duration_minutes: int
    subject: str
    date: datetime
    completed: bool = True


@dataclass(frozen=True)
class StudyGoal:
    """Target hours for a subject within an inclusive date window."""
    id: str
    subject: str
    target_hours: float
    period: str
    start_date: datetime
    end_date: datetime


@dataclass(frozen=True)
class Assignment:
    id: str
    course_id: str
    title: str
    priority: str = "medium"
    status: str = "todo"
    description: Optional[str] = None
    due_date: Optional[datetime] = None


@dataclass(frozen=True)
class AssignmentSubmission:
    """A student's completion record for one assignment."""
    id: str
    assignment_id: str
    student_id: str
    status: str = "not_started"
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_SUBMISSION_STATUSES


@dataclass(frozen=True)
class Course:
    id: str
    title: str
    description: Optional[str] = None
    teacher_id: Optional[str] = None


@dataclass(frozen=True)
class User:
    id: str
    email: str
    full_name: Optional[str] = None
    user_type: str = "student"
