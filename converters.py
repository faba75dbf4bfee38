"""
Convert database rows into metric records.

Rows use the backend's snake_case column names (duration, target_hours,
start_date, ...). They can be plain dicts, pandas Series from
DataFrame.iterrows(), or whole DataFrames via the *_from_frame helpers.
"""

from datetime import datetime
from typing import Any, List, Optional

import pandas as pd

from models import (
    ASSIGNMENT_STATUSES, GOAL_PERIODS, PRIORITIES, SUBMISSION_STATUSES, USER_TYPES,
    Assignment, AssignmentSubmission, Course, StudyGoal, StudySession, User,
)


# ============ VALUE HELPERS ============

def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _optional(value: Any) -> Optional[Any]:
    return None if _is_missing(value) else value


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into a naive local datetime.
    Timezone-aware values are converted to local time first.
    """
    if _is_missing(value):
        return None
    ts = pd.to_datetime(value)
    if ts.tzinfo is not None:
        return ts.to_pydatetime().astimezone().replace(tzinfo=None)
    return ts.to_pydatetime()


def _optional_float(value: Any) -> Optional[float]:
    return None if _is_missing(value) else float(value)


def _choice(value: Any, allowed: tuple, field: str, default: Optional[str] = None) -> str:
    if _is_missing(value):
        if default is None:
            raise ValueError(f"{field} is required")
        return default
    value = str(value).strip().lower()
    if value not in allowed:
        raise ValueError(f"Invalid {field} '{value}'. Allowed: {', '.join(allowed)}")
    return value


# ============ ROW CONVERTERS ============

def session_from_row(row) -> StudySession:
    return StudySession(
        id=str(row["id"]),
        duration_minutes=int(row["duration"]) if not _is_missing(row["duration"]) else 0,
        subject=row["subject"],
        date=to_datetime(row["date"]),
        completed=bool(row["completed"]) if not _is_missing(row["completed"]) else False,
    )


def goal_from_row(row) -> StudyGoal:
    return StudyGoal(
        id=str(row["id"]),
        subject=row["subject"],
        target_hours=float(row["target_hours"]),
        period=_choice(row["period"], GOAL_PERIODS, "period"),
        start_date=to_datetime(row["start_date"]),
        end_date=to_datetime(row["end_date"]),
    )


def assignment_from_row(row) -> Assignment:
    return Assignment(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        title=row["title"],
        description=_optional(row.get("description")),
        due_date=to_datetime(row.get("due_date")),
        status=_choice(row.get("status"), ASSIGNMENT_STATUSES, "status", default="todo"),
        priority=_choice(row.get("priority"), PRIORITIES, "priority", default="medium"),
    )


def submission_from_row(row) -> AssignmentSubmission:
    return AssignmentSubmission(
        id=str(row["id"]),
        assignment_id=str(row["assignment_id"]),
        student_id=str(row["student_id"]),
        status=_choice(row.get("status"), SUBMISSION_STATUSES, "status", default="not_started"),
        estimated_hours=_optional_float(row.get("estimated_hours")),
        actual_hours=_optional_float(row.get("actual_hours")),
    )


def course_from_row(row) -> Course:
    return Course(
        id=str(row["id"]),
        title=row["title"],
        description=_optional(row.get("description")),
        teacher_id=_optional(row.get("teacher_id")),
    )


def user_from_row(row) -> User:
    return User(
        id=str(row["id"]),
        email=row["email"],
        full_name=_optional(row.get("full_name")),
        user_type=_choice(row.get("user_type"), USER_TYPES, "user_type", default="student"),
    )


# ============ FRAME CONVERTERS ============

def _from_frame(df: pd.DataFrame, convert) -> list:
    if df is None or df.empty:
        return []
    return [convert(row) for _, row in df.iterrows()]


def sessions_from_frame(df: pd.DataFrame) -> List[StudySession]:
    return _from_frame(df, session_from_row)


def goals_from_frame(df: pd.DataFrame) -> List[StudyGoal]:
    return _from_frame(df, goal_from_row)


def assignments_from_frame(df: pd.DataFrame) -> List[Assignment]:
    return _from_frame(df, assignment_from_row)


def submissions_from_frame(df: pd.DataFrame) -> List[AssignmentSubmission]:
    return _from_frame(df, submission_from_row)


def courses_from_frame(df: pd.DataFrame) -> List[Course]:
    return _from_frame(df, course_from_row)


def users_from_frame(df: pd.DataFrame) -> List[User]:
    return _from_frame(df, user_from_row)
