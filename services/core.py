"""
Core API service functions for the Study Planner.

These functions are designed to be:
- Pure Python (NO Streamlit dependencies)
- Explicit inputs (no session_state)
- JSON-serializable outputs for CRUD (dict/list/str/float/bool)
- Record outputs (models.py) for the fetch_* functions feeding the metrics

Usage:
    from services.core import add_study_session, fetch_sessions
"""

import json
from datetime import date, datetime, time, timedelta
from typing import Optional, List, Dict, Any, Union

from db import execute, read_sql, fetchone, fetchall, get_conn, is_postgres, log_event, new_id
from converters import (
    to_datetime, sessions_from_frame, goals_from_frame, assignments_from_frame,
    submissions_from_frame, submission_from_row,
)
from models import (
    ASSIGNMENT_STATUSES, GOAL_PERIODS, PRIORITIES, SUBMISSION_STATUSES, USER_TYPES,
    Assignment, AssignmentSubmission, StudyGoal, StudySession,
)
from security import (
    require_text, sanitize_string, validate_choice, validate_column_name,
    validate_email, validate_numeric_range, validate_table_name,
)

DateLike = Union[str, date, datetime]

# Display status (todo/doing/done) to submission status
DISPLAY_TO_SUBMISSION_STATUS = {
    "todo": "not_started",
    "doing": "in_progress",
    "done": "submitted",
}


def _now_iso() -> str:
    return datetime.now().isoformat()


def _as_timestamp(value: Optional[DateLike], end_of_day: bool = False) -> Optional[str]:
    """
    Normalize a date/datetime/string to an ISO timestamp string.
    A bare date becomes midnight, or 23:59:59.999 when end_of_day is set.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str) and len(value.strip()) == 10:
        # "YYYY-MM-DD"
        value = date.fromisoformat(value.strip())
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time(23, 59, 59, 999000) if end_of_day else time.min)
    return to_datetime(value).isoformat()


def _update_row(table: str, row_id: str, fields: Dict[str, Any], extra_where: str = "", extra_params: tuple = ()) -> int:
    """UPDATE only the given non-None fields. Returns affected row count."""
    table = validate_table_name(table)
    fields = {validate_column_name(k): v for k, v in fields.items() if v is not None}
    if not fields:
        return 0
    assignments = ", ".join(f"{col}=?" for col in fields)
    return execute(
        f"UPDATE {table} SET {assignments} WHERE id=?{extra_where}",
        tuple(fields.values()) + (row_id,) + extra_params
    )


# ============================================================================
# USERS
# ============================================================================

def create_user(email: str, full_name: Optional[str] = None, user_type: str = "student") -> Dict[str, Any]:
    """
    Create a user, or return the existing one with the same email.

    Returns:
        Dict with id, email, full_name, user_type, created: bool

    Raises:
        ValueError: If the email is malformed or user_type is unknown
    """
    email = sanitize_string(email, max_length=254).lower()
    if not validate_email(email):
        raise ValueError(f"Invalid email address: {email}")
    validate_choice(user_type, USER_TYPES, "user_type")

    existing = get_user_by_email(email)
    if existing:
        return {**existing, "created": False}

    user_id = new_id()
    full_name = sanitize_string(full_name or "", max_length=200) or None
    execute(
        "INSERT INTO users(id, email, full_name, user_type, created_at, updated_at) VALUES(?,?,?,?,?,?)",
        (user_id, email, full_name, user_type, _now_iso(), _now_iso())
    )
    log_event(user_id, "user_created", json.dumps({"user_type": user_type}))

    return {"id": user_id, "email": email, "full_name": full_name, "user_type": user_type, "created": True}


def _user_dict(row) -> Optional[Dict[str, Any]]:
    if not row:
        return None
    return {"id": row[0], "email": row[1], "full_name": row[2], "user_type": row[3]}


def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    return _user_dict(fetchone(
        "SELECT id, email, full_name, user_type FROM users WHERE id=?", (user_id,)
    ))


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return _user_dict(fetchone(
        "SELECT id, email, full_name, user_type FROM users WHERE email=?", (email.strip().lower(),)
    ))


def list_users(user_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """List users, optionally only one role, ordered by email."""
    if user_type:
        rows = fetchall(
            "SELECT id, email, full_name, user_type FROM users WHERE user_type=? ORDER BY email",
            (user_type,)
        )
    else:
        rows = fetchall("SELECT id, email, full_name, user_type FROM users ORDER BY email")
    return [_user_dict(r) for r in (rows or [])]


# ============================================================================
# COURSE CRUD
# ============================================================================

def create_course(title: str, description: Optional[str] = None, teacher_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Create a new course.

    Args:
        title: Course title (e.g., "Linear Algebra")
        description: Optional description
        teacher_id: Optional user ID of the admin who owns the course

    Returns:
        Dict with id, title, description, teacher_id
    """
    title = require_text(title, "Course title")
    description = sanitize_string(description or "", allow_newlines=True) or None

    course_id = new_id()
    execute(
        "INSERT INTO courses(id, title, description, teacher_id, created_at) VALUES(?,?,?,?,?)",
        (course_id, title, description, teacher_id, _now_iso())
    )
    log_event(teacher_id, "course_created", json.dumps({"course_id": course_id, "title": title}))

    return {"id": course_id, "title": title, "description": description, "teacher_id": teacher_id}


def list_courses() -> List[Dict[str, Any]]:
    """List all courses, newest first."""
    rows = fetchall(
        "SELECT id, title, description, teacher_id FROM courses ORDER BY created_at DESC, title"
    )
    return [
        {"id": r[0], "title": r[1], "description": r[2], "teacher_id": r[3]}
        for r in (rows or [])
    ]


def get_course(course_id: str) -> Optional[Dict[str, Any]]:
    row = fetchone(
        "SELECT id, title, description, teacher_id FROM courses WHERE id=?",
        (course_id,)
    )
    if not row:
        return None
    return {"id": row[0], "title": row[1], "description": row[2], "teacher_id": row[3]}


def update_course(course_id: str, title: Optional[str] = None, description: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Update a course's title/description.

    Returns:
        Updated course dict or None if not found
    """
    if not get_course(course_id):
        return None

    _update_row("courses", course_id, {
        "title": require_text(title, "Course title") if title is not None else None,
        "description": sanitize_string(description, allow_newlines=True) if description is not None else None,
    })
    return get_course(course_id)


def delete_course(course_id: str) -> Dict[str, Any]:
    """
    Delete a course and its enrollments, assignments and submissions.

    Returns:
        Dict with deleted: bool, deleted_counts: dict of table -> count
    """
    if not get_course(course_id):
        return {"deleted": False, "error": "Course not found"}

    placeholder = "%s" if is_postgres() else "?"
    deleted_counts = {}

    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            f"DELETE FROM assignment_submissions WHERE assignment_id IN "
            f"(SELECT id FROM assignments WHERE course_id={placeholder})",
            (course_id,)
        )
        deleted_counts["assignment_submissions"] = cur.rowcount
        cur.execute(f"DELETE FROM assignments WHERE course_id={placeholder}", (course_id,))
        deleted_counts["assignments"] = cur.rowcount
        cur.execute(f"DELETE FROM enrollments WHERE course_id={placeholder}", (course_id,))
        deleted_counts["enrollments"] = cur.rowcount
        cur.execute(f"DELETE FROM courses WHERE id={placeholder}", (course_id,))
        conn.commit()

    return {"deleted": True, "deleted_counts": deleted_counts}


# ============================================================================
# ENROLLMENTS
# ============================================================================

def enroll(user_id: str, course_id: str) -> Dict[str, Any]:
    """
    Enroll a student in a course. Enrolling twice is a no-op.

    Returns:
        Dict with course_id, user_id, enrolled: bool (False if already enrolled)
    """
    if not get_course(course_id):
        raise ValueError(f"Course not found: {course_id}")

    existing = fetchone(
        "SELECT id FROM enrollments WHERE user_id=? AND course_id=?",
        (user_id, course_id)
    )
    if existing:
        return {"user_id": user_id, "course_id": course_id, "enrolled": False}

    execute(
        "INSERT INTO enrollments(id, user_id, course_id, enrolled_at, progress) VALUES(?,?,?,?,?)",
        (new_id(), user_id, course_id, _now_iso(), 0)
    )
    log_event(user_id, "course_enrolled", json.dumps({"course_id": course_id}))
    return {"user_id": user_id, "course_id": course_id, "enrolled": True}


def unenroll(user_id: str, course_id: str) -> bool:
    removed = execute(
        "DELETE FROM enrollments WHERE user_id=? AND course_id=?",
        (user_id, course_id)
    )
    return removed > 0


def list_enrolled_course_ids(user_id: str) -> List[str]:
    rows = fetchall(
        "SELECT course_id FROM enrollments WHERE user_id=? ORDER BY enrolled_at DESC",
        (user_id,)
    )
    return [r[0] for r in (rows or [])]


def list_course_students(course_id: str) -> List[str]:
    rows = fetchall("SELECT user_id FROM enrollments WHERE course_id=?", (course_id,))
    return [r[0] for r in (rows or [])]


def get_admin_stats() -> Dict[str, int]:
    """Totals for the admin dashboard header."""
    courses = fetchone("SELECT COUNT(*) FROM courses")
    enrollments = fetchone("SELECT COUNT(*) FROM enrollments")
    students = fetchone("SELECT COUNT(DISTINCT user_id) FROM enrollments")
    return {
        "total_courses": courses[0] if courses else 0,
        "total_enrollments": enrollments[0] if enrollments else 0,
        "total_students": students[0] if students else 0,
    }


# ============================================================================
# STUDY SESSIONS
# ============================================================================

def add_study_session(
    user_id: str,
    subject: str,
    duration: int,
    session_date: Optional[DateLike] = None,
    completed: bool = True
) -> Dict[str, Any]:
    """
    Log a study session.

    Args:
        user_id: The user's ID
        subject: Subject studied
        duration: Duration in minutes (>= 0)
        session_date: When it happened (default: now)
        completed: False for a planned/abandoned session

    Returns:
        Dict with session details
    """
    subject = require_text(subject, "Subject")
    if not validate_numeric_range(duration, min_val=0, max_val=24 * 60):
        raise ValueError(f"Duration must be between 0 and 1440 minutes, got {duration}")

    session_id = new_id()
    when = _as_timestamp(session_date) or _now_iso()
    execute(
        "INSERT INTO study_sessions(id, user_id, duration, subject, date, completed, created_at, updated_at) "
        "VALUES(?,?,?,?,?,?,?,?)",
        (session_id, user_id, int(duration), subject, when, bool(completed), _now_iso(), _now_iso())
    )
    log_event(user_id, "session_logged", json.dumps({"subject": subject, "duration": int(duration)}))

    return {
        "id": session_id,
        "subject": subject,
        "duration": int(duration),
        "date": when,
        "completed": bool(completed),
    }


def update_study_session(
    user_id: str,
    session_id: str,
    subject: Optional[str] = None,
    duration: Optional[int] = None,
    session_date: Optional[DateLike] = None,
    completed: Optional[bool] = None
) -> bool:
    """Update fields of a session owned by user_id. Returns True if a row changed."""
    if duration is not None and not validate_numeric_range(duration, min_val=0, max_val=24 * 60):
        raise ValueError(f"Duration must be between 0 and 1440 minutes, got {duration}")

    changed = _update_row(
        "study_sessions", session_id,
        {
            "subject": require_text(subject, "Subject") if subject is not None else None,
            "duration": int(duration) if duration is not None else None,
            "date": _as_timestamp(session_date),
            "completed": bool(completed) if completed is not None else None,
            "updated_at": _now_iso(),
        },
        extra_where=" AND user_id=?", extra_params=(user_id,)
    )
    return changed > 0


def delete_study_session(user_id: str, session_id: str) -> bool:
    return execute(
        "DELETE FROM study_sessions WHERE id=? AND user_id=?", (session_id, user_id)
    ) > 0


def fetch_sessions(user_id: str) -> List[StudySession]:
    """All sessions for a user, newest first."""
    df = read_sql(
        "SELECT id, duration, subject, date, completed FROM study_sessions WHERE user_id=? ORDER BY date DESC",
        (user_id,)
    )
    return sessions_from_frame(df)


def fetch_sessions_in_range(user_id: str, start: DateLike, end: DateLike) -> List[StudySession]:
    """Sessions with start <= date <= end; bare end dates include the whole day."""
    df = read_sql(
        "SELECT id, duration, subject, date, completed FROM study_sessions "
        "WHERE user_id=? AND date >= ? AND date <= ? ORDER BY date DESC",
        (user_id, _as_timestamp(start), _as_timestamp(end, end_of_day=True))
    )
    return sessions_from_frame(df)


# ============================================================================
# STUDY GOALS
# ============================================================================

def create_study_goal(
    user_id: str,
    subject: str,
    target_hours: float,
    period: str,
    start_date: DateLike,
    end_date: DateLike
) -> Dict[str, Any]:
    """
    Create a study goal.

    A bare end date covers the whole day (inclusive).

    Raises:
        ValueError: If target_hours <= 0, period is unknown, or end < start
    """
    subject = require_text(subject, "Subject")
    if not validate_numeric_range(target_hours, min_val=0.01):
        raise ValueError(f"Target hours must be positive, got {target_hours}")
    validate_choice(period, GOAL_PERIODS, "period")

    start = _as_timestamp(start_date)
    end = _as_timestamp(end_date, end_of_day=True)
    if start is None or end is None:
        raise ValueError("Goal start and end dates are required")
    if to_datetime(end) < to_datetime(start):
        raise ValueError("Goal end date must not be before its start date")

    goal_id = new_id()
    execute(
        "INSERT INTO study_goals(id, user_id, subject, target_hours, period, start_date, end_date, created_at, updated_at) "
        "VALUES(?,?,?,?,?,?,?,?,?)",
        (goal_id, user_id, subject, float(target_hours), period, start, end, _now_iso(), _now_iso())
    )
    log_event(user_id, "goal_created", json.dumps({"subject": subject, "target_hours": float(target_hours)}))

    return {
        "id": goal_id,
        "subject": subject,
        "target_hours": float(target_hours),
        "period": period,
        "start_date": start,
        "end_date": end,
    }


def update_study_goal(
    user_id: str,
    goal_id: str,
    target_hours: Optional[float] = None,
    end_date: Optional[DateLike] = None
) -> bool:
    if target_hours is not None and not validate_numeric_range(target_hours, min_val=0.01):
        raise ValueError(f"Target hours must be positive, got {target_hours}")

    changed = _update_row(
        "study_goals", goal_id,
        {
            "target_hours": float(target_hours) if target_hours is not None else None,
            "end_date": _as_timestamp(end_date, end_of_day=True),
            "updated_at": _now_iso(),
        },
        extra_where=" AND user_id=?", extra_params=(user_id,)
    )
    return changed > 0


def delete_study_goal(user_id: str, goal_id: str) -> bool:
    return execute(
        "DELETE FROM study_goals WHERE id=? AND user_id=?", (goal_id, user_id)
    ) > 0


def fetch_goals(user_id: str) -> List[StudyGoal]:
    """All goals for a user, newest first."""
    df = read_sql(
        "SELECT id, subject, target_hours, period, start_date, end_date FROM study_goals "
        "WHERE user_id=? ORDER BY created_at DESC",
        (user_id,)
    )
    return goals_from_frame(df)


# ============================================================================
# ASSIGNMENTS
# ============================================================================

def create_assignment(
    course_id: str,
    title: str,
    due_date: Optional[DateLike] = None,
    priority: str = "medium",
    description: Optional[str] = None,
    status: str = "todo"
) -> Dict[str, Any]:
    """
    Create an assignment in a course.

    Returns:
        Dict with assignment details

    Raises:
        ValueError: If the course does not exist or priority/status is unknown
    """
    if not get_course(course_id):
        raise ValueError(f"Course not found: {course_id}")
    title = require_text(title, "Assignment title")
    validate_choice(priority, PRIORITIES, "priority")
    validate_choice(status, ASSIGNMENT_STATUSES, "status")
    description = sanitize_string(description or "", allow_newlines=True) or None

    assignment_id = new_id()
    due = _as_timestamp(due_date, end_of_day=True)
    execute(
        "INSERT INTO assignments(id, course_id, title, description, due_date, status, priority, created_at) "
        "VALUES(?,?,?,?,?,?,?,?)",
        (assignment_id, course_id, title, description, due, status, priority, _now_iso())
    )

    return {
        "id": assignment_id,
        "course_id": course_id,
        "title": title,
        "description": description,
        "due_date": due,
        "status": status,
        "priority": priority,
    }


def update_assignment(
    assignment_id: str,
    title: Optional[str] = None,
    due_date: Optional[DateLike] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None
) -> bool:
    if priority is not None:
        validate_choice(priority, PRIORITIES, "priority")
    if status is not None:
        validate_choice(status, ASSIGNMENT_STATUSES, "status")

    changed = _update_row("assignments", assignment_id, {
        "title": require_text(title, "Assignment title") if title is not None else None,
        "due_date": _as_timestamp(due_date, end_of_day=True),
        "priority": priority,
        "status": status,
    })
    return changed > 0


def delete_assignment(assignment_id: str) -> bool:
    execute("DELETE FROM assignment_submissions WHERE assignment_id=?", (assignment_id,))
    return execute("DELETE FROM assignments WHERE id=?", (assignment_id,)) > 0


_ASSIGNMENT_COLUMNS = "a.id, a.course_id, a.title, a.description, a.due_date, a.status, a.priority"


def fetch_assignments(course_id: Optional[str] = None) -> List[Assignment]:
    """Assignments ordered by due date, optionally for one course."""
    if course_id:
        df = read_sql(
            f"SELECT {_ASSIGNMENT_COLUMNS} FROM assignments a WHERE a.course_id=? ORDER BY a.due_date",
            (course_id,)
        )
    else:
        df = read_sql(f"SELECT {_ASSIGNMENT_COLUMNS} FROM assignments a ORDER BY a.due_date")
    return assignments_from_frame(df)


def fetch_student_assignments(user_id: str) -> List[Assignment]:
    """Assignments of every course the student is enrolled in."""
    df = read_sql(
        f"SELECT {_ASSIGNMENT_COLUMNS} FROM assignments a "
        "JOIN enrollments e ON e.course_id = a.course_id "
        "WHERE e.user_id=? ORDER BY a.due_date",
        (user_id,)
    )
    return assignments_from_frame(df)


# ============================================================================
# SUBMISSIONS
# ============================================================================

_SUBMISSION_COLUMNS = "id, assignment_id, student_id, status, estimated_hours, actual_hours"


def save_submission(
    assignment_id: str,
    student_id: str,
    status: Optional[str] = None,
    estimated_hours: Optional[float] = None,
    actual_hours: Optional[float] = None
) -> Dict[str, Any]:
    """
    Create or update the student's submission for an assignment.
    Only the given fields change on update.

    Returns:
        Dict with the submission's current values and created: bool
    """
    if status is not None:
        validate_choice(status, SUBMISSION_STATUSES, "status")
    if estimated_hours is not None and not validate_numeric_range(estimated_hours, min_val=0.01):
        raise ValueError(f"Estimated hours must be positive, got {estimated_hours}")
    if actual_hours is not None and not validate_numeric_range(actual_hours, min_val=0):
        raise ValueError(f"Actual hours must not be negative, got {actual_hours}")

    existing = fetch_submission(assignment_id, student_id)
    if existing:
        _update_row("assignment_submissions", existing.id, {
            "status": status,
            "estimated_hours": float(estimated_hours) if estimated_hours is not None else None,
            "actual_hours": float(actual_hours) if actual_hours is not None else None,
            "updated_at": _now_iso(),
        })
        created = False
    else:
        execute(
            f"INSERT INTO assignment_submissions({_SUBMISSION_COLUMNS}, created_at, updated_at) "
            "VALUES(?,?,?,?,?,?,?,?)",
            (new_id(), assignment_id, student_id, status or "not_started",
             float(estimated_hours) if estimated_hours is not None else None,
             float(actual_hours) if actual_hours is not None else None,
             _now_iso(), _now_iso())
        )
        created = True

    current = fetch_submission(assignment_id, student_id)
    log_event(student_id, "submission_updated", json.dumps({
        "assignment_id": assignment_id, "status": current.status,
    }))

    return {
        "id": current.id,
        "assignment_id": assignment_id,
        "student_id": student_id,
        "status": current.status,
        "estimated_hours": current.estimated_hours,
        "actual_hours": current.actual_hours,
        "created": created,
    }


def set_assignment_progress(assignment_id: str, student_id: str, display_status: str) -> Dict[str, Any]:
    """Record a todo/doing/done choice from the UI as a submission status."""
    validate_choice(display_status, ASSIGNMENT_STATUSES, "status")
    return save_submission(
        assignment_id, student_id, status=DISPLAY_TO_SUBMISSION_STATUS[display_status]
    )


def fetch_submission(assignment_id: str, student_id: str) -> Optional[AssignmentSubmission]:
    df = read_sql(
        f"SELECT {_SUBMISSION_COLUMNS} FROM assignment_submissions WHERE assignment_id=? AND student_id=?",
        (assignment_id, student_id)
    )
    if df.empty:
        return None
    return submission_from_row(df.iloc[0])


def fetch_submissions(student_id: str) -> List[AssignmentSubmission]:
    """Every submission by a student."""
    df = read_sql(
        f"SELECT {_SUBMISSION_COLUMNS} FROM assignment_submissions WHERE student_id=?",
        (student_id,)
    )
    return submissions_from_frame(df)


# ============================================================================
# DEMO DATA
# ============================================================================

# Demo data marker - stored in course descriptions for easy identification
DEMO_MARKER = "[DEMO]"


def has_demo_data(user_id: str) -> bool:
    row = fetchone(
        "SELECT COUNT(*) FROM enrollments e JOIN courses c ON c.id = e.course_id "
        "WHERE e.user_id=? AND c.description LIKE ?",
        (user_id, f"%{DEMO_MARKER}%")
    )
    return (row[0] if row else 0) > 0


def load_demo_data(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Seed a student account with sample sessions, a goal, a course,
    assignments and submissions so the dashboard has something to show.

    Returns:
        Dict with created counts, or {"created": False, "error": ...}
        when demo data is already loaded
    """
    if has_demo_data(user_id):
        return {"error": "Demo data already loaded", "created": False}

    now = now or datetime.now()
    today = now.date()

    # Sessions over the last five days, one of them abandoned
    demo_sessions = [
        ("Mathematics", 60, 0, True),
        ("Mathematics", 45, 1, True),
        ("Physics", 30, 1, True),
        ("Physics", 50, 2, False),
        ("History", 40, 3, True),
        ("Mathematics", 90, 4, True),
    ]
    for subject, minutes, days_ago, completed in demo_sessions:
        add_study_session(
            user_id, subject, minutes,
            session_date=datetime.combine(today - timedelta(days=days_ago), time(18, 0)),
            completed=completed
        )

    week_start = today - timedelta(days=today.weekday())
    create_study_goal(
        user_id, "Mathematics", 5, "weekly",
        start_date=week_start, end_date=week_start + timedelta(days=6)
    )

    course = create_course(
        "Demo: Calculus I",
        description=f"{DEMO_MARKER} Sample course to explore the dashboard"
    )
    enroll(user_id, course["id"])

    demo_assignments = [
        ("Limits worksheet", -8, "high", "graded", 3, 4),
        ("Derivatives problem set", -1, "high", "submitted", 4, 3.5),
        ("Chain rule quiz prep", 3, "medium", "in_progress", 2, None),
        ("Integration essay", 10, "low", None, None, None),
    ]
    for title, due_in, priority, status, est, actual in demo_assignments:
        assignment = create_assignment(
            course["id"], title, due_date=today + timedelta(days=due_in), priority=priority
        )
        if status:
            save_submission(assignment["id"], user_id, status=status,
                            estimated_hours=est, actual_hours=actual)

    return {
        "created": True,
        "sessions": len(demo_sessions),
        "goals": 1,
        "course_id": course["id"],
        "assignments": len(demo_assignments),
    }
