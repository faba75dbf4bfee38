"""
Dashboard aggregation for the student and admin views.

NO Streamlit dependencies - pure Python business logic.

The compute_* functions only combine metric functions over records.
The load_* functions fetch those records through a data source first.
A data source is any object with:

    fetch_sessions(user_id) -> List[StudySession]
    fetch_goals(user_id) -> List[StudyGoal]
    fetch_assignments(course_id=None, user_id=None) -> List[Assignment]
    fetch_submission(assignment_id, user_id) -> Optional[AssignmentSubmission]

DatabaseSource implements it over services.core. Tests pass in-memory fakes.
"""

import sys
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from models import Assignment, AssignmentSubmission, StudyGoal, StudySession
from services import core
from services.assignment_metrics import (
    compute_assignment_completion_rate,
    compute_assignment_summary,
    compute_course_progress,
    compute_planning_accuracy,
    compute_priority_distribution,
    compute_weekly_progress,
)
from services.metrics import (
    compute_average_session_duration,
    compute_completion_rate,
    compute_goal_progress,
    compute_study_streak,
    compute_study_time_by_subject,
    compute_this_month_study_time,
    compute_this_week_study_time,
    compute_today_study_time,
    compute_total_study_time,
    get_most_studied_subject,
)
from services.recommendations import get_metrics_interpretation

# ============ DEBUG FLAG ============
# Set to True to print record counts for every dashboard load.
DEBUG_DASHBOARD = False


class DatabaseSource:
    """Data source backed by the application database."""

    def fetch_sessions(self, user_id: str) -> List[StudySession]:
        return core.fetch_sessions(user_id)

    def fetch_goals(self, user_id: str) -> List[StudyGoal]:
        return core.fetch_goals(user_id)

    def fetch_assignments(self, course_id: Optional[str] = None, user_id: Optional[str] = None) -> List[Assignment]:
        if course_id:
            return core.fetch_assignments(course_id)
        if user_id:
            return core.fetch_student_assignments(user_id)
        return core.fetch_assignments()

    def fetch_submission(self, assignment_id: str, user_id: str) -> Optional[AssignmentSubmission]:
        return core.fetch_submission(assignment_id, user_id)


# ============ AGGREGATES ============

def compute_study_metrics(
    sessions: List[StudySession],
    goals: List[StudyGoal],
    now: Optional[datetime] = None
) -> Dict:
    """
    All study-session indicators for the student dashboard.

    Returns: {
        'total_study_time', 'today_study_time', 'week_study_time',
        'month_study_time': minutes,
        'time_by_subject': {subject: minutes},
        'most_studied_subject': {'subject', 'minutes'} or None,
        'completion_rate': percent,
        'average_session_duration': minutes,
        'study_streak': days,
        'goals': [{'goal': StudyGoal, 'progress': percent}, ...]
    }
    """
    now = now or datetime.now()
    return {
        "total_study_time": compute_total_study_time(sessions),
        "today_study_time": compute_today_study_time(sessions, now),
        "week_study_time": compute_this_week_study_time(sessions, now),
        "month_study_time": compute_this_month_study_time(sessions, now),
        "time_by_subject": compute_study_time_by_subject(sessions),
        "most_studied_subject": get_most_studied_subject(sessions),
        "completion_rate": compute_completion_rate(sessions),
        "average_session_duration": compute_average_session_duration(sessions),
        "study_streak": compute_study_streak(sessions, now),
        "goals": [
            {"goal": goal, "progress": compute_goal_progress(goal, sessions)}
            for goal in goals
        ],
    }


def compute_assignment_metrics(
    assignments: List[Assignment],
    submissions: List[AssignmentSubmission],
    now: Optional[datetime] = None
) -> Dict:
    """
    The assignment metrics aggregate consumed by get_metrics_interpretation,
    merged with the status/effort summary used by the dashboard cards.
    """
    metrics = {
        "completion_rate": compute_assignment_completion_rate(assignments, submissions),
        "planning_accuracy": compute_planning_accuracy(submissions),
        "priority_distribution": compute_priority_distribution(assignments),
        "weekly_progress": compute_weekly_progress(assignments, submissions),
        "course_progress": compute_course_progress(assignments, submissions),
    }
    metrics.update(compute_assignment_summary(assignments, submissions, now))
    return metrics


# ============ LOADERS ============

def load_study_dashboard(source, user_id: str, now: Optional[datetime] = None) -> Dict:
    """
    Fetch a student's sessions and goals and compute their study metrics.

    Returns:
        {'sessions': [...], 'goals': [...], 'metrics': compute_study_metrics(...)}

    Raises:
        Whatever the data source raises; nothing is swallowed.
    """
    try:
        sessions = source.fetch_sessions(user_id)
        goals = source.fetch_goals(user_id)
    except Exception as e:
        print(f"[dashboard] Failed to load study data for {user_id}: {e}", file=sys.stderr)
        raise

    if DEBUG_DASHBOARD:
        print(f"[dashboard] {user_id}: {len(sessions)} sessions, {len(goals)} goals", file=sys.stderr)

    return {
        "sessions": sessions,
        "goals": goals,
        "metrics": compute_study_metrics(sessions, goals, now),
    }


def _fetch_assignment_records(source, user_id: str, course_id: Optional[str] = None):
    assignments = source.fetch_assignments(course_id=course_id, user_id=user_id)
    submissions = []
    for a in assignments:
        submission = source.fetch_submission(a.id, user_id)
        if submission is not None:
            submissions.append(submission)
    return assignments, submissions


def load_assignment_dashboard(
    source,
    user_id: str,
    course_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Dict:
    """
    Fetch a student's assignments (one course or all enrolled courses)
    with their submissions, then compute metrics and interpretation.

    Returns:
        {'assignments', 'submissions', 'metrics', 'interpretation'}
    """
    try:
        assignments, submissions = _fetch_assignment_records(source, user_id, course_id)
    except Exception as e:
        print(f"[dashboard] Failed to load assignments for {user_id}: {e}", file=sys.stderr)
        raise

    if DEBUG_DASHBOARD:
        print(f"[dashboard] {user_id}: {len(assignments)} assignments, "
              f"{len(submissions)} submissions", file=sys.stderr)

    metrics = compute_assignment_metrics(assignments, submissions, now)
    return {
        "assignments": assignments,
        "submissions": submissions,
        "metrics": metrics,
        "interpretation": get_metrics_interpretation(metrics),
    }


def build_course_overview(source, student_ids: List[str], course_id: Optional[str] = None) -> List[Dict]:
    """
    Per-student completion and planning accuracy for the admin view.

    Returns:
        List of {'student_id', 'completion_rate', 'planning_accuracy', 'level'}
        in the order of student_ids
    """
    overview = []
    for student_id in student_ids:
        assignments, submissions = _fetch_assignment_records(source, student_id, course_id)
        completion = compute_assignment_completion_rate(assignments, submissions)
        accuracy = compute_planning_accuracy(submissions)
        interpretation = get_metrics_interpretation({
            "completion_rate": completion,
            "planning_accuracy": accuracy,
            "priority_distribution": compute_priority_distribution(assignments),
            "weekly_progress": [],
            "course_progress": [],
        })
        overview.append({
            "student_id": student_id,
            "completion_rate": completion,
            "planning_accuracy": accuracy,
            "level": interpretation["level"],
        })
    return overview


# ============ CHART FRAMES ============

def time_by_subject_frame(time_by_subject: Dict[str, float]) -> pd.DataFrame:
    """Minutes and hours per subject, most studied first."""
    df = pd.DataFrame(
        list(time_by_subject.items()), columns=["subject", "minutes"]
    )
    if df.empty:
        return df.assign(hours=pd.Series(dtype=float))
    df["hours"] = df["minutes"] / 60
    return df.sort_values("minutes", ascending=False, kind="stable").reset_index(drop=True)


def weekly_progress_frame(weekly_progress: List[Dict]) -> pd.DataFrame:
    """Weekly completed/remaining counts indexed by week start date."""
    df = pd.DataFrame(weekly_progress, columns=["week_start", "completed", "total"])
    df["remaining"] = df["total"] - df["completed"]
    return df.set_index("week_start")[["completed", "remaining"]]
