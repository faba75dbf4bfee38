"""
Assignment and submission metric functions.
Pure Python business logic - NO Streamlit dependencies.

An assignment counts as completed when any submission for its id is
'submitted' or 'graded'. Submissions are matched to assignments by id
equality only; no referential integrity is assumed.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from models import COMPLETED_SUBMISSION_STATUSES, PRIORITIES, Assignment, AssignmentSubmission


def _completed_assignment_ids(submissions: List[AssignmentSubmission]) -> Set[str]:
    return {
        s.assignment_id for s in submissions
        if s.status in COMPLETED_SUBMISSION_STATUSES
    }


def compute_assignment_completion_rate(
    assignments: List[Assignment],
    submissions: List[AssignmentSubmission]
) -> float:
    """
    Percentage of assignments with a completed submission.

    The numerator counts every distinct completed assignment id, including
    ids that are not in `assignments`. The result is clamped to 100.
    """
    if not assignments:
        return 0
    completed = len(_completed_assignment_ids(submissions))
    return min(completed / len(assignments) * 100, 100)


def compute_planning_accuracy(submissions: List[AssignmentSubmission]) -> float:
    """
    Mean closeness of actual to estimated hours, as a percentage.

    Per submission: max(0, 100 - |estimated - actual| / estimated * 100).
    Only submissions with estimated_hours > 0 and an actual_hours value count.
    """
    scores = []
    for s in submissions:
        if s.estimated_hours is None or s.actual_hours is None:
            continue
        if s.estimated_hours <= 0:
            continue
        diff_pct = abs(s.estimated_hours - s.actual_hours) / s.estimated_hours * 100
        scores.append(max(0, 100 - diff_pct))

    if not scores:
        return 0
    return sum(scores) / len(scores)


def compute_priority_distribution(assignments: List[Assignment]) -> Dict[str, int]:
    """Count assignments per priority. Unknown priorities are ignored."""
    distribution = {p: 0 for p in PRIORITIES}
    for a in assignments:
        if a.priority in distribution:
            distribution[a.priority] += 1
    return distribution


def week_start(due: datetime) -> str:
    """ISO date of the Monday on or before `due`. Sunday belongs to the previous week."""
    day = due.date()
    # Sunday=0 .. Saturday=6
    day_of_week = (day.weekday() + 1) % 7
    offset = 6 if day_of_week == 0 else day_of_week - 1
    return (day - timedelta(days=offset)).isoformat()


def compute_weekly_progress(
    assignments: List[Assignment],
    submissions: List[AssignmentSubmission]
) -> List[Dict]:
    """
    Completed vs total assignments per due-date week.

    Assignments without a due date are left out.

    Returns:
        List of {"week_start": "YYYY-MM-DD", "completed": int, "total": int},
        sorted by week_start ascending
    """
    completed_ids = _completed_assignment_ids(submissions)
    weeks: Dict[str, Dict] = {}

    for a in assignments:
        if a.due_date is None:
            continue
        key = week_start(a.due_date)
        bucket = weeks.setdefault(key, {"week_start": key, "completed": 0, "total": 0})
        bucket["total"] += 1
        if a.id in completed_ids:
            bucket["completed"] += 1

    return [weeks[k] for k in sorted(weeks)]


def compute_course_progress(
    assignments: List[Assignment],
    submissions: List[AssignmentSubmission]
) -> List[Dict]:
    """
    Completion percentage per course, in the order courses first appear.

    Returns:
        List of {"course_id", "completion", "completed", "total"}
    """
    completed_ids = _completed_assignment_ids(submissions)
    courses: Dict[str, Dict] = {}

    for a in assignments:
        entry = courses.setdefault(a.course_id, {"course_id": a.course_id, "completed": 0, "total": 0})
        entry["total"] += 1
        if a.id in completed_ids:
            entry["completed"] += 1

    progress = []
    for entry in courses.values():
        total = entry["total"]
        completion = entry["completed"] / total * 100 if total > 0 else 0
        progress.append({
            "course_id": entry["course_id"],
            "completion": completion,
            "completed": entry["completed"],
            "total": total,
        })
    return progress


# ============ STATUS SUMMARY ============

_SUBMISSION_TO_STATUS = {
    "submitted": "done",
    "graded": "done",
    "in_progress": "doing",
    "not_started": "todo",
}


def resolve_assignment_status(
    assignment: Assignment,
    submission: Optional[AssignmentSubmission] = None
) -> str:
    """Status shown for an assignment: the submission's state wins when present."""
    if submission is not None and submission.status in _SUBMISSION_TO_STATUS:
        return _SUBMISSION_TO_STATUS[submission.status]
    return assignment.status


def compute_assignment_summary(
    assignments: List[Assignment],
    submissions: List[AssignmentSubmission],
    now: Optional[datetime] = None
) -> Dict:
    """
    Status counts and effort totals for the dashboard cards.

    When several submissions reference the same assignment, the last one wins.
    Hour totals only include submissions that carry both an estimate and an
    actual value; time_difference is estimated minus actual, so a positive
    value means work finished faster than planned.
    """
    now = now or datetime.now()
    by_assignment = {s.assignment_id: s for s in submissions}

    completed = in_progress = overdue = 0
    for a in assignments:
        status = resolve_assignment_status(a, by_assignment.get(a.id))
        if status == "done":
            completed += 1
            continue
        if status == "doing":
            in_progress += 1
        if a.due_date is not None and a.due_date < now:
            overdue += 1

    tracked = [
        s for s in submissions
        if s.estimated_hours is not None and s.actual_hours is not None
    ]
    total_estimated = sum(s.estimated_hours for s in tracked)
    total_actual = sum(s.actual_hours for s in tracked)

    return {
        "total_assignments": len(assignments),
        "completed_assignments": completed,
        "in_progress_assignments": in_progress,
        "overdue_assignments": overdue,
        "total_estimated_hours": total_estimated,
        "total_actual_hours": total_actual,
        "time_difference": total_estimated - total_actual,
    }
