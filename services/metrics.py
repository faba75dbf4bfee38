"""
Study session and goal metric functions.
These are pure computation functions with NO Streamlit UI dependencies.

Every function takes a list of StudySession records and returns a number
or a plain dict. Incomplete sessions never count toward a total. Functions
that depend on the current time accept an explicit `now` so callers and
tests can pin the clock.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from models import StudyGoal, StudySession

END_OF_DAY = time(23, 59, 59, 999000)


def _completed(sessions: Iterable[StudySession]) -> List[StudySession]:
    return [s for s in sessions if s.completed]


def _minutes(session: StudySession):
    return session.duration_minutes or 0


# ============ TOTALS ============

def compute_total_study_time(sessions: List[StudySession]):
    """Total minutes across completed sessions."""
    return sum(_minutes(s) for s in _completed(sessions))


def compute_study_time_by_subject(sessions: List[StudySession]) -> Dict[str, float]:
    """
    Minutes per subject across completed sessions.
    Subjects appear in the order they are first seen; subjects with no
    completed session are absent.
    """
    by_subject: Dict[str, float] = {}
    for s in _completed(sessions):
        by_subject[s.subject] = by_subject.get(s.subject, 0) + _minutes(s)
    return by_subject


def compute_study_time_in_range(
    sessions: List[StudySession],
    start: datetime,
    end: datetime
):
    """Minutes of completed sessions with start <= date <= end (both inclusive)."""
    return sum(
        _minutes(s) for s in _completed(sessions)
        if s.date is not None and start <= s.date <= end
    )


# ============ CALENDAR WINDOWS ============

def today_range(now: Optional[datetime] = None):
    """Midnight today to midnight tomorrow, in now's timezone."""
    now = now or datetime.now()
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    return start, start + timedelta(days=1)


def week_range(now: Optional[datetime] = None):
    """Sunday 00:00 to Saturday 23:59:59.999 of the week containing now."""
    now = now or datetime.now()
    # weekday() is Monday=0, so shift to count days since Sunday
    days_since_sunday = (now.weekday() + 1) % 7
    sunday = now.date() - timedelta(days=days_since_sunday)
    saturday = sunday + timedelta(days=6)
    return (
        datetime.combine(sunday, time.min, tzinfo=now.tzinfo),
        datetime.combine(saturday, END_OF_DAY, tzinfo=now.tzinfo),
    )


def month_range(now: Optional[datetime] = None):
    """First day 00:00 to last day 23:59:59.999 of the month containing now."""
    now = now or datetime.now()
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = datetime.combine(date(now.year, now.month, 1), time.min, tzinfo=now.tzinfo)
    end = datetime.combine(date(now.year, now.month, last_day), END_OF_DAY, tzinfo=now.tzinfo)
    return start, end


def compute_today_study_time(sessions: List[StudySession], now: Optional[datetime] = None):
    return compute_study_time_in_range(sessions, *today_range(now))


def compute_this_week_study_time(sessions: List[StudySession], now: Optional[datetime] = None):
    return compute_study_time_in_range(sessions, *week_range(now))


def compute_this_month_study_time(sessions: List[StudySession], now: Optional[datetime] = None):
    return compute_study_time_in_range(sessions, *month_range(now))


# ============ SESSION STATS ============

def compute_average_session_duration(sessions: List[StudySession]) -> float:
    """Mean duration of completed sessions, 0 when there are none."""
    completed = _completed(sessions)
    if not completed:
        return 0
    return sum(_minutes(s) for s in completed) / len(completed)


def get_most_studied_subject(sessions: List[StudySession]) -> Optional[Dict]:
    """
    Subject with the most completed minutes.

    Ties go to the subject seen first in the input.

    Returns:
        {"subject": str, "minutes": number} or None if nothing was completed
    """
    best = None
    for subject, minutes in compute_study_time_by_subject(sessions).items():
        if best is None or minutes > best["minutes"]:
            best = {"subject": subject, "minutes": minutes}
    return best


def compute_completion_rate(sessions: List[StudySession]) -> float:
    """Percentage of all logged sessions that were completed."""
    if not sessions:
        return 0
    return len(_completed(sessions)) / len(sessions) * 100


def compute_study_streak(sessions: List[StudySession], now: Optional[datetime] = None) -> int:
    """
    Count consecutive calendar days with at least one completed session.

    The streak must end today or yesterday; otherwise it is 0.
    """
    days = sorted({s.date.date() for s in _completed(sessions) if s.date is not None}, reverse=True)
    if not days:
        return 0

    today = (now or datetime.now()).date()
    yesterday = today - timedelta(days=1)
    if today not in days and yesterday not in days:
        return 0

    cursor = today if today in days else yesterday
    streak = 0
    for day in days:
        if day == cursor:
            streak += 1
            cursor -= timedelta(days=1)
        elif day < cursor:
            # Gap found
            break
    return streak


# ============ GOALS ============

def compute_goal_progress(goal: StudyGoal, sessions: List[StudySession]) -> float:
    """
    Percentage of a goal's target reached, capped at 100.

    Only completed sessions for the goal's subject inside
    [start_date, end_date] count.
    """
    if not goal.target_hours or goal.target_hours <= 0:
        return 0

    actual_minutes = sum(
        _minutes(s) for s in _completed(sessions)
        if s.subject == goal.subject and s.date is not None
        and goal.start_date <= s.date <= goal.end_date
    )
    target_minutes = goal.target_hours * 60
    return min(actual_minutes / target_minutes * 100, 100)
