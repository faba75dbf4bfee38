"""
Unit tests for study session and goal metrics.
Pure functions, no database required.
"""

from datetime import datetime, timezone

import pytest

from conftest import assignment, goal, session, submission
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
    compute_study_time_in_range,
    compute_this_month_study_time,
    compute_this_week_study_time,
    compute_today_study_time,
    compute_total_study_time,
    get_most_studied_subject,
    month_range,
    week_range,
)


class TestTotals:
    """Completed sessions only"""

    def test_total_skips_incomplete_sessions(self):
        sessions = [session(30), session(45), session(20, completed=False)]
        assert compute_total_study_time(sessions) == 75

    def test_completion_rate_counts_all_sessions(self):
        sessions = [session(30), session(45), session(20, completed=False)]
        assert compute_completion_rate(sessions) == pytest.approx(66.67, abs=0.01)

    def test_by_subject_keeps_first_seen_order(self):
        sessions = [
            session(30, "Physics"),
            session(20, "Math"),
            session(15, "Physics"),
            session(60, "History", completed=False),
        ]
        by_subject = compute_study_time_by_subject(sessions)
        assert by_subject == {"Physics": 45, "Math": 20}
        assert list(by_subject) == ["Physics", "Math"]

    def test_by_subject_sums_to_total(self):
        sessions = [
            session(10, "A"), session(25, "B"), session(5, "A", completed=False), session(40, "C"),
        ]
        assert sum(compute_study_time_by_subject(sessions).values()) == compute_total_study_time(sessions)

    def test_average_duration(self):
        sessions = [session(30), session(60), session(90, completed=False)]
        assert compute_average_session_duration(sessions) == 45

    def test_range_is_inclusive(self):
        start = datetime(2024, 1, 1)
        end = datetime(2024, 1, 2)
        sessions = [session(10, when=start), session(20, when=end), session(40, when=datetime(2024, 1, 3))]
        assert compute_study_time_in_range(sessions, start, end) == 30


class TestEmptyInputs:
    """Every aggregate has a defined zero value"""

    def test_zero_values(self):
        assert compute_total_study_time([]) == 0
        assert compute_study_time_by_subject([]) == {}
        assert compute_average_session_duration([]) == 0
        assert compute_completion_rate([]) == 0
        assert get_most_studied_subject([]) is None
        assert compute_study_streak([], now=datetime(2024, 1, 5)) == 0
        assert compute_today_study_time([], now=datetime(2024, 1, 5)) == 0

    def test_only_incomplete_sessions(self):
        sessions = [session(30, completed=False)]
        assert get_most_studied_subject(sessions) is None
        assert compute_average_session_duration(sessions) == 0
        assert compute_completion_rate(sessions) == 0


class TestMostStudiedSubject:

    def test_picks_largest_total(self):
        sessions = [session(30, "Math"), session(50, "Physics"), session(10, "Math")]
        assert get_most_studied_subject(sessions) == {"subject": "Physics", "minutes": 50}

    def test_tie_goes_to_first_seen(self):
        sessions = [session(30, "History"), session(30, "Math")]
        assert get_most_studied_subject(sessions)["subject"] == "History"


class TestCalendarWindows:
    # 2024-01-10 is a Wednesday
    NOW = datetime(2024, 1, 10, 15, 30)

    def test_week_runs_sunday_to_saturday(self):
        start, end = week_range(self.NOW)
        assert start == datetime(2024, 1, 7)
        assert end.date() == datetime(2024, 1, 13).date()
        assert end.hour == 23 and end.minute == 59

    def test_week_on_sunday_starts_same_day(self):
        start, _ = week_range(datetime(2024, 1, 7, 9, 0))
        assert start == datetime(2024, 1, 7)

    def test_month_range_handles_leap_year(self):
        start, end = month_range(datetime(2024, 2, 14))
        assert start == datetime(2024, 2, 1)
        assert end.date() == datetime(2024, 2, 29).date()

    def test_today_week_month_totals(self):
        sessions = [
            session(10, when=datetime(2024, 1, 10, 8, 0)),   # today
            session(20, when=datetime(2024, 1, 8, 8, 0)),    # this week
            session(40, when=datetime(2024, 1, 2, 8, 0)),    # this month
            session(80, when=datetime(2023, 12, 31, 8, 0)),  # last year
            session(160, when=datetime(2024, 1, 10, 9, 0), completed=False),
        ]
        assert compute_today_study_time(sessions, now=self.NOW) == 10
        assert compute_this_week_study_time(sessions, now=self.NOW) == 30
        assert compute_this_month_study_time(sessions, now=self.NOW) == 70

    def test_timezone_aware_now_and_sessions(self):
        now = datetime(2024, 1, 10, 15, 30, tzinfo=timezone.utc)
        sessions = [
            session(10, when=datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc)),
            session(20, when=datetime(2024, 1, 8, 8, 0, tzinfo=timezone.utc)),
            session(40, when=datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)),
        ]
        assert compute_today_study_time(sessions, now=now) == 10
        assert compute_this_week_study_time(sessions, now=now) == 30
        assert compute_this_month_study_time(sessions, now=now) == 70
        assert week_range(now)[0].tzinfo is timezone.utc


class TestStudyStreak:
    TODAY = datetime(2024, 1, 5, 12, 0)

    def test_three_consecutive_days(self):
        sessions = [
            session(30, when=datetime(2024, 1, 5, 9)),
            session(30, when=datetime(2024, 1, 4, 9)),
            session(30, when=datetime(2024, 1, 3, 9)),
        ]
        assert compute_study_streak(sessions, now=self.TODAY) == 3

    def test_gap_breaks_streak(self):
        sessions = [
            session(30, when=datetime(2024, 1, 5, 9)),
            session(30, when=datetime(2024, 1, 3, 9)),
        ]
        assert compute_study_streak(sessions, now=self.TODAY) == 1

    def test_streak_may_end_yesterday(self):
        sessions = [
            session(30, when=datetime(2024, 1, 4, 9)),
            session(30, when=datetime(2024, 1, 3, 9)),
        ]
        assert compute_study_streak(sessions, now=self.TODAY) == 2

    def test_stale_streak_is_zero(self):
        sessions = [session(30, when=datetime(2024, 1, 2, 9))]
        assert compute_study_streak(sessions, now=self.TODAY) == 0

    def test_incomplete_sessions_do_not_count(self):
        sessions = [
            session(30, when=datetime(2024, 1, 5, 9)),
            session(30, when=datetime(2024, 1, 4, 9), completed=False),
            session(30, when=datetime(2024, 1, 3, 9)),
        ]
        assert compute_study_streak(sessions, now=self.TODAY) == 1

    def test_several_sessions_same_day(self):
        sessions = [
            session(30, when=datetime(2024, 1, 5, 9)),
            session(15, when=datetime(2024, 1, 5, 18)),
            session(30, when=datetime(2024, 1, 4, 9)),
        ]
        assert compute_study_streak(sessions, now=self.TODAY) == 2


class TestGoalProgress:

    def test_capped_at_100(self):
        sessions = [
            session(480, "Math", when=datetime(2024, 1, 2, 10)),
            session(180, "Math", when=datetime(2024, 1, 6, 10)),
        ]
        assert compute_goal_progress(goal(target_hours=10), sessions) == 100

    def test_partial_progress(self):
        sessions = [session(150, "Math", when=datetime(2024, 1, 3, 10))]
        assert compute_goal_progress(goal(target_hours=5), sessions) == pytest.approx(50)

    def test_ignores_other_subjects_and_dates(self):
        sessions = [
            session(300, "Physics", when=datetime(2024, 1, 3, 10)),
            session(300, "Math", when=datetime(2024, 1, 9, 10)),
            session(300, "Math", when=datetime(2024, 1, 3, 10), completed=False),
        ]
        assert compute_goal_progress(goal(target_hours=10), sessions) == 0

    def test_non_positive_target(self):
        sessions = [session(60, "Math", when=datetime(2024, 1, 3, 10))]
        assert compute_goal_progress(goal(target_hours=0), sessions) == 0


class TestPurity:
    NOW = datetime(2024, 1, 5, 12, 0)

    @pytest.mark.parametrize("fn", [
        compute_total_study_time,
        compute_study_time_by_subject,
        compute_average_session_duration,
        get_most_studied_subject,
        compute_completion_rate,
    ])
    def test_session_functions_repeat(self, fn):
        sessions = [session(30, "Math"), session(40, "Physics", completed=False)]
        before = list(sessions)
        assert fn(sessions) == fn(sessions)
        assert sessions == before

    def test_clock_functions_repeat(self):
        sessions = [
            session(30, "Math", when=datetime(2024, 1, 5, 9)),
            session(15, "Math", when=datetime(2024, 1, 4, 9)),
        ]
        for fn in (compute_study_streak, compute_today_study_time,
                   compute_this_week_study_time, compute_this_month_study_time):
            assert fn(sessions, now=self.NOW) == fn(sessions, now=self.NOW)

    def test_goal_progress_repeats(self):
        sessions = [session(90, "Math", when=datetime(2024, 1, 3, 10))]
        g = goal(target_hours=3)
        assert compute_goal_progress(g, sessions) == compute_goal_progress(g, sessions) == 50
        assert compute_study_time_in_range(sessions, datetime(2024, 1, 1), datetime(2024, 1, 7)) == 90

    def test_assignment_functions_repeat(self):
        assignments = [
            assignment("a1", "c1", priority="high", due=datetime(2024, 1, 3)),
            assignment("a2", "c2", due=datetime(2024, 1, 10)),
        ]
        submissions = [submission("a1", estimated=4, actual=3)]
        for fn in (compute_assignment_completion_rate, compute_weekly_progress,
                   compute_course_progress):
            assert fn(assignments, submissions) == fn(assignments, submissions)
        assert compute_planning_accuracy(submissions) == compute_planning_accuracy(submissions)
        assert compute_priority_distribution(assignments) == compute_priority_distribution(assignments)
        assert (compute_assignment_summary(assignments, submissions, now=self.NOW)
                == compute_assignment_summary(assignments, submissions, now=self.NOW))
