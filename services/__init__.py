"""
Services layer - pure Python business logic with NO Streamlit dependencies.

This layer contains:
- core.py: CRUD operations and record fetchers
- metrics.py: Study-session metrics (time totals, streak, goal progress)
- assignment_metrics.py: Assignment completion, planning accuracy, weekly/course progress
- dashboard.py: Aggregates, data-source loaders and chart frames
- recommendations.py: Performance level and recommendation rules

All functions accept explicit parameters and return plain dicts/lists or records.
"""

# Core API functions (CRUD + fetchers)
from services.core import (
    # Users
    create_user,
    get_user,
    list_users,
    # Course CRUD
    create_course,
    list_courses,
    get_course,
    update_course,
    delete_course,
    # Enrollments
    enroll,
    unenroll,
    list_enrolled_course_ids,
    list_course_students,
    get_admin_stats,
    # Study sessions and goals
    add_study_session,
    update_study_session,
    delete_study_session,
    fetch_sessions,
    fetch_sessions_in_range,
    create_study_goal,
    update_study_goal,
    delete_study_goal,
    fetch_goals,
    # Assignments and submissions
    create_assignment,
    update_assignment,
    delete_assignment,
    fetch_assignments,
    fetch_student_assignments,
    save_submission,
    set_assignment_progress,
    fetch_submission,
    fetch_submissions,
    # Demo data
    load_demo_data,
)

# Study metrics
from services.metrics import (
    compute_total_study_time,
    compute_study_time_by_subject,
    compute_study_time_in_range,
    compute_today_study_time,
    compute_this_week_study_time,
    compute_this_month_study_time,
    compute_average_session_duration,
    get_most_studied_subject,
    compute_completion_rate,
    compute_study_streak,
    compute_goal_progress,
)

# Assignment metrics
from services.assignment_metrics import (
    compute_assignment_completion_rate,
    compute_planning_accuracy,
    compute_priority_distribution,
    compute_weekly_progress,
    compute_course_progress,
    compute_assignment_summary,
)

# Dashboard functions
from services.dashboard import (
    DatabaseSource,
    compute_study_metrics,
    compute_assignment_metrics,
    load_study_dashboard,
    load_assignment_dashboard,
    build_course_overview,
)

# Recommendations
from services.recommendations import (
    get_performance_level,
    generate_recommendations,
    get_metrics_interpretation,
)

__all__ = [
    # Core - Users
    "create_user",
    "get_user",
    "list_users",
    # Core - Course CRUD
    "create_course",
    "list_courses",
    "get_course",
    "update_course",
    "delete_course",
    # Core - Enrollments
    "enroll",
    "unenroll",
    "list_enrolled_course_ids",
    "list_course_students",
    "get_admin_stats",
    # Core - Study sessions and goals
    "add_study_session",
    "update_study_session",
    "delete_study_session",
    "fetch_sessions",
    "fetch_sessions_in_range",
    "create_study_goal",
    "update_study_goal",
    "delete_study_goal",
    "fetch_goals",
    # Core - Assignments and submissions
    "create_assignment",
    "update_assignment",
    "delete_assignment",
    "fetch_assignments",
    "fetch_student_assignments",
    "save_submission",
    "set_assignment_progress",
    "fetch_submission",
    "fetch_submissions",
    "load_demo_data",
    # Study metrics
    "compute_total_study_time",
    "compute_study_time_by_subject",
    "compute_study_time_in_range",
    "compute_today_study_time",
    "compute_this_week_study_time",
    "compute_this_month_study_time",
    "compute_average_session_duration",
    "get_most_studied_subject",
    "compute_completion_rate",
    "compute_study_streak",
    "compute_goal_progress",
    # Assignment metrics
    "compute_assignment_completion_rate",
    "compute_planning_accuracy",
    "compute_priority_distribution",
    "compute_weekly_progress",
    "compute_course_progress",
    "compute_assignment_summary",
    # Dashboard
    "DatabaseSource",
    "compute_study_metrics",
    "compute_assignment_metrics",
    "load_study_dashboard",
    "load_assignment_dashboard",
    "build_course_overview",
    # Recommendations
    "get_performance_level",
    "generate_recommendations",
    "get_metrics_interpretation",
]
