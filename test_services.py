"""
Integration tests for the services layer.
Runs against a temporary SQLite database (no Streamlit required).
"""

from datetime import date, datetime

import pytest

import db
from services import (
    DatabaseSource,
    add_study_session,
    build_course_overview,
    create_assignment,
    create_course,
    create_study_goal,
    create_user,
    delete_assignment,
    delete_course,
    delete_study_goal,
    delete_study_session,
    enroll,
    fetch_assignments,
    fetch_goals,
    fetch_sessions,
    fetch_sessions_in_range,
    fetch_student_assignments,
    fetch_submission,
    fetch_submissions,
    get_admin_stats,
    get_course,
    list_course_students,
    list_courses,
    list_enrolled_course_ids,
    list_users,
    load_assignment_dashboard,
    load_demo_data,
    load_study_dashboard,
    save_submission,
    set_assignment_progress,
    unenroll,
    update_assignment,
    update_course,
    update_study_goal,
    update_study_session,
)
from migrations import EXPECTED_SCHEMA, get_pending_migrations, validate_schema


class TestSchema:

    def test_all_tables_created(self, temp_db):
        for table in EXPECTED_SCHEMA:
            assert db.table_exists(table)

    def test_no_pending_migrations(self, temp_db):
        assert get_pending_migrations() == []
        assert validate_schema(raise_on_error=True) == {}

    def test_init_db_is_idempotent(self, temp_db):
        db.init_db()
        assert get_pending_migrations() == []

    def test_absolute_sqlite_url(self, temp_db, tmp_path):
        assert db.get_database_url() == f"sqlite:///{tmp_path / 'test.db'}"
        assert not db.is_postgres()


class TestUsers:

    def test_create_is_idempotent_by_email(self, temp_db):
        first = create_user("Ana@Example.com", "Ana")
        second = create_user("ana@example.com")
        assert first["created"] is True
        assert second["created"] is False
        assert second["id"] == first["id"]

    def test_invalid_email(self, temp_db):
        with pytest.raises(ValueError):
            create_user("not-an-email")

    def test_list_by_role(self, temp_db):
        create_user("s@example.com")
        create_user("t@example.com", user_type="admin")
        assert [u["email"] for u in list_users("admin")] == ["t@example.com"]
        assert len(list_users()) == 2


class TestCourses:

    def test_crud(self, temp_db):
        course = create_course("Linear Algebra", "Vectors and matrices")
        assert get_course(course["id"])["title"] == "Linear Algebra"

        updated = update_course(course["id"], title="Linear Algebra II")
        assert updated["title"] == "Linear Algebra II"
        assert [c["id"] for c in list_courses()] == [course["id"]]

    def test_empty_title_rejected(self, temp_db):
        with pytest.raises(ValueError):
            create_course("   ")

    def test_delete_cascades(self, student):
        course = create_course("Statistics")
        enroll(student["id"], course["id"])
        a = create_assignment(course["id"], "Problem set 1", due_date="2024-01-15")
        save_submission(a["id"], student["id"], status="submitted")

        result = delete_course(course["id"])
        assert result["deleted"] is True
        assert result["deleted_counts"] == {"assignment_submissions": 1, "assignments": 1, "enrollments": 1}
        assert get_course(course["id"]) is None
        assert delete_course(course["id"])["deleted"] is False


class TestEnrollments:

    def test_enroll_twice_is_noop(self, student):
        course = create_course("History")
        assert enroll(student["id"], course["id"])["enrolled"] is True
        assert enroll(student["id"], course["id"])["enrolled"] is False
        assert list_enrolled_course_ids(student["id"]) == [course["id"]]
        assert list_course_students(course["id"]) == [student["id"]]

    def test_unenroll(self, student):
        course = create_course("History")
        enroll(student["id"], course["id"])
        assert unenroll(student["id"], course["id"]) is True
        assert unenroll(student["id"], course["id"]) is False

    def test_unknown_course(self, student):
        with pytest.raises(ValueError):
            enroll(student["id"], "missing")

    def test_admin_stats(self, student):
        c1 = create_course("A")
        create_course("B")
        enroll(student["id"], c1["id"])
        assert get_admin_stats() == {"total_courses": 2, "total_enrollments": 1, "total_students": 1}


class TestStudySessions:

    def test_log_and_fetch(self, student):
        add_study_session(student["id"], "Math", 45, session_date=datetime(2024, 1, 5, 9))
        add_study_session(student["id"], "Physics", 30, session_date=datetime(2024, 1, 4, 9), completed=False)

        sessions = fetch_sessions(student["id"])
        assert [s.subject for s in sessions] == ["Math", "Physics"]
        assert sessions[0].date == datetime(2024, 1, 5, 9)
        assert sessions[1].completed is False

    def test_range_includes_whole_end_day(self, student):
        add_study_session(student["id"], "Math", 10, session_date=datetime(2024, 1, 3, 23, 0))
        add_study_session(student["id"], "Math", 20, session_date=datetime(2024, 1, 4, 8, 0))
        in_range = fetch_sessions_in_range(student["id"], "2024-01-01", "2024-01-03")
        assert [s.duration_minutes for s in in_range] == [10]

    def test_invalid_duration(self, student):
        with pytest.raises(ValueError):
            add_study_session(student["id"], "Math", -5)

    def test_update_and_delete_are_owner_scoped(self, student):
        other = create_user("other@example.com")
        s = add_study_session(student["id"], "Math", 45)

        assert update_study_session(other["id"], s["id"], duration=10) is False
        assert update_study_session(student["id"], s["id"], duration=50, completed=False) is True
        assert fetch_sessions(student["id"])[0].duration_minutes == 50

        assert delete_study_session(other["id"], s["id"]) is False
        assert delete_study_session(student["id"], s["id"]) is True
        assert fetch_sessions(student["id"]) == []

    def test_events_logged(self, student):
        add_study_session(student["id"], "Math", 45)
        row = db.fetchone("SELECT COUNT(*) FROM events WHERE event_name=?", ("session_logged",))
        assert row[0] == 1


class TestStudyGoals:

    def test_end_date_covers_whole_day(self, student):
        create_study_goal(student["id"], "Math", 10, "weekly", date(2024, 1, 1), date(2024, 1, 7))
        g = fetch_goals(student["id"])[0]
        assert g.start_date == datetime(2024, 1, 1)
        assert g.end_date.date() == date(2024, 1, 7)
        assert g.end_date.hour == 23

    def test_update_and_delete(self, student):
        g = create_study_goal(student["id"], "Math", 10, "weekly", "2024-01-01", "2024-01-07")
        assert update_study_goal(student["id"], g["id"], target_hours=12) is True
        assert fetch_goals(student["id"])[0].target_hours == 12
        assert delete_study_goal(student["id"], g["id"]) is True
        assert fetch_goals(student["id"]) == []

    def test_validation(self, student):
        with pytest.raises(ValueError):
            create_study_goal(student["id"], "Math", 0, "weekly", "2024-01-01", "2024-01-07")
        with pytest.raises(ValueError):
            create_study_goal(student["id"], "Math", 5, "yearly", "2024-01-01", "2024-01-07")
        with pytest.raises(ValueError):
            create_study_goal(student["id"], "Math", 5, "weekly", "2024-01-07", "2024-01-01")


class TestAssignments:

    def test_student_sees_enrolled_courses_only(self, student):
        mine = create_course("Mine")
        other = create_course("Other")
        enroll(student["id"], mine["id"])
        create_assignment(mine["id"], "Essay", due_date="2024-01-20", priority="high")
        create_assignment(other["id"], "Quiz", due_date="2024-01-10")

        assert [a.title for a in fetch_student_assignments(student["id"])] == ["Essay"]
        assert len(fetch_assignments()) == 2
        assert [a.title for a in fetch_assignments(other["id"])] == ["Quiz"]

    def test_invalid_priority(self, temp_db):
        course = create_course("Mine")
        with pytest.raises(ValueError):
            create_assignment(course["id"], "Essay", priority="urgent")

    def test_submission_upsert(self, student):
        course = create_course("Mine")
        a = create_assignment(course["id"], "Essay")

        first = save_submission(a["id"], student["id"], estimated_hours=4)
        assert first["created"] is True
        assert first["status"] == "not_started"

        second = save_submission(a["id"], student["id"], status="submitted", actual_hours=5)
        assert second["created"] is False
        assert second["id"] == first["id"]
        assert second["estimated_hours"] == 4
        assert second["actual_hours"] == 5

    def test_update_and_delete(self, student):
        course = create_course("Mine")
        a = create_assignment(course["id"], "Essay", due_date="2024-01-20")
        save_submission(a["id"], student["id"], status="in_progress")

        assert update_assignment(a["id"], priority="high", status="doing") is True
        assert fetch_assignments(course["id"])[0].priority == "high"
        with pytest.raises(ValueError):
            update_assignment(a["id"], status="finished")

        assert len(fetch_submissions(student["id"])) == 1
        assert delete_assignment(a["id"]) is True
        assert fetch_submissions(student["id"]) == []

    def test_progress_maps_display_status(self, student):
        course = create_course("Mine")
        a = create_assignment(course["id"], "Essay")
        set_assignment_progress(a["id"], student["id"], "doing")
        assert fetch_submission(a["id"], student["id"]).status == "in_progress"
        set_assignment_progress(a["id"], student["id"], "done")
        assert fetch_submission(a["id"], student["id"]).is_completed


class TestDashboardFromDatabase:
    NOW = datetime(2024, 1, 5, 12, 0)

    def test_round_trip_feeds_loaders(self, student):
        uid = student["id"]
        add_study_session(uid, "Math", 60, session_date=datetime(2024, 1, 5, 9))
        add_study_session(uid, "Math", 30, session_date=datetime(2024, 1, 4, 9))
        add_study_session(uid, "Physics", 15, session_date=datetime(2024, 1, 3, 9), completed=False)
        create_study_goal(uid, "Math", 2, "weekly", "2024-01-01", "2024-01-07")

        course = create_course("Calculus")
        enroll(uid, course["id"])
        a1 = create_assignment(course["id"], "Limits", due_date="2024-01-03")
        create_assignment(course["id"], "Derivatives", due_date="2024-01-12")
        save_submission(a1["id"], uid, status="graded", estimated_hours=4, actual_hours=3)

        source = DatabaseSource()
        study = load_study_dashboard(source, uid, now=self.NOW)["metrics"]
        assert study["total_study_time"] == 90
        assert study["today_study_time"] == 60
        assert study["study_streak"] == 2
        assert study["goals"][0]["progress"] == 75

        result = load_assignment_dashboard(source, uid, now=self.NOW)
        metrics = result["metrics"]
        assert metrics["completion_rate"] == 50
        assert metrics["planning_accuracy"] == 75
        assert metrics["course_progress"][0]["course_id"] == course["id"]
        assert [w["week_start"] for w in metrics["weekly_progress"]] == ["2024-01-01", "2024-01-08"]
        assert result["interpretation"]["level"] == "fair"

        overview = build_course_overview(source, list_course_students(course["id"]), course["id"])
        assert overview[0]["completion_rate"] == 50

    def test_demo_data_loads_once(self, student):
        now = datetime(2024, 3, 13, 20, 0)
        result = load_demo_data(student["id"], now=now)
        assert result["created"] is True
        assert load_demo_data(student["id"], now=now)["created"] is False

        metrics = load_study_dashboard(DatabaseSource(), student["id"], now=now)["metrics"]
        assert metrics["study_streak"] == 2
        assert metrics["today_study_time"] == 60

        assignments = load_assignment_dashboard(DatabaseSource(), student["id"], now=now)
        assert len(assignments["assignments"]) == 4
        assert assignments["metrics"]["completion_rate"] == 50
