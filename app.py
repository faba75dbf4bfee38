from datetime import date, datetime, timedelta
import pandas as pd
import streamlit as st

from db import init_db, is_postgres, get_database_url, APP_DIR
from models import GOAL_PERIODS, PRIORITIES
from services.core import (
    create_user, get_user, list_users,
    create_course, list_courses, delete_course,
    enroll, unenroll, list_enrolled_course_ids, list_course_students, get_admin_stats,
    add_study_session, delete_study_session,
    create_study_goal, delete_study_goal,
    create_assignment, save_submission, set_assignment_progress,
    has_demo_data, load_demo_data,
)
from services.assignment_metrics import resolve_assignment_status
from services.dashboard import (
    DatabaseSource, load_study_dashboard, load_assignment_dashboard,
    build_course_overview, time_by_subject_frame, weekly_progress_frame,
)
from ui import (
    inject_css, render_kpi_row, render_interpretation, render_goal_progress,
    render_empty_state, section_header, card_start, card_end,
    format_minutes, rate_variant,
)

# ============ STREAMLIT APP ============

# Developer mode flag - set to True to show internal diagnostics in sidebar
DEV_MODE = False

st.set_page_config(page_title="Study Planner", page_icon="📚", layout="wide")
init_db()

# Inject global CSS styling
inject_css()

source = DatabaseSource()

# ============ DATABASE DIAGNOSTICS (DEV ONLY) ============
if DEV_MODE:
    with st.sidebar:
        with st.expander("🔍 Database Diagnostics", expanded=False):
            st.caption(f"**Mode:** {'🐘 Postgres' if is_postgres() else '📁 SQLite'}")
            st.code(get_database_url(), language=None)
            st.caption(f"**App Directory:** {str(APP_DIR)}")

# ============ SESSION STATE INITIALIZATION ============
if "user_id" not in st.session_state:
    st.session_state.user_id = None


def _course_titles() -> dict:
    return {c["id"]: c["title"] for c in list_courses()}


def _user_label(user: dict) -> str:
    name = user["full_name"] or user["email"]
    return f"{name} ({user['user_type']})"


# ============ SIDEBAR ============
with st.sidebar:
    st.header("👤 Account")

    users = list_users()
    if users:
        labels = {u["id"]: _user_label(u) for u in users}
        ids = list(labels)
        current = st.session_state.user_id if st.session_state.user_id in labels else ids[0]
        st.session_state.user_id = st.selectbox(
            "Signed in as",
            ids,
            index=ids.index(current),
            format_func=lambda uid: labels[uid]
        )

    with st.expander("➕ New user", expanded=not users):
        with st.form("new_user_form"):
            email = st.text_input("Email", placeholder="you@example.com")
            full_name = st.text_input("Full name")
            user_type = st.radio("Role", ["student", "admin"], horizontal=True)
            if st.form_submit_button("Create user", type="primary"):
                try:
                    result = create_user(email, full_name, user_type)
                    st.session_state.user_id = result["id"]
                    if not result["created"]:
                        st.info("A user with this email already exists. Switched to it.")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

if not st.session_state.user_id:
    st.title("Study Planner")
    st.info("Create a user in the sidebar to get started.")
    st.stop()

user = get_user(st.session_state.user_id)
if user is None:
    st.session_state.user_id = None
    st.rerun()

user_id = user["id"]
is_admin = user["user_type"] == "admin"


# ============ ADMIN VIEW ============
def show_admin_view():
    st.title("Study Planner · Admin")

    stats = get_admin_stats()
    render_kpi_row([
        {"label": "Courses", "value": stats["total_courses"], "variant": "info"},
        {"label": "Enrollments", "value": stats["total_enrollments"]},
        {"label": "Students", "value": stats["total_students"]},
    ])

    courses = list_courses()
    tabs = st.tabs(["Course Overview", "Courses", "Assignments"])

    with tabs[0]:
        if not courses:
            st.info("No courses yet. Create one in the Courses tab.")
        else:
            titles = {c["id"]: c["title"] for c in courses}
            course_id = st.selectbox(
                "Course", list(titles), format_func=lambda cid: titles[cid], key="overview_course"
            )
            student_ids = list_course_students(course_id)
            if not student_ids:
                st.info("No students enrolled in this course yet.")
            else:
                overview = build_course_overview(source, student_ids, course_id)
                rows = []
                for entry in overview:
                    student = get_user(entry["student_id"])
                    rows.append({
                        "Student": _user_label(student) if student else entry["student_id"],
                        "Completion %": round(entry["completion_rate"], 1),
                        "Planning accuracy %": round(entry["planning_accuracy"], 1),
                        "Level": entry["level"],
                    })
                st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    with tabs[1]:
        with st.form("add_course"):
            title = st.text_input("Course title", placeholder="e.g., Linear Algebra")
            description = st.text_area("Description")
            if st.form_submit_button("Add course", type="primary"):
                try:
                    create_course(title, description, teacher_id=user_id)
                    st.success("Course created!")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

        for course in courses:
            col1, col2 = st.columns([4, 1])
            with col1:
                st.markdown(f"**{course['title']}**")
                if course["description"]:
                    st.caption(course["description"])
            with col2:
                if st.button("Delete", key=f"delete_course_{course['id']}"):
                    delete_course(course["id"])
                    st.rerun()

    with tabs[2]:
        if not courses:
            st.info("Create a course first.")
            return
        titles = {c["id"]: c["title"] for c in courses}
        with st.form("add_assignment"):
            course_id = st.selectbox("Course", list(titles), format_func=lambda cid: titles[cid])
            title = st.text_input("Assignment title")
            due = st.date_input("Due date", value=date.today() + timedelta(days=7))
            priority = st.selectbox("Priority", PRIORITIES, index=1)
            description = st.text_area("Description")
            if st.form_submit_button("Add assignment", type="primary"):
                try:
                    create_assignment(course_id, title, due_date=due, priority=priority, description=description)
                    st.success("Assignment created!")
                except ValueError as e:
                    st.error(str(e))


# ============ STUDENT VIEW ============
def show_study_section(now: datetime):
    dashboard = load_study_dashboard(source, user_id, now)
    metrics = dashboard["metrics"]

    section_header("Study Time", margin_top=False)
    render_kpi_row([
        {"label": "Today", "value": format_minutes(metrics["today_study_time"])},
        {"label": "This week", "value": format_minutes(metrics["week_study_time"])},
        {"label": "This month", "value": format_minutes(metrics["month_study_time"])},
        {"label": "Streak", "value": f"{metrics['study_streak']}d",
         "variant": "success" if metrics["study_streak"] > 0 else None},
    ])
    st.markdown("")

    most = metrics["most_studied_subject"]
    render_kpi_row([
        {"label": "Total", "value": format_minutes(metrics["total_study_time"])},
        {"label": "Avg session", "value": format_minutes(metrics["average_session_duration"])},
        {"label": "Completed sessions", "value": f"{metrics['completion_rate']:.0f}%",
         "variant": rate_variant(metrics["completion_rate"])},
        {"label": "Top subject", "value": most["subject"] if most else "-",
         "subtext": format_minutes(most["minutes"]) if most else None, "variant": "info"},
    ])

    col1, col2 = st.columns(2)
    with col1:
        section_header("Time by Subject")
        subject_df = time_by_subject_frame(metrics["time_by_subject"])
        if subject_df.empty:
            st.caption("No completed sessions yet.")
        else:
            st.bar_chart(subject_df.set_index("subject")["hours"])
    with col2:
        section_header("Goals")
        if metrics["goals"]:
            render_goal_progress(metrics["goals"])
        else:
            st.caption("No goals yet. Add one in the Log tab.")


def show_assignment_section(now: datetime, titles: dict):
    dashboard = load_assignment_dashboard(source, user_id, now=now)
    metrics = dashboard["metrics"]

    section_header("Assignments")
    if not dashboard["assignments"]:
        st.caption("No assignments in your courses yet.")
        return

    render_kpi_row([
        {"label": "Completion", "value": f"{metrics['completion_rate']:.0f}%",
         "variant": rate_variant(metrics["completion_rate"]),
         "subtext": f"{metrics['completed_assignments']}/{metrics['total_assignments']} done"},
        {"label": "Planning accuracy", "value": f"{metrics['planning_accuracy']:.0f}%",
         "variant": rate_variant(metrics["planning_accuracy"])},
        {"label": "In progress", "value": metrics["in_progress_assignments"], "variant": "info"},
        {"label": "Overdue", "value": metrics["overdue_assignments"],
         "variant": "danger" if metrics["overdue_assignments"] else None},
    ])
    st.markdown("")

    col1, col2 = st.columns([3, 2])
    with col1:
        if metrics["weekly_progress"]:
            section_header("Weekly Progress", margin_top=False)
            st.bar_chart(weekly_progress_frame(metrics["weekly_progress"]))

        section_header("Course Progress")
        for entry in metrics["course_progress"]:
            st.markdown(f"**{titles.get(entry['course_id'], entry['course_id'])}** · "
                        f"{entry['completed']}/{entry['total']}")
            st.progress(int(entry["completion"]) / 100)
    with col2:
        render_interpretation(dashboard["interpretation"])

    section_header("Assignment Status")
    submissions = {s.assignment_id: s for s in dashboard["submissions"]}
    for a in dashboard["assignments"]:
        submission = submissions.get(a.id)
        status = resolve_assignment_status(a, submission)
        due = a.due_date.strftime("%a %d/%m/%Y") if a.due_date else "no due date"
        col1, col2 = st.columns([4, 1])
        with col1:
            st.markdown(f"**{a.title}** · {titles.get(a.course_id, '')} · {a.priority} · due {due}")
        with col2:
            choice = st.selectbox(
                "Status", ["todo", "doing", "done"],
                index=["todo", "doing", "done"].index(status),
                key=f"status_{a.id}", label_visibility="collapsed"
            )
            if choice != status:
                set_assignment_progress(a.id, user_id, choice)
                st.rerun()


def show_log_tab(now: datetime, titles: dict):
    col1, col2 = st.columns(2)

    with col1:
        card_start("Log study session")
        with st.form("study_form"):
            subject = st.text_input("Subject", placeholder="e.g., Mathematics")
            duration = st.number_input("Duration (minutes)", min_value=0, max_value=1440, value=60, step=5)
            session_date = st.date_input("Date", value=now.date())
            completed = st.checkbox("Completed", value=True)
            if st.form_submit_button("Log session", type="primary"):
                try:
                    add_study_session(user_id, subject, int(duration),
                                      session_date=datetime.combine(session_date, now.time()),
                                      completed=completed)
                    st.success("Session logged!")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))
        card_end()

    with col2:
        card_start("New study goal")
        with st.form("goal_form"):
            subject = st.text_input("Subject", key="goal_subject")
            target_hours = st.number_input("Target hours", min_value=0.5, max_value=200.0, value=5.0, step=0.5)
            period = st.selectbox("Period", GOAL_PERIODS, index=1)
            start = st.date_input("Start", value=now.date(), key="goal_start")
            end = st.date_input("End", value=now.date() + timedelta(days=6), key="goal_end")
            if st.form_submit_button("Add goal", type="primary"):
                try:
                    create_study_goal(user_id, subject, target_hours, period, start, end)
                    st.success("Goal created!")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))
        card_end()

    section_header("Assignment effort")
    dashboard = load_assignment_dashboard(source, user_id, now=now)
    if dashboard["assignments"]:
        options = {a.id: a.title for a in dashboard["assignments"]}
        with st.form("effort_form"):
            assignment_id = st.selectbox("Assignment", list(options), format_func=lambda aid: options[aid])
            estimated = st.number_input("Estimated hours", min_value=0.0, value=0.0, step=0.5)
            actual = st.number_input("Actual hours", min_value=0.0, value=0.0, step=0.5)
            if st.form_submit_button("Save hours"):
                try:
                    save_submission(
                        assignment_id, user_id,
                        estimated_hours=estimated or None,
                        actual_hours=actual if estimated else None
                    )
                    st.success("Hours saved!")
                except ValueError as e:
                    st.error(str(e))
    else:
        st.caption("Enroll in a course to track assignment effort.")

    study = load_study_dashboard(source, user_id, now)
    section_header("Recent sessions")
    for s in study["sessions"][:10]:
        col1, col2 = st.columns([5, 1])
        with col1:
            when = s.date.strftime("%a %d/%m %H:%M") if s.date else "-"
            done = "✅" if s.completed else "⏸️"
            st.markdown(f"{done} **{s.subject}** · {format_minutes(s.duration_minutes)} · {when}")
        with col2:
            if st.button("Delete", key=f"delete_session_{s.id}"):
                delete_study_session(user_id, s.id)
                st.rerun()

    if study["goals"]:
        section_header("Goals")
        for g in study["goals"]:
            col1, col2 = st.columns([5, 1])
            with col1:
                st.markdown(f"**{g.subject}** · {g.target_hours:g}h {g.period} · "
                            f"{g.start_date:%d/%m} to {g.end_date:%d/%m}")
            with col2:
                if st.button("Delete", key=f"delete_goal_{g.id}"):
                    delete_study_goal(user_id, g.id)
                    st.rerun()


def show_courses_tab(titles: dict):
    enrolled = list_enrolled_course_ids(user_id)
    if not titles:
        st.info("No courses available yet. Ask an admin to create one.")
        return
    for course_id, title in titles.items():
        col1, col2 = st.columns([4, 1])
        with col1:
            st.markdown(f"**{title}**")
        with col2:
            if course_id in enrolled:
                if st.button("Leave", key=f"unenroll_{course_id}"):
                    unenroll(user_id, course_id)
                    st.rerun()
            elif st.button("Enroll", key=f"enroll_{course_id}", type="primary"):
                enroll(user_id, course_id)
                st.rerun()


def show_student_view():
    st.title("Study Planner")
    st.caption("Study time, goals and assignment progress in one place.")

    now = datetime.now()
    titles = _course_titles()

    tabs = st.tabs(["Dashboard", "Log", "Courses"])

    with tabs[0]:
        if not has_demo_data(user_id) and not list_enrolled_course_ids(user_id) and not source.fetch_sessions(user_id):
            if render_empty_state(
                title="Nothing tracked yet",
                description="Log a study session, enroll in a course, or load sample data to explore the dashboard.",
                button_label="Load demo data",
                key="demo"
            ):
                load_demo_data(user_id)
                st.rerun()
        else:
            show_study_section(now)
            show_assignment_section(now, titles)

    with tabs[1]:
        show_log_tab(now, titles)

    with tabs[2]:
        show_courses_tab(titles)


if is_admin:
    show_admin_view()
else:
    show_student_view()
