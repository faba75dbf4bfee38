"""
Migration runner with schema validation.

Provides:
- Migration tracking via _migrations table
- Auto-apply pending migrations at startup
- Schema validation to catch missing columns BEFORE app runs
- Safe auto-repair for old databases
"""

import sys
from typing import List, Dict, Tuple

# Expected schema definition - single source of truth
# Format: {table_name: [column_names]}
EXPECTED_SCHEMA: Dict[str, List[str]] = {
    "users": ["id", "email", "full_name", "user_type", "created_at", "updated_at"],
    "courses": ["id", "title", "description", "teacher_id", "created_at"],
    "enrollments": ["id", "user_id", "course_id", "enrolled_at", "progress"],
    "study_sessions": ["id", "user_id", "duration", "subject", "date", "completed", "created_at", "updated_at"],
    "study_goals": ["id", "user_id", "subject", "target_hours", "period", "start_date", "end_date", "created_at", "updated_at"],
    "assignments": ["id", "course_id", "title", "description", "due_date", "status", "priority", "created_at"],
    "assignment_submissions": ["id", "assignment_id", "student_id", "status", "estimated_hours", "actual_hours", "created_at", "updated_at"],
    "events": ["id", "user_id", "event_name", "event_time", "metadata"],
}

# Tables in foreign key order
TABLE_ORDER = [
    "users", "courses", "enrollments", "study_sessions", "study_goals",
    "assignments", "assignment_submissions", "events",
]

# SQL to create each table if missing
# (sqlite_sql, postgres_sql)
TABLE_CREATE_SQL: Dict[str, Tuple[str, str]] = {
    "users": (
        """CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            full_name TEXT,
            user_type TEXT NOT NULL DEFAULT 'student',
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )""",
        """CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            full_name TEXT,
            user_type TEXT NOT NULL DEFAULT 'student',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )"""
    ),
    "courses": (
        """CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            teacher_id TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (teacher_id) REFERENCES users(id)
        )""",
        """CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            teacher_id TEXT REFERENCES users(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )"""
    ),
    "enrollments": (
        """CREATE TABLE IF NOT EXISTS enrollments (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            course_id TEXT NOT NULL,
            enrolled_at TEXT DEFAULT CURRENT_TIMESTAMP,
            progress REAL NOT NULL DEFAULT 0,
            UNIQUE (user_id, course_id),
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE
        )""",
        """CREATE TABLE IF NOT EXISTS enrollments (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            enrolled_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            progress REAL NOT NULL DEFAULT 0,
            UNIQUE (user_id, course_id)
        )"""
    ),
    "study_sessions": (
        """CREATE TABLE IF NOT EXISTS study_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            duration INTEGER NOT NULL DEFAULT 0,
            subject TEXT NOT NULL,
            date TEXT NOT NULL,
            completed INTEGER NOT NULL DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )""",
        """CREATE TABLE IF NOT EXISTS study_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            duration INTEGER NOT NULL DEFAULT 0,
            subject TEXT NOT NULL,
            date TIMESTAMP NOT NULL,
            completed BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )"""
    ),
    "study_goals": (
        """CREATE TABLE IF NOT EXISTS study_goals (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            subject TEXT NOT NULL,
            target_hours REAL NOT NULL,
            period TEXT NOT NULL DEFAULT 'weekly',
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )""",
        """CREATE TABLE IF NOT EXISTS study_goals (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            subject TEXT NOT NULL,
            target_hours REAL NOT NULL,
            period TEXT NOT NULL DEFAULT 'weekly',
            start_date TIMESTAMP NOT NULL,
            end_date TIMESTAMP NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )"""
    ),
    "assignments": (
        """CREATE TABLE IF NOT EXISTS assignments (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            due_date TEXT,
            status TEXT NOT NULL DEFAULT 'todo',
            priority TEXT NOT NULL DEFAULT 'medium',
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE
        )""",
        """CREATE TABLE IF NOT EXISTS assignments (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            description TEXT,
            due_date TIMESTAMP,
            status TEXT NOT NULL DEFAULT 'todo',
            priority TEXT NOT NULL DEFAULT 'medium',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )"""
    ),
    "assignment_submissions": (
        """CREATE TABLE IF NOT EXISTS assignment_submissions (
            id TEXT PRIMARY KEY,
            assignment_id TEXT NOT NULL,
            student_id TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'not_started',
            estimated_hours REAL,
            actual_hours REAL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (assignment_id, student_id),
            FOREIGN KEY (assignment_id) REFERENCES assignments(id) ON DELETE CASCADE,
            FOREIGN KEY (student_id) REFERENCES users(id) ON DELETE CASCADE
        )""",
        """CREATE TABLE IF NOT EXISTS assignment_submissions (
            id TEXT PRIMARY KEY,
            assignment_id TEXT NOT NULL REFERENCES assignments(id) ON DELETE CASCADE,
            student_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'not_started',
            estimated_hours REAL,
            actual_hours REAL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (assignment_id, student_id)
        )"""
    ),
    "events": (
        """CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            user_id TEXT,
            event_name TEXT NOT NULL,
            event_time TEXT DEFAULT CURRENT_TIMESTAMP,
            metadata TEXT
        )""",
        """CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            user_id TEXT,
            event_name TEXT NOT NULL,
            event_time TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            metadata TEXT
        )"""
    ),
}

# Column definitions used by repair_schema (column_name: sql_type_with_default)
COLUMN_DEFS: Dict[str, Dict[str, str]] = {
    "users": {
        "full_name": "TEXT",
        "user_type": "TEXT DEFAULT 'student'",
        "updated_at": "TEXT",
    },
    "courses": {
        "description": "TEXT",
        "teacher_id": "TEXT",
    },
    "enrollments": {
        "progress": "REAL DEFAULT 0",
    },
    "study_sessions": {
        "completed": "INTEGER DEFAULT 1",
        "updated_at": "TEXT",
    },
    "study_goals": {
        "period": "TEXT DEFAULT 'weekly'",
        "updated_at": "TEXT",
    },
    "assignments": {
        "description": "TEXT",
        "due_date": "TEXT",
        "status": "TEXT DEFAULT 'todo'",
        "priority": "TEXT DEFAULT 'medium'",
    },
    "assignment_submissions": {
        "estimated_hours": "REAL",
        "actual_hours": "REAL",
        "updated_at": "TEXT",
    },
    "events": {
        "metadata": "TEXT",
    },
}


class SchemaError(Exception):
    """Raised when schema validation fails."""
    pass


class MigrationError(Exception):
    """Raised when a migration fails to apply."""
    pass


def _create_sql(tables: List[str], postgres: bool) -> str:
    return ";\n".join(TABLE_CREATE_SQL[t][1 if postgres else 0] for t in tables)


# ============ MIGRATIONS REGISTRY ============
# Migrations are defined here as (name, sql_sqlite, sql_postgres) tuples
# Each migration runs once and is tracked in _migrations table

MIGRATIONS: List[Tuple[str, str, str]] = [
    (
        "001_create_users_and_courses",
        _create_sql(["users", "courses", "enrollments"], postgres=False),
        _create_sql(["users", "courses", "enrollments"], postgres=True),
    ),
    (
        "002_create_study_tables",
        _create_sql(["study_sessions", "study_goals"], postgres=False),
        _create_sql(["study_sessions", "study_goals"], postgres=True),
    ),
    (
        "003_create_assignment_tables",
        _create_sql(["assignments", "assignment_submissions"], postgres=False),
        _create_sql(["assignments", "assignment_submissions"], postgres=True),
    ),
    (
        "004_create_events",
        _create_sql(["events"], postgres=False),
        _create_sql(["events"], postgres=True),
    ),
    (
        "005_add_lookup_indexes",
        """
        CREATE INDEX IF NOT EXISTS idx_study_sessions_user ON study_sessions(user_id, date);
        CREATE INDEX IF NOT EXISTS idx_study_goals_user ON study_goals(user_id);
        CREATE INDEX IF NOT EXISTS idx_assignments_course ON assignments(course_id);
        CREATE INDEX IF NOT EXISTS idx_submissions_student ON assignment_submissions(student_id)
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_study_sessions_user ON study_sessions(user_id, date);
        CREATE INDEX IF NOT EXISTS idx_study_goals_user ON study_goals(user_id);
        CREATE INDEX IF NOT EXISTS idx_assignments_course ON assignments(course_id);
        CREATE INDEX IF NOT EXISTS idx_submissions_student ON assignment_submissions(student_id)
        """
    ),
]


def _get_db_connection():
    """Get database connection using db module's get_conn."""
    # Import here to avoid circular imports
    import db
    return db.get_conn()


def _is_postgres():
    import db
    return db.is_postgres()


def _table_exists(table: str) -> bool:
    import db
    return db.table_exists(table)


def _column_exists(table: str, column: str) -> bool:
    import db
    return db.column_exists(table, column)


def _add_column_if_missing(table: str, column: str, column_def: str) -> bool:
    """
    Add a column to a table if it doesn't exist.
    Returns True if column was added, False if it already existed.
    """
    if not _table_exists(table) or _column_exists(table, column):
        return False

    with _get_db_connection() as conn:
        cur = conn.cursor()
        try:
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_def}")
            conn.commit()
            return True
        except Exception as e:
            print(f"[migrations] Failed to add column {table}.{column}: {e}", file=sys.stderr)
            conn.rollback()
            return False


def _create_table_if_missing(table: str) -> bool:
    """
    Create a table if it doesn't exist using TABLE_CREATE_SQL.
    Returns True if table was created, False if it already existed.
    """
    if _table_exists(table) or table not in TABLE_CREATE_SQL:
        return False

    sqlite_sql, postgres_sql = TABLE_CREATE_SQL[table]
    sql = postgres_sql if _is_postgres() else sqlite_sql

    with _get_db_connection() as conn:
        cur = conn.cursor()
        try:
            cur.execute(sql)
            conn.commit()
            return True
        except Exception as e:
            print(f"[migrations] Failed to create table {table}: {e}", file=sys.stderr)
            conn.rollback()
            return False


def repair_schema(verbose: bool = False) -> Dict[str, List[str]]:
    """
    Attempt to repair schema by creating missing tables and adding missing columns.

    Safe operations only:
    - CREATE TABLE IF NOT EXISTS for missing tables
    - ALTER TABLE ADD COLUMN for missing columns

    Returns dict of {table: [columns_added_or_"TABLE_CREATED"]}
    """
    repaired: Dict[str, List[str]] = {}

    # PHASE 1: Create any missing tables
    for table in TABLE_ORDER:
        if not _table_exists(table):
            if verbose:
                print(f"[migrations] Repairing: Creating table {table}", file=sys.stderr)
            if _create_table_if_missing(table):
                repaired[table] = ["TABLE_CREATED"]

    # PHASE 2: Add missing columns to existing tables
    for table, expected_columns in EXPECTED_SCHEMA.items():
        if table in repaired or not _table_exists(table):
            continue

        added = []
        for col in expected_columns:
            col_def = COLUMN_DEFS.get(table, {}).get(col)
            if col_def and _add_column_if_missing(table, col, col_def):
                if verbose:
                    print(f"[migrations] Repaired: Added {table}.{col}", file=sys.stderr)
                added.append(col)

        if added:
            repaired[table] = added

    return repaired


def _ensure_migrations_table():
    """Create _migrations table if it doesn't exist."""
    with _get_db_connection() as conn:
        cur = conn.cursor()
        if _is_postgres():
            cur.execute("""
                CREATE TABLE IF NOT EXISTS _migrations (
                    id SERIAL PRIMARY KEY,
                    name TEXT UNIQUE NOT NULL,
                    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
            """)
        else:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS _migrations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT UNIQUE NOT NULL,
                    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
            """)
        conn.commit()


def get_applied_migrations() -> List[str]:
    """Get list of already-applied migration names."""
    _ensure_migrations_table()

    with _get_db_connection() as conn:
        cur = conn.cursor()
        cur.execute("SELECT name FROM _migrations ORDER BY id")
        return [row[0] for row in cur.fetchall()]


def get_pending_migrations() -> List[Tuple[str, str, str]]:
    """Get list of migrations that haven't been applied yet."""
    applied = set(get_applied_migrations())
    return [m for m in MIGRATIONS if m[0] not in applied]


def _mark_migration_applied(name: str, conn):
    cur = conn.cursor()
    if _is_postgres():
        cur.execute(
            "INSERT INTO _migrations(name) VALUES(%s) ON CONFLICT (name) DO NOTHING",
            (name,)
        )
    else:
        cur.execute(
            "INSERT OR IGNORE INTO _migrations(name) VALUES(?)",
            (name,)
        )


def run_migrations(verbose: bool = True, auto_repair: bool = True) -> List[str]:
    """
    Apply all pending migrations in order.

    Args:
        verbose: Print progress messages
        auto_repair: If True, attempt to add missing columns after migrations

    Returns list of applied migration names.

    Raises:
        MigrationError: If any statement of a migration fails
    """
    _ensure_migrations_table()
    applied = []
    is_pg = _is_postgres()

    for name, sql_sqlite, sql_postgres in get_pending_migrations():
        sql = sql_postgres if is_pg else sql_sqlite

        if verbose:
            print(f"[migrations] Applying: {name}")

        try:
            with _get_db_connection() as conn:
                cur = conn.cursor()
                # Migration SQL may contain multiple statements
                for stmt in sql.strip().split(';'):
                    stmt = stmt.strip()
                    if stmt and not stmt.startswith('--'):
                        cur.execute(stmt)

                _mark_migration_applied(name, conn)
                conn.commit()
                applied.append(name)

        except Exception as e:
            raise MigrationError(f"Migration {name} failed: {e}") from e

    if verbose and applied:
        print(f"[migrations] Applied {len(applied)} migration(s)")
    elif verbose:
        print("[migrations] Schema up to date")

    if auto_repair:
        repaired = repair_schema(verbose=verbose)
        if repaired and verbose:
            total_cols = sum(len(cols) for cols in repaired.values())
            print(f"[migrations] Auto-repaired {total_cols} item(s)")

    return applied


def _find_schema_issues() -> Dict[str, List[str]]:
    issues: Dict[str, List[str]] = {}
    for table, expected_columns in EXPECTED_SCHEMA.items():
        if not _table_exists(table):
            issues[table] = ["TABLE_MISSING"]
            continue
        missing = [col for col in expected_columns if not _column_exists(table, col)]
        if missing:
            issues[table] = missing
    return issues


def validate_schema(raise_on_error: bool = True, auto_repair: bool = True) -> Dict[str, List[str]]:
    """
    Validate that all expected tables and columns exist.
    Should be called at startup AFTER migrations.

    Args:
        raise_on_error: If True, raises SchemaError when issues remain
        auto_repair: If True, attempt to repair before raising error

    Returns:
        Dict of {table: [missing_columns]} (empty if valid)

    Raises:
        SchemaError: If raise_on_error=True and schema is invalid after repair
    """
    issues = _find_schema_issues()
    for table, cols in issues.items():
        print(f"[migrations] ISSUE: Table '{table}' missing: {cols}", file=sys.stderr)

    if issues and auto_repair:
        print(f"[migrations] Found {len(issues)} schema issue(s), attempting auto-repair...", file=sys.stderr)
        repair_schema(verbose=True)
        issues = _find_schema_issues()
        if issues:
            print(f"[migrations] Issues remaining after repair: {issues}", file=sys.stderr)

    if issues and raise_on_error:
        error_parts = ["Schema validation failed:"]
        for table, cols in issues.items():
            if cols == ["TABLE_MISSING"]:
                error_parts.append(f"  - Missing table: {table}")
            else:
                error_parts.append(f"  - Table '{table}' missing columns: {cols}")
        error_parts.append("")
        error_parts.append("To fix manually:")
        error_parts.append("  1. Delete the database file and restart (loses all data)")
        error_parts.append("  2. Or run: python -m migrations.runner")
        error_message = "\n".join(error_parts)

        print(f"[migrations] FATAL: {error_message}", file=sys.stderr)
        raise SchemaError(error_message)

    return issues


# CLI interface for running migrations directly
if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "validate":
        found = validate_schema(raise_on_error=False, auto_repair=False)
        if found:
            print(f"[migrations] Schema issues found: {found}")
            sys.exit(1)
        print("[migrations] Schema valid")
    else:
        print("[migrations] Running migrations...")
        done = run_migrations(verbose=True)
        print(f"[migrations] Done. Applied: {done}")
