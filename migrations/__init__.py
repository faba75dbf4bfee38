"""
Schema migrations for the Study Planner database (SQLite or PostgreSQL).

Applied migrations are recorded in a _migrations table, pending ones run
at startup from db.init_db(), and validate_schema() fails fast when a
table or column the services rely on is missing.

Usage:
    from migrations import run_migrations, validate_schema

    run_migrations()
    validate_schema()  # Raises SchemaError if invalid
"""

from .runner import (
    run_migrations,
    get_applied_migrations,
    get_pending_migrations,
    validate_schema,
    repair_schema,
    SchemaError,
    MigrationError,
    EXPECTED_SCHEMA,
)
