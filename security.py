"""
Security module for Study Planner.
Provides input validation and sanitization helpers.
"""

import re
import html
from typing import Optional, Any, Set

# ============ TABLE NAME ALLOWLIST ============
# Only these table names are allowed in dynamic SQL queries
ALLOWED_TABLES: Set[str] = frozenset({
    "users",
    "courses",
    "enrollments",
    "study_sessions",
    "study_goals",
    "assignments",
    "assignment_submissions",
    "events",
})

# Allowed column names for dynamic UPDATE statements
ALLOWED_COLUMNS: Set[str] = frozenset({
    "id", "user_id", "course_id", "assignment_id", "student_id", "teacher_id",
    "email", "full_name", "user_type",
    "title", "description", "subject",
    "duration", "date", "completed",
    "target_hours", "period", "start_date", "end_date",
    "due_date", "status", "priority",
    "estimated_hours", "actual_hours", "progress",
    "created_at", "updated_at", "enrolled_at",
})


def validate_table_name(table: str) -> str:
    """
    Validate table name against allowlist.

    Returns:
        The validated table name (lowercased, stripped)

    Raises:
        ValueError: If table name is not in allowlist
    """
    if not table or not isinstance(table, str):
        raise ValueError("Table name must be a non-empty string")

    table_clean = table.strip().lower()
    if table_clean not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table_clean


def validate_column_name(column: str) -> str:
    """
    Validate column name against allowlist.
    Raises ValueError if column name is not allowed.
    """
    if not column or not isinstance(column, str):
        raise ValueError("Column name must be a non-empty string")

    column_clean = column.strip().lower()
    if column_clean not in ALLOWED_COLUMNS:
        raise ValueError(f"Invalid column name: {column}")
    return column_clean


# ============ INPUT SANITIZATION ============

def sanitize_string(value: str, max_length: int = 1000, allow_newlines: bool = False) -> str:
    """
    Sanitize a string input by stripping whitespace and limiting length.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length (default 1000)
        allow_newlines: If False, replace newlines with spaces

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return ""

    result = value.strip()
    if not allow_newlines:
        result = re.sub(r'[\r\n]+', ' ', result)
    return result[:max_length]


def require_text(value: str, field: str, max_length: int = 200) -> str:
    """Sanitize a required text field. Raises ValueError if it ends up empty."""
    result = sanitize_string(value, max_length=max_length)
    if not result:
        raise ValueError(f"{field} is required")
    return result


def sanitize_html(value: str) -> str:
    """
    Escape HTML special characters to prevent XSS.
    Use when displaying user input in HTML context.
    """
    if not isinstance(value, str):
        return ""
    return html.escape(value)


def validate_email(email: str) -> bool:
    """Validate email format."""
    if not email or not isinstance(email, str):
        return False

    # Basic email pattern - not exhaustive but catches most issues
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email.strip()))


def validate_numeric_range(value: Any, min_val: Optional[float] = None,
                           max_val: Optional[float] = None,
                           allow_none: bool = False) -> bool:
    """
    Validate that a numeric value is within expected range.

    Args:
        value: Value to validate
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)
        allow_none: If True, None values are valid

    Returns:
        True if valid, False otherwise
    """
    if value is None:
        return allow_none

    try:
        num = float(value)
    except (TypeError, ValueError):
        return False

    if min_val is not None and num < min_val:
        return False
    if max_val is not None and num > max_val:
        return False
    return True


def validate_choice(value: str, allowed: tuple, field: str) -> str:
    """Return value if it is one of allowed, else raise ValueError."""
    if value not in allowed:
        raise ValueError(f"Invalid {field} '{value}'. Allowed: {', '.join(allowed)}")
    return value
