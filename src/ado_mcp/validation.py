"""Input validation for values that reach Azure DevOps requests.

Every tool handler runs its arguments through these checks before the first
request is issued:
- Identifiers used as URL path segments are rejected on traversal sequences
- Organization and branch names must match an allow-list pattern
- Numeric IDs must be positive 32-bit integers
- Free text is only type- and length-checked (it travels as a JSON value)
- Strings embedded in WIQL literals are quote-escaped, never rejected
"""
import re
from typing import Any


MAX_PROJECT_NAME_LENGTH = 255
MAX_IDENTIFIER_LENGTH = 255
DEFAULT_MAX_STRING_LENGTH = 1000
MAX_LARGE_TEXT_LENGTH = 32000
MAX_INT32 = 2147483647

ORGANIZATION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]$")
BRANCH_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._\-/]+$")

# Sequences that would let an identifier escape its URL path segment
TRAVERSAL_SEQUENCES = ("..", "\\\\", "//")


class ValidationError(ValueError):
    """Raised when a caller-supplied value fails an input check."""
    pass


def validate_string_input(value: Any, field_name: str, max_length: int = DEFAULT_MAX_STRING_LENGTH) -> None:
    """Check that a value is a string no longer than max_length."""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if len(value) > max_length:
        raise ValidationError(f"{field_name} too long (max {max_length} characters)")


def validate_path_segment(value: Any, field_name: str, max_length: int = MAX_IDENTIFIER_LENGTH) -> None:
    """Check an identifier that will be interpolated into a URL path.

    Spaces are allowed (Azure DevOps project and repository names may contain
    them); empty values, over-long values and traversal sequences are not.
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} is required")
    if len(value) > max_length:
        raise ValidationError(f"{field_name} too long (max {max_length} characters)")
    if any(seq in value for seq in TRAVERSAL_SEQUENCES):
        raise ValidationError(f"Invalid {field_name[0].lower()}{field_name[1:]}")


def validate_project_name(value: Any) -> None:
    """Check a project name or ID used as the first path segment."""
    validate_path_segment(value, "Project name", MAX_PROJECT_NAME_LENGTH)


def validate_id(value: Any, label: str = "work item") -> int:
    """Check a numeric identifier and return it as an int.

    JSON numbers may arrive as integral floats (``3.0``); those are accepted.
    Booleans are rejected even though ``bool`` subclasses ``int``.

    Raises:
        ValidationError: if the value is not a positive integer within int32 range
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Invalid {label} ID")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"Invalid {label} ID")
    if value <= 0:
        raise ValidationError(f"Invalid {label} ID")
    if value > MAX_INT32:
        raise ValidationError(f"{label[0].upper()}{label[1:]} ID too large")
    return int(value)


def validate_work_item_id(value: Any) -> int:
    """Check a work item ID (positive, at most 2147483647)."""
    return validate_id(value, "work item")


def validate_organization_name(value: Any) -> None:
    """Check an organization name: alphanumerics with internal hyphens, length >= 2."""
    if not isinstance(value, str) or not ORGANIZATION_NAME_PATTERN.match(value):
        raise ValidationError(
            "Invalid organization name format. Must contain only alphanumeric characters and hyphens."
        )


def validate_branch_name(value: Any, field_name: str = "Branch name") -> None:
    """Check a branch name against the allowed character set."""
    validate_string_input(value, field_name, MAX_IDENTIFIER_LENGTH)
    # fullmatch so a trailing newline cannot slip past the "$" anchor
    if not BRANCH_NAME_PATTERN.fullmatch(value):
        raise ValidationError("Invalid branch name format")


def escape_query_literal(value: str) -> str:
    """Escape a string for use inside a single-quoted WIQL literal.

    Not idempotent: escaping twice doubles the quotes again.
    """
    return value.replace("'", "''")
