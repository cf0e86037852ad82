"""Persistence layer

Each module owns one table and exposes plain functions taking an open
connection and the caller's user id. Every read and write is scoped to
that user; a record owned by someone else behaves exactly like a missing
one.

Errors:
    NotFoundError: missing or not owned ("... not found or access denied")
    ConflictError: uniqueness constraint violated
    ValidationError: CHECK / foreign key violations, bad enum values
    UpstreamError: any other sqlite failure, "Failed to <verb> <entity>: ..."
"""

import sqlite3
from contextlib import contextmanager

from grindproof.errors import ConflictError, UpstreamError, ValidationError


@contextmanager
def db_errors(action: str, conflict_message: str | None = None):
    """Translate sqlite errors raised inside the block into GrindProof errors."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e):
            raise ConflictError(conflict_message or f"Failed to {action}: {e}") from e
        raise ValidationError(f"Failed to {action}: {e}") from e
    except sqlite3.Error as e:
        raise UpstreamError(f"Failed to {action}: {e}") from e


def require_choice(value, choices: tuple, field: str) -> None:
    if value is not None and value not in choices:
        raise ValidationError(f"Invalid {field}. Must be one of: {', '.join(choices)}")
