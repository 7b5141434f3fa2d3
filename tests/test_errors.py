import sqlite3

import pytest

from formstore.errors import (
    FormNotFoundError,
    FormsStoreError,
    InvalidInputError,
    InvalidUserIDError,
    is_foreign_key_violation,
)


class _DriverError(Exception):
    def __init__(self, message="", **attrs):
        super().__init__(message)
        for k, v in attrs.items():
            setattr(self, k, v)


@pytest.mark.parametrize(
    "exc",
    [
        _DriverError(sqlite_errorname="SQLITE_CONSTRAINT_FOREIGNKEY"),
        _DriverError(sqlstate="23503"),
        _DriverError(pgcode="23503"),
    ],
)
def test_foreign_key_violation_detected_by_code(exc):
    assert is_foreign_key_violation(exc) is True


@pytest.mark.parametrize(
    "exc",
    [
        # message text alone is not enough
        sqlite3.IntegrityError("FOREIGN KEY constraint failed"),
        _DriverError(sqlite_errorname="SQLITE_CONSTRAINT_UNIQUE"),
        _DriverError(sqlstate="23505"),
        ValueError("boom"),
    ],
)
def test_other_errors_are_not_foreign_key_violations(exc):
    assert is_foreign_key_violation(exc) is False


def test_foreign_key_violation_from_sqlite():
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("CREATE TABLE parent (id INTEGER PRIMARY KEY)")
        conn.execute("CREATE TABLE child (id INTEGER PRIMARY KEY, parent_id INTEGER REFERENCES parent(id))")
        with pytest.raises(sqlite3.IntegrityError) as excinfo:
            conn.execute("INSERT INTO child (parent_id) VALUES (7)")
    finally:
        conn.close()

    assert is_foreign_key_violation(excinfo.value) is True


def test_domain_errors_share_base():
    for exc in (InvalidUserIDError(0), InvalidInputError("empty"), FormNotFoundError(3)):
        assert isinstance(exc, FormsStoreError)
    assert str(FormNotFoundError(3)) == "Form 3 not found"
