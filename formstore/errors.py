"""Domain errors raised by the stores.

Anything the database reports that does not map onto one of these is
re-raised untouched.
"""

FOREIGN_KEY_SQLSTATE = "23503"
SQLITE_FOREIGN_KEY_ERRORNAME = "SQLITE_CONSTRAINT_FOREIGNKEY"


class FormsStoreError(Exception):
    pass


class InvalidUserIDError(FormsStoreError):
    def __init__(self, user_id: int | None = None):
        self.user_id = user_id
        super().__init__(f"Invalid user id: {user_id}")


class InvalidInputError(FormsStoreError):
    pass


class FormNotFoundError(FormsStoreError):
    def __init__(self, form_id: int):
        self.form_id = form_id
        super().__init__(f"Form {form_id} not found")


def is_foreign_key_violation(exc: BaseException) -> bool:
    """Inspect driver error codes, never the message text.

    sqlite3 (3.11+) exposes the extended result code name; asyncpg and
    psycopg expose the SQLSTATE as ``sqlstate`` / ``pgcode``.
    """
    if getattr(exc, "sqlite_errorname", None) == SQLITE_FOREIGN_KEY_ERRORNAME:
        return True
    sqlstate = getattr(exc, "sqlstate", None) or getattr(exc, "pgcode", None)
    return sqlstate == FOREIGN_KEY_SQLSTATE
