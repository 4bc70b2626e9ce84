"""
Database error taxonomy.

TransientDatabaseError  - the connection is currently down; retry later (503)
PersistenceError        - a statement failed on a live connection (500)
FatalDatabaseError      - the connection cannot be established for a reason
                          other than the server being unreachable (500, the
                          process is asked to stop)
"""


class DatabaseError(Exception):
    """Base class for errors raised by the connection keeper."""


class TransientDatabaseError(DatabaseError):
    def __init__(self, message: str = "Database connection is unavailable"):
        super().__init__(message)


class PersistenceError(DatabaseError):
    pass


class FatalDatabaseError(DatabaseError):
    pass


class SignupWindowClosed(Exception):
    """The submission arrived outside the window for its category."""

    def __init__(self, category: str):
        super().__init__(f"Signup window for {category} is not open")
        self.category = category
