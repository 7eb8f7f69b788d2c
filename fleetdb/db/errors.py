"""Exceptions raised by the persistence layer itself.

Statement failures are not wrapped: the driver's own exception
(``sqlite3.Error`` or ``sqlalchemy.exc.SQLAlchemyError``) reaches the caller.
"""


class DatabaseConfigError(ValueError):
    """Raised when settings cannot produce a usable backend."""
