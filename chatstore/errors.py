"""
Errors raised by the persistence layer.

Storage-engine failures are translated into these so that callers never
have to inspect driver-specific IntegrityError messages.
"""

# SQLSTATE class 23 codes reported by PostgreSQL drivers
FOREIGN_KEY_VIOLATION = '23503'


class StoreError(Exception):
    """Base persistence error."""

    def __init__(self, message, detail=None):
        self.message = message
        self.detail = detail or message
        super().__init__(self.message)


class ConstraintViolation(StoreError):
    """Uniqueness, primary-key, NOT NULL or CHECK violation."""


class ReferentialError(StoreError):
    """A foreign key points at a row that does not exist."""


class NotFound(StoreError):
    """A required row does not exist."""


def translate_integrity_error(exc, action):
    orig = getattr(exc, 'orig', None)
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    detail = str(orig) if orig is not None else str(exc)

    # SQLite: "FOREIGN KEY constraint failed", MySQL: "a foreign key constraint fails"
    if code == FOREIGN_KEY_VIOLATION or 'foreign key' in detail.lower():
        return ReferentialError(f'Cannot {action}: referenced row does not exist', detail)
    return ConstraintViolation(f'Cannot {action}: constraint violated', detail)
