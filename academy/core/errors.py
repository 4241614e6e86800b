"""
Domain error taxonomy.

Every error carries a message that is safe to show to the office operator and
the HTTP status the API answers with.
"""


class AcademyError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AcademyError):
    """A required field is missing or a value is out of range"""
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class NotFoundError(AcademyError):
    """A referenced entity does not exist"""
    status_code = 404

    def __init__(self, entity: str, key):
        super().__init__(f"{entity} {key} not found")
        self.entity = entity
        self.key = key


class ConstraintError(AcademyError):
    """Foreign key or uniqueness rule rejected by the store"""
    status_code = 409


class SequencingError(AcademyError):
    """The receipt ledger holds an id that cannot be continued"""
    status_code = 500
