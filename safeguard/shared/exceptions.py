"""Engine-level exceptions that are not persistence errors.

Persistence errors (RepositoryError, NotFoundError) live in
safeguard.shared.database.
"""


class InvalidInputError(ValueError):
    """Input failed validation before any mutation took place."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field
