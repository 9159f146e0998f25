"""Error taxonomy shared by the catalog operations and both surfaces.

Messages are user-facing (Indonesian) and are shown verbatim by the API and
the admin bot.
"""


class CatalogError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Required field missing or value out of range; raised before any store call."""


class ParseError(ValidationError):
    """Import batch rejected as a whole before any row is written."""


class NotFoundError(CatalogError):
    """No record matches the requested id or slug."""


class ReferentialIntegrityViolation(CatalogError):
    """Delete refused because dependent records still exist."""


class StoreError(CatalogError):
    """The database rejected the operation; carries the driver message."""


class RowError(CatalogError):
    """A single import row failed; collected, never aborts the batch."""

    def __init__(self, name: str, reason: str):
        super().__init__(f'"{name}": {reason}')
        self.name = name
        self.reason = reason
