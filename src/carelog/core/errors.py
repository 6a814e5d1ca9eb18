"""Error types raised by the care engine."""


class CarelogError(Exception):
    """Base class for care engine failures."""


class Unauthenticated(CarelogError):
    """Raised when a mutation is attempted without an acting staff identity."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class ValidationError(CarelogError, ValueError):
    """Raised when input is rejected before any ledger is touched."""
