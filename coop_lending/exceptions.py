"""Exception hierarchy for the lending core."""


class LendingError(ValueError):
    """Base exception for all lending domain errors."""


class ValidationError(LendingError):
    """Raised when operation input is out of shape or range.

    Always raised before any mutation takes place.
    """


class StateError(LendingError):
    """Raised when an entity is in the wrong status for the operation."""


class MemberEligibilityError(StateError):
    """Raised when a customer is not an active cooperative member."""


class NotFoundError(LendingError):
    """Raised when a referenced loan, payment, penalty, member or product does not exist."""
