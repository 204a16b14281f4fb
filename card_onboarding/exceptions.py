"""Custom exception hierarchy for card-onboarding."""


class OnboardingError(Exception):
    """Base exception for all card-onboarding errors."""


class ValidationError(OnboardingError):
    """Raised when input fails domain validation.

    Carries every collected problem in ``errors`` so callers can report
    the full set at once.
    """

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class EventValidationError(ValidationError):
    """Raised when an inbound integration event payload is malformed."""


class EntityNotFoundError(OnboardingError):
    """Raised when a referenced entity does not exist."""


class CustomerNotFoundError(EntityNotFoundError):
    """Raised when a customer id is unknown."""


class DuplicateEntityError(OnboardingError):
    """Raised when an entity with the same identity is already stored."""


class ConcurrencyConflictError(OnboardingError):
    """Raised when a conditional update finds a newer stored version."""


class IssuanceError(OnboardingError):
    """Base for card issuance request failures.

    ``reason`` is a machine-readable code for the caller.
    """

    reason = "issuance_error"


class NotEligibleError(IssuanceError):
    """Raised when the customer does not pass the issuance gate."""

    reason = "not_eligible"


class PublishError(IssuanceError):
    """Raised when a user-triggered publish could not reach the broker."""

    reason = "transport_failure"


class ConfigurationError(OnboardingError):
    """Raised when configuration is invalid or missing."""
