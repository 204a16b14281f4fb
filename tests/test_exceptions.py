"""Tests for custom exception hierarchy."""

from card_onboarding.exceptions import (
    ConcurrencyConflictError,
    ConfigurationError,
    CustomerNotFoundError,
    DuplicateEntityError,
    EntityNotFoundError,
    EventValidationError,
    IssuanceError,
    NotEligibleError,
    OnboardingError,
    PublishError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_onboarding_error_is_exception(self) -> None:
        assert isinstance(OnboardingError("test"), Exception)

    def test_event_validation_is_validation_error(self) -> None:
        err = EventValidationError("bad payload")
        assert isinstance(err, ValidationError)
        assert isinstance(err, OnboardingError)

    def test_customer_not_found_is_entity_not_found(self) -> None:
        err = CustomerNotFoundError("test")
        assert isinstance(err, EntityNotFoundError)
        assert isinstance(err, OnboardingError)

    def test_duplicate_and_conflict_are_onboarding_errors(self) -> None:
        assert isinstance(DuplicateEntityError("test"), OnboardingError)
        assert isinstance(ConcurrencyConflictError("test"), OnboardingError)

    def test_configuration_error_is_onboarding_error(self) -> None:
        assert isinstance(ConfigurationError("test"), OnboardingError)

    def test_issuance_errors(self) -> None:
        assert isinstance(NotEligibleError("test"), IssuanceError)
        assert isinstance(PublishError("test"), IssuanceError)
        assert isinstance(IssuanceError("test"), OnboardingError)


class TestValidationError:
    """Tests for ValidationError error collection."""

    def test_single_message(self) -> None:
        err = ValidationError("name is required")

        assert err.errors == ["name is required"]
        assert str(err) == "name is required"

    def test_message_list(self) -> None:
        err = ValidationError(["name is required", "email is invalid"])

        assert err.errors == ["name is required", "email is invalid"]
        assert str(err) == "name is required; email is invalid"


class TestIssuanceReasons:
    """Machine-readable reason codes."""

    def test_reason_codes(self) -> None:
        assert IssuanceError("x").reason == "issuance_error"
        assert NotEligibleError("x").reason == "not_eligible"
        assert PublishError("x").reason == "transport_failure"

    def test_exception_message(self) -> None:
        err = NotEligibleError("Customer is inactive")
        assert str(err) == "Customer is inactive"
