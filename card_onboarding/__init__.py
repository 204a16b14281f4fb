"""Credit eligibility and card issuance choreography for customer onboarding."""

__version__ = "0.1.0"
