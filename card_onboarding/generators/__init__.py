"""Synthetic data generators."""

from card_onboarding.generators.profile import ProfileGenerator, register_generated_customers

__all__ = ["ProfileGenerator", "register_generated_customers"]
