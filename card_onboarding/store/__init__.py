"""Persistence for onboarding aggregates."""

from card_onboarding.store.customers import CustomerStore

__all__ = ["CustomerStore"]
