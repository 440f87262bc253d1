"""Onboarding flow: validation, step states, invitation codes and the state machine."""
