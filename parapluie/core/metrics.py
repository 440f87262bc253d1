"""Application metrics."""

from prometheus_client import Counter

# Onboarding flow metrics
onboarding_steps_completed = Counter(
    "onboarding_steps_completed_total",
    "Total number of onboarding steps completed",
    ["step"],
)

onboarding_completed = Counter(
    "onboarding_completed_total",
    "Total number of onboarding flows completed",
    ["trusted_contact"],
)

# Backend write metrics
profile_insert_attempts = Counter(
    "profile_insert_attempts_total",
    "Total number of profile insert attempts",
    ["result"],
)

auxiliary_write_failures = Counter(
    "auxiliary_write_failures_total",
    "Total number of swallowed auxiliary write failures",
    ["table"],
)

# Invitation metrics
invitation_codes_generated = Counter(
    "invitation_codes_generated_total",
    "Total number of invitation codes generated",
)

invitation_code_exhausted = Counter(
    "invitation_code_exhausted_total",
    "Total number of invitation code generations that ran out of attempts",
)

invitations_created = Counter(
    "invitations_created_total",
    "Total number of trusted-contact invitations created",
)
