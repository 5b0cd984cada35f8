"""
Application-wide constants for the commitment penalty engine.
"""

# Target growth
SANE_FREEZE_THRESHOLD_DAYS = 448  # After this many days sane mode grows weekly
SANE_WEEKLY_STEP_DAYS = 7
REST_DAY_MULTIPLIER = 2
RECOVERY_DAY_TARGET_FACTOR = 0.25  # Group recovery weekday: quarter target

# Point aggregation
RECOVERY_CAP_FACTOR = 0.25  # Recovery exercises count for at most 25% of target
RECOVERY_DAY_TARGET_MINUTES = 15  # Fixed target when a member activates a recovery day

# Flex rest day: prior day must reach this multiple of its own target
FLEX_REST_MULTIPLIER = 2

# Week modes
WEEK_MODE_SANE = "sane"
WEEK_MODE_INSANE = "insane"

# Exercise categories
EXERCISE_TYPE_REGULAR = "regular"
EXERCISE_TYPE_RECOVERY = "recovery"

# Weekdays (Sunday = 0 ... Saturday = 6)
MONDAY = 1

# Penalty lifecycle
PENALTY_STATUS_PENDING = "pending"
PENALTY_STATUS_ACCEPTED = "accepted"
PENALTY_STATUS_DISPUTED = "disputed"
PENALTY_DEADLINE_HOURS = 24
DEFAULT_PENALTY_AMOUNT = 10

PENALTY_ACTION_ACCEPT = "accept"
PENALTY_ACTION_DISPUTE = "dispute"

REASON_CATEGORIES = ("sick", "work", "family", "training_rest", "other")
REASON_LABELS = {
    "sick": "Sick",
    "work": "Work Emergency",
    "family": "Family Situation",
    "training_rest": "Training Rest",
    "other": "Other",
}

TRANSACTION_TYPE_PENALTY = "penalty"

# Outcome reasons surfaced to the app
REASON_SICK = "sick mode"
REASON_REST_DAY = "rest day"
REASON_RECOVERY_COMPLETE = "recovery day complete"
REASON_MET_TARGET = "met target"
REASON_FLEX_REST = "flex rest qualified"

# Chat
MESSAGE_TYPE_TEXT = "text"

# Push notifications
PENALTY_NOTIFICATION_TITLE = "Penalty Alert ⚠️"
PENALTY_NOTIFICATION_ICON = "/icon-192x192.png"
PENALTY_NOTIFICATION_TAG = "penalty"
PENALTY_NOTIFICATION_URL = "/dashboard"
PUSH_TTL_SECONDS = 3600

# Logging
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/commitment"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

# Scheduler
DEFAULT_DAILY_RECAP_TIME = "00:05"

# CORS
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
