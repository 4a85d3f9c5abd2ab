"""Global constants for the stepladder application."""

# Database-related constants
FIRESTORE_BATCH_LIMIT = 400

# Collection names
GROUPS_COLLECTION = "groups"
MEMBERSHIPS_COLLECTION = "groupMemberships"
JOIN_CODES_COLLECTION = "joinCodes"
USERS_COLLECTION = "users"
STEP_ENTRIES_COLLECTION = "stepEntries"

# Group-related constants
MIN_GROUP_NAME_LENGTH = 2
MAX_GROUP_NAME_LENGTH = 50
JOIN_CODE_LENGTH = 8
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_MAX_ATTEMPTS = 5

# Search and listing
PUBLIC_GROUPS_LIMIT = 20
MAX_SEARCH_LIMIT = 100

# Leaderboard-related constants
LEADERBOARD_MAX_WORKERS = 8
UNKNOWN_DISPLAY_NAME = "Unknown"
