"""Global constants for the tidyly application."""

# Collection names
USERS_COLLECTION = "users"
ROOMS_COLLECTION = "rooms"
FRIEND_REQUESTS_COLLECTION = "friendRequests"
ROOM_JOIN_REQUESTS_COLLECTION = "roomJoinRequests"
TASKS_COLLECTION = "tasks"

# Shareable codes
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
FRIEND_CODE_LENGTH = 8
INVITE_CODE_LENGTH = 6
CODE_MAX_ATTEMPTS = 5

# Request statuses
STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"

# Firestore limits
FIRESTORE_IN_QUERY_LIMIT = 10

DEFAULT_DISPLAY_NAME = "User"
