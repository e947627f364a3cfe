"""
Security constants shared across the login components.
"""

# Longest username (in UTF-8 bytes) accepted before credentials are checked
MAX_USERNAME_LENGTH = 4096

# Session key holding the last submitted username (used to refill the form)
LAST_USERNAME = "_security.last_username"

# Session key holding the last authentication error message
AUTHENTICATION_ERROR = "_security.last_error"

# Session key prefix for the stored token of a provider key
TOKEN_SESSION_PREFIX = "_security_"
