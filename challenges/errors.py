class ChallengeError(Exception):
    """Base class for errors raised by the challenge engine."""


class AuthenticationError(ChallengeError):
    """No authenticated user is attached to the operation."""

    def __init__(self, message="Authentication required"):
        super().__init__(message)


class ValidationError(ChallengeError):
    """Malformed input the user can correct and resubmit."""


class StorageError(ChallengeError):
    """The data store rejected or failed a write."""
