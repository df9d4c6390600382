"""Custom exceptions for the ABR selection core."""


class ABRError(Exception):
    """Base exception for all ABR selection errors."""

    pass


class ConfigurationError(ABRError):
    """Unusable ladder, unknown video, or malformed checkpoint table."""

    pass


class InferenceError(ABRError):
    """Error while scoring a state window with the policy model."""

    pass


class ChunkSizeError(ABRError):
    """Error reading persisted chunk-size tables."""

    pass


class SessionNotFoundError(ABRError):
    """Unknown selection session identifier."""

    pass
