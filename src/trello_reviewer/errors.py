"""Custom exception types for the Trello reviewer."""


class ReviewerError(Exception):
    """Base exception for all recoverable reviewer errors."""


class ConfigurationError(ReviewerError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(ReviewerError):
    """Raised when Trello credentials are unavailable."""


class ApiError(ReviewerError):
    """Raised when a Trello API request fails or returns an unexpected response."""


class PayloadError(ReviewerError):
    """Raised when an inbound webhook payload lacks required fields."""


class CardNotFoundError(ReviewerError):
    """Raised when no cached card matches a title or identifier."""
