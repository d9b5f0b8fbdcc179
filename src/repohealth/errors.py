"""Custom exception types for the repository health analytics tool."""


class RepoHealthError(Exception):
    """Base exception for all recoverable repository health errors."""


class ConfigurationError(RepoHealthError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(RepoHealthError):
    """Raised when GitHub credentials are unavailable or rejected."""


class ApiError(RepoHealthError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class RateLimitError(ApiError):
    """Raised when GitHub keeps rejecting requests because the rate limit is exhausted."""


class DataValidationError(RepoHealthError):
    """Raised when API payloads are missing fields the analyzers depend on."""
