"""Custom exception classes for patrimony."""

import enum


class QuoteFailure(str, enum.Enum):
    """Reason a price could not be resolved (or was resolved knowingly degraded)."""

    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    NETWORK_ERROR = "network_error"
    STALE_FALLBACK = "stale_fallback"


class PatrimonyError(Exception):
    """Base exception for all patrimony errors."""

    def __init__(self, message: str):
        """Initialize with error message."""
        self.message = message
        super().__init__(message)


class APIError(PatrimonyError):
    """Failures talking to external price providers."""


class QuoteSourceError(APIError):
    """A quote provider could not produce a price.

    Attributes:
        source: Name of the provider that failed
        reason: Typed failure reason
    """

    reason = QuoteFailure.NETWORK_ERROR

    def __init__(self, source: str, details: str = ""):
        """
        Initialize quote source error.

        Args:
            source: Name of the provider
            details: Additional error details
        """
        self.source = source
        message = f"{source}: {self.reason.value}"
        if details:
            message += f" ({details})"
        super().__init__(message)


class QuoteNotFoundError(QuoteSourceError):
    """Symbol unresolvable by the provider."""

    reason = QuoteFailure.NOT_FOUND


class QuoteRateLimitError(QuoteSourceError):
    """Provider rate limit exceeded."""

    reason = QuoteFailure.RATE_LIMITED


class QuoteForbiddenError(QuoteSourceError):
    """Provider denied access (plan restriction, bad credential)."""

    reason = QuoteFailure.FORBIDDEN


class QuoteNetworkError(QuoteSourceError):
    """Transport failure, including an exhausted relay chain."""

    reason = QuoteFailure.NETWORK_ERROR


class DataError(PatrimonyError):
    """Holdings or rate data that cannot be used as given."""


class InvalidCurrencyError(DataError):
    """Currency code or exchange rate rejected by the rate table."""

    def __init__(self, currency: str, reason: str = ""):
        """
        Args:
            currency: Offending currency code
            reason: Why it was rejected (default: not a 3-letter code)
        """
        self.currency = currency
        detail = reason or "expected a 3-letter code such as EUR"
        super().__init__(f"Unusable currency '{currency}': {detail}")


class HoldingsFileError(DataError):
    """Holdings snapshot could not be read or validated."""

    def __init__(self, path: str, details: str = ""):
        """
        Args:
            path: Path of the holdings snapshot
            details: What went wrong
        """
        self.path = path
        message = f"Cannot load holdings from {path}"
        if details:
            message += f": {details}"
        super().__init__(message)


class ConfigurationError(PatrimonyError):
    """Settings missing or inconsistent."""


class MissingAPIKeyError(ConfigurationError):
    """A feature needs a provider credential that is not set."""

    def __init__(self, provider: str, env_var: str):
        self.provider = provider
        self.env_var = env_var
        super().__init__(f"{provider} API key not configured (set {env_var} or pass --api-key)")


def format_error_message(error: Exception) -> str:
    """Message shown to CLI users: ours verbatim, others prefixed with their type."""
    if isinstance(error, PatrimonyError):
        return error.message
    return f"{type(error).__name__}: {error}"


def get_error_color(error: Exception) -> str:
    """
    Rich color for displaying an error.

    Rate limits yellow, configuration orange, other provider failures
    magenta, everything else red.
    """
    if isinstance(error, QuoteRateLimitError):
        return "yellow"
    if isinstance(error, ConfigurationError):
        return "dark_orange"
    if isinstance(error, APIError):
        return "magenta"
    return "red"
