"""Exception hierarchy for Budget Pal."""

from typing import Optional


class BudgetPalError(Exception):
    """Base exception for Budget Pal."""
    pass


class ConfigurationError(BudgetPalError):
    """A required credential or address is missing."""
    pass


class UpstreamFetchError(BudgetPalError):
    """The bank aggregator call failed (network, auth, rate-limit)."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)


class CalculationError(BudgetPalError):
    """Transaction data could not be parsed."""
    pass


class ProviderError(BudgetPalError):
    """
    Raw failure reported by the messaging provider.

    Carries the provider's numeric code and message so the notifier
    can classify it without knowing the provider's exception types.
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        status: Optional[int] = None,
    ):
        self.code = code
        self.status = status
        self.provider_message = message
        super().__init__(message if code is None else f"[{code}] {message}")


class DeliveryError(BudgetPalError):
    """Base class for classified delivery failures."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.source = source
        self.destination = destination
        self.cause = cause
        super().__init__(message)


class RetryableInvalidAddress(DeliveryError):
    """The provider rejected the address format; try the next variant."""
    pass


class FatalDeliveryError(DeliveryError):
    """Any other delivery failure; remaining variants are not tried."""
    pass


class JobTimeoutError(BudgetPalError):
    """A job run exceeded its configured deadline."""
    pass
