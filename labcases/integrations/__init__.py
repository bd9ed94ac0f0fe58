"""External integrations for the lab case core."""

from .exchange_rate import ExchangeRateClient

__all__ = ["ExchangeRateClient"]
