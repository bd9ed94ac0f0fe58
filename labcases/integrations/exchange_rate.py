"""
Exchange rate provider client.

Fetches the current VES per USD rate, used to snapshot a rate onto a
record created without one.
"""

import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import get_settings
from ..exceptions import ExchangeRateError
from ..models.enums import Currency

logger = structlog.get_logger()


def _is_transient(error: BaseException) -> bool:
    """Timeouts, connection errors and 5xx responses are worth retrying."""
    return isinstance(error, ExchangeRateError) and (
        error.status_code == 0 or error.status_code >= 500
    )


class ExchangeRateClient:
    """
    Client for an open exchange rate API.
    GETs <base_url>/USD and reads rates.VES.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache_seconds: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = get_settings()
        self.base_url = (base_url or self.settings.exchange_rate_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else self.settings.exchange_rate_timeout_seconds
        self.cache_seconds = (
            cache_seconds if cache_seconds is not None
            else self.settings.exchange_rate_cache_seconds
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._cached_rate: Optional[Decimal] = None
        self._cached_at: float = 0.0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _request(self, endpoint: str) -> Dict[str, Any]:
        """GET an endpoint of the rate API and decode its JSON body."""
        client = await self._get_client()

        try:
            response = await client.get(endpoint)
        except httpx.TimeoutException:
            raise ExchangeRateError("Exchange rate request timeout")
        except httpx.RequestError as e:
            raise ExchangeRateError(f"Exchange rate request error: {str(e)}")

        if response.status_code >= 400:
            raise ExchangeRateError(
                f"Exchange rate API error: {response.status_code}",
                status_code=response.status_code,
                details=response.text,
            )

        try:
            return response.json()
        except ValueError:
            raise ExchangeRateError(
                "Exchange rate API returned invalid JSON",
                status_code=response.status_code,
            )

    async def get_rate(self, force_refresh: bool = False) -> Decimal:
        """
        Current rate in local currency per USD.

        Returns:
            Strictly positive rate, cached for cache_seconds

        Raises:
            ExchangeRateError: provider failure or unusable payload
        """
        now = time.monotonic()
        if (
            not force_refresh
            and self._cached_rate is not None
            and now - self._cached_at < self.cache_seconds
        ):
            return self._cached_rate

        data = await self._request(f"/{Currency.USD.value}")
        rate = _extract_rate(data)

        self._cached_rate = rate
        self._cached_at = now
        logger.info("Exchange rate fetched", rate=str(rate))
        return rate


def _extract_rate(data: Any) -> Decimal:
    try:
        raw = data["rates"][Currency.VES.value]
        rate = Decimal(str(raw))
    except (KeyError, TypeError, InvalidOperation):
        raise ExchangeRateError(
            "Exchange rate payload has no VES rate",
            details=data if isinstance(data, dict) else None,
        )

    if not rate.is_finite() or rate <= 0:
        raise ExchangeRateError(
            f"Exchange rate must be greater than zero: {rate}",
            details={"rate": str(rate)},
        )
    return rate
