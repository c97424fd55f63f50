# coding: utf-8
"""
ORB price service (Jupiter Price API v3)

Response shape:
    {"<mint>": {"usdPrice": 0.42, "decimals": 9, ...}, ...}

Any failure surfaces as PriceUnavailableError so callers can apply the
price-floor rule without inspecting HTTP details.
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from config.config import JUPITER_PRICE_URL, ORB_MINT, PRICE_CACHE_TTL, SOL_MINT
from orbbot.core.exceptions import PriceUnavailableError
from orbbot.services.automation.schemas import PriceQuote
from orbbot.utils.formatters import format_usd


# Create standard logger for tenacity
std_logger = logging.getLogger(__name__)


class PriceService:
    """
    ORB/USD and ORB/SOL quotes

    Features:
    - Automatic retries on network failures
    - Short in-process cache shared by all loops
    """

    def __init__(
        self,
        base_url: str = JUPITER_PRICE_URL,
        orb_mint: str = ORB_MINT,
        sol_mint: str = SOL_MINT,
        cache_ttl: int = PRICE_CACHE_TTL,
    ):
        self.base_url = base_url
        self.orb_mint = orb_mint
        self.sol_mint = sol_mint
        self.cache_ttl = cache_ttl
        self._cached: Optional[PriceQuote] = None
        self._cached_at: float = 0.0

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientError, TimeoutError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        before_sleep=before_sleep_log(std_logger, logging.WARNING),
        reraise=True,
    )
    async def _fetch_prices(self) -> Dict[str, Any]:
        params = {"ids": f"{self.orb_mint},{self.sol_mint}"}
        timeout = aiohttp.ClientTimeout(total=10)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(self.base_url, params=params) as response:
                response.raise_for_status()
                return await response.json()

    @staticmethod
    def _usd(data: Dict[str, Any], mint: str) -> Decimal:
        entry = data.get(mint) or {}
        try:
            value = Decimal(str(entry["usdPrice"]))
        except (KeyError, InvalidOperation, TypeError) as e:
            raise PriceUnavailableError(f"No USD price for {mint}") from e
        if value <= 0:
            raise PriceUnavailableError(f"Non-positive USD price for {mint}")
        return value

    async def get_price(self) -> PriceQuote:
        """
        Current ORB price

        Returns:
            PriceQuote with ORB price in USD and in SOL

        Raises:
            PriceUnavailableError: API unreachable or response unusable
        """
        now = time.monotonic()
        if self._cached is not None and now - self._cached_at < self.cache_ttl:
            return self._cached

        try:
            data = await self._fetch_prices()
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.warning(f"Price API request failed: {e}")
            raise PriceUnavailableError(str(e)) from e

        orb_usd = self._usd(data, self.orb_mint)
        sol_usd = self._usd(data, self.sol_mint)
        quote = PriceQuote(usd=orb_usd, native_ratio=orb_usd / sol_usd)

        self._cached = quote
        self._cached_at = now
        logger.debug(f"ORB price: {format_usd(orb_usd)} ({quote.native_ratio:.8f} SOL)")
        return quote

    def clear_cache(self) -> None:
        self._cached = None
        self._cached_at = 0.0
