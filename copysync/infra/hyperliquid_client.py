"""Hyperliquid REST API client for account state and order placement.

Provides async access to the public ``/info`` endpoint (clearinghouse
state, asset metadata, mid prices) and the signed ``/exchange`` endpoint
with retry logic, rate limiting, and error handling.

Request signing needs the account's private key, which this package
never stores. Callers that trade live pass a ``signer`` callable that
returns the signature for an action and nonce.

Usage:
    client = HyperliquidClient()  # Mainnet by default
    state = await client.clearinghouse_state("0xabc...")
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from copysync.exceptions import AdapterError

logger = structlog.get_logger()

ActionSigner = Callable[[dict[str, Any], int], Awaitable[dict[str, Any]]]


class HyperliquidClient:
    """Async HTTP client for the Hyperliquid REST API.

    Handles rate limiting, retries, and error mapping. Every failure
    surfaces as AdapterError.
    """

    MAINNET_URL = "https://api.hyperliquid.xyz"
    TESTNET_URL = "https://api.hyperliquid-testnet.xyz"
    DEFAULT_TIMEOUT = 15.0
    MAX_RETRIES = 3
    RETRY_BACKOFF_BASE = 1.0  # seconds

    def __init__(
        self,
        testnet: bool = False,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        signer: ActionSigner | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Hyperliquid client.

        Args:
            testnet: Use the testnet API instead of mainnet.
            base_url: Override base URL (useful for testing).
            timeout: Request timeout in seconds.
            signer: Async callable producing ``{"r", "s", "v"}`` for an
                action and nonce. Without it the client is read-only.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._testnet = testnet
        self._base_url = base_url or (self.TESTNET_URL if testnet else self.MAINNET_URL)
        self._timeout = timeout
        self._signer = signer
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def can_sign(self) -> bool:
        return self._signer is not None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, path: str, body: dict[str, Any]) -> Any:
        """POST a JSON body with retry logic and error handling.

        Args:
            path: API endpoint path (``/info`` or ``/exchange``).
            body: JSON request body.

        Returns:
            Parsed JSON response (dict or list).

        Raises:
            AdapterError: On HTTP errors, timeouts or unparseable responses.
        """
        client = await self._get_client()
        last_error: Exception | None = None

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.debug(
                    "hyperliquid_request",
                    path=path,
                    type=body.get("type") or body.get("action", {}).get("type"),
                    attempt=attempt + 1,
                    testnet=self._testnet,
                )

                response = await client.post(path, json=body)

                if response.status_code == 429:
                    wait = self.RETRY_BACKOFF_BASE * (2 ** attempt)
                    logger.debug(
                        "hyperliquid_rate_limited",
                        path=path,
                        wait_seconds=wait,
                        attempt=attempt + 1,
                    )
                    last_error = AdapterError(
                        message="Hyperliquid rate limit exceeded",
                        service="hyperliquid",
                        status_code=429,
                    )
                    await asyncio.sleep(wait)
                    continue

                if response.status_code >= 500:
                    last_error = AdapterError(
                        message=f"Hyperliquid API returned {response.status_code}",
                        service="hyperliquid",
                        status_code=response.status_code,
                    )
                    if attempt < self.MAX_RETRIES - 1:
                        await asyncio.sleep(self.RETRY_BACKOFF_BASE * (2 ** attempt))
                        continue
                    raise last_error

                if response.status_code != 200:
                    raise AdapterError(
                        message=(
                            f"Hyperliquid API returned {response.status_code}: "
                            f"{response.text[:200]}"
                        ),
                        service="hyperliquid",
                        status_code=response.status_code,
                    )

                try:
                    data = response.json()
                except ValueError as e:
                    raise AdapterError(
                        message=f"Hyperliquid returned non-JSON body: {e}",
                        service="hyperliquid",
                        status_code=response.status_code,
                    ) from e

                logger.debug("hyperliquid_success", path=path, status=response.status_code)
                return data

            except httpx.TimeoutException as e:
                last_error = AdapterError(
                    message=f"Hyperliquid API timeout on attempt {attempt + 1}: {e}",
                    service="hyperliquid",
                )
                logger.debug(
                    "hyperliquid_timeout",
                    path=path,
                    attempt=attempt + 1,
                    error=str(e),
                )
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_BACKOFF_BASE * (2 ** attempt))
                    continue

            except httpx.HTTPError as e:
                last_error = AdapterError(
                    message=f"Hyperliquid API HTTP error: {e}",
                    service="hyperliquid",
                )
                logger.debug(
                    "hyperliquid_http_error",
                    path=path,
                    attempt=attempt + 1,
                    error=str(e),
                )
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_BACKOFF_BASE * (2 ** attempt))
                    continue

        raise last_error or AdapterError(
            message="Hyperliquid API request failed after all retries",
            service="hyperliquid",
        )

    async def _info(self, body: dict[str, Any]) -> Any:
        return await self._request("/info", body)

    # Account state
    async def clearinghouse_state(self, user: str) -> dict[str, Any]:
        """Fetch positions and margin summary for an account.

        Args:
            user: Account address.

        Returns:
            Dict with ``assetPositions``, ``marginSummary``, ``withdrawable``.
        """
        data = await self._info({"type": "clearinghouseState", "user": user})
        if not isinstance(data, dict):
            raise AdapterError(
                message=f"Expected dict clearinghouse state, got {type(data).__name__}",
                service="hyperliquid",
            )
        return data

    # Market metadata
    async def meta(self) -> dict[str, Any]:
        """Fetch perpetuals metadata (``universe`` with ``name``, ``szDecimals``)."""
        data = await self._info({"type": "meta"})
        if not isinstance(data, dict) or "universe" not in data:
            raise AdapterError(
                message="Hyperliquid meta response missing universe",
                service="hyperliquid",
            )
        return data

    async def all_mids(self) -> dict[str, str]:
        """Fetch mid prices keyed by coin."""
        data = await self._info({"type": "allMids"})
        if not isinstance(data, dict):
            raise AdapterError(
                message=f"Expected dict of mids, got {type(data).__name__}",
                service="hyperliquid",
            )
        return data

    # Trading
    async def exchange(self, action: dict[str, Any]) -> dict[str, Any]:
        """Sign and submit an action to the ``/exchange`` endpoint.

        Args:
            action: Exchange action (``order``, ``cancel``, ...).

        Returns:
            Response dict with ``status`` and ``response``.

        Raises:
            AdapterError: If no signer is configured or the venue rejects it.
        """
        if self._signer is None:
            raise AdapterError(
                message="Hyperliquid client has no signer; account is read-only",
                service="hyperliquid",
            )

        nonce = int(time.time() * 1000)
        signature = await self._signer(action, nonce)
        data = await self._request(
            "/exchange",
            {"action": action, "nonce": nonce, "signature": signature},
        )
        if not isinstance(data, dict) or data.get("status") != "ok":
            raise AdapterError(
                message=f"Hyperliquid rejected action: {str(data)[:200]}",
                service="hyperliquid",
            )
        return data
