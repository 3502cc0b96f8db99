import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from src.core.entities.account import AccountState, AccountUnavailable
from src.core.entities.chain import ChainConfig
from src.core.entities.subscan import (
    SubscanAccount,
    SubscanEnvelope,
    SubscanExtrinsicsPage,
    SubscanTransfersPage,
)
from src.core.errors import (
    MalformedResponseError,
    UpstreamAPIError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamUnavailableError,
)
from src.core.interfaces.datasource import IDataSource
from src.core.use_cases.normalizer import add_amounts, format_minor_units

logger = logging.getLogger(__name__)

TRANSFERS_PATH = "/api/v2/scan/transfers"
EXTRINSICS_PATH = "/api/v2/scan/extrinsics"
ACCOUNT_PATH = "/api/v2/scan/account"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed throttle before every request plus a fixed backoff per failure kind.
    Delays are in seconds.
    """
    throttle: float = 0.25
    max_attempts: int = 3
    backoff: Dict[Union[int, str], float] = field(
        default_factory=lambda: {429: 2.0, "5xx": 1.0, "network": 1.0}
    )

    def delay_for(self, status_code: Optional[int]) -> Optional[float]:
        """Backoff before retrying, or None when the failure is permanent."""
        if status_code is None:
            return self.backoff["network"]
        if status_code == 429:
            return self.backoff[429]
        if status_code >= 500:
            return self.backoff["5xx"]
        return None


class SubscanGateway(IDataSource):
    """
    Implementation of IDataSource for the Subscan indexer API.
    One upstream call per invocation, strictly sequential, throttled and retried
    according to a RetryPolicy.
    """

    def __init__(
        self,
        chain: ChainConfig,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        timeout: float = 30.0,
    ):
        self.chain = chain
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

        # Sent per request so a caller-supplied client is left untouched
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["X-API-Key"] = api_key

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=chain.api_base_url, timeout=timeout)
        logger.info(f"SubscanGateway initialized. Host: {chain.api_host}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _send(self, path: str, payload: dict) -> httpx.Response:
        last_error: Optional[UpstreamError] = None

        for attempt in range(1, self.policy.max_attempts + 1):
            # Global throttle, applied before every request including retries
            await self._sleep(self.policy.throttle)

            try:
                response = await self.client.post(path, json=payload, headers=self.headers)
            except httpx.TransportError as e:
                last_error = UpstreamUnavailableError(f"Network error fetching Subscan: {e}")
                last_error.__cause__ = e
                status = None
            else:
                if response.is_success:
                    return response
                status = response.status_code
                last_error = UpstreamHTTPError(status, self._error_message(response))

            delay = self.policy.delay_for(status)
            if delay is None:
                raise last_error
            if attempt < self.policy.max_attempts:
                logger.warning(
                    f"Subscan {path} failed ({status or 'network'}), "
                    f"attempt {attempt}/{self.policy.max_attempts}. Retrying in {delay}s..."
                )
                await self._sleep(delay)

        logger.error(f"Subscan {path} failed after {self.policy.max_attempts} attempts: {last_error}")
        raise last_error

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                return str(body["message"])
        except ValueError:
            pass
        return response.reason_phrase or response.text[:200]

    async def _post(self, path: str, payload: dict) -> Any:
        """
        Sends the request and unwraps the {code, message, data} envelope.
        Returns the raw `data` payload (possibly None).
        """
        response = await self._send(path, payload)
        try:
            envelope = SubscanEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(f"Unexpected Subscan response from {path}: {e}") from e

        if envelope.code != 0:
            raise UpstreamAPIError(envelope.code, envelope.message)
        return envelope.data

    async def fetch_transfers(self, address: str, page: int, row: int = 100) -> SubscanTransfersPage:
        data = await self._post(TRANSFERS_PATH, {"address": address, "page": page, "row": row})
        try:
            return SubscanTransfersPage.model_validate(data or {})
        except ValidationError as e:
            raise MalformedResponseError(f"Malformed transfers page {page}: {e}") from e

    async def fetch_extrinsics(self, address: str, page: int, row: int = 100) -> SubscanExtrinsicsPage:
        data = await self._post(EXTRINSICS_PATH, {"address": address, "page": page, "row": row})
        try:
            return SubscanExtrinsicsPage.model_validate(data or {})
        except ValidationError as e:
            raise MalformedResponseError(f"Malformed extrinsics page {page}: {e}") from e

    async def get_account(self, address: str) -> Union[AccountState, AccountUnavailable]:
        """
        Fetches current balance state. Never raises on upstream failure:
        balance display is best effort.
        """
        try:
            data = await self._post(ACCOUNT_PATH, {"address": address})
            if not data:
                raise MalformedResponseError("Subscan returned no account data")
            account = SubscanAccount.from_payload(data)
        except (UpstreamError, ValidationError) as e:
            logger.error(f"Failed to fetch account state for {address}: {e}")
            message = e.message if isinstance(e, UpstreamError) else str(e)
            return AccountUnavailable(error=message, address=address)

        decimals = self.chain.decimals
        free = format_minor_units(account.balance, decimals)
        reserved = format_minor_units(account.reserved, decimals)

        return AccountState(
            address=address,
            freeAmount=free,
            reservedAmount=reserved,
            lockedAmount=format_minor_units(account.lock, decimals),
            totalAmount=add_amounts(free, reserved),
        )

