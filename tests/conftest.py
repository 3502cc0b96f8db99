"""
Pytest configuration and shared fixtures.
"""
import pytest
from httpx import AsyncClient, ASGITransport
from typing import List, Optional, Tuple

from src.api.main import app, get_datasource_factory, get_export_max_pages
from src.core.entities.account import AccountState, AccountUnavailable
from src.core.entities.chain import SUPPORTED_CHAINS
from src.core.entities.subscan import SubscanExtrinsicsPage, SubscanTransfersPage
from src.core.errors import UpstreamError
from src.core.interfaces.datasource import IDataSource
from src.infrastructure.cache.balance_cache import BalanceCache

WALLET = "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"
OTHER = "14E5nqKAp3oAJcmzgZhUD2RcptBeUBScxKHgJKU4HPNcKVf3"
THIRD = "13UVJyLnbVp9RBZYFwFGyDvVd1y27Tt8tkntv6Q7JVPhFsTB"

POLKADOT = SUPPORTED_CHAINS["polkadot"]


def make_transfer(**overrides) -> dict:
    raw = {
        "from": OTHER,
        "to": WALLET,
        "amount": "10000000000",
        "fee": "150000000",
        "success": True,
        "hash": "0xaaa",
        "block_num": 19000000,
        "block_timestamp": 1704067200,  # 2024-01-01 00:00:00 UTC
        "module": "balances",
        "extrinsic_index": "19000000-2",
        "event_id": "Transfer",
        "asset_symbol": "DOT",
    }
    raw.update(overrides)
    return raw


def make_extrinsic(**overrides) -> dict:
    raw = {
        "extrinsic_hash": "0xeee",
        "extrinsic_index": "19000001-1",
        "call_module": "staking",
        "call_module_function": "bond",
        "fee": "160000000",
        "success": True,
        "block_num": 19000001,
        "block_timestamp": 1704153600,  # 2024-01-02 00:00:00 UTC
    }
    raw.update(overrides)
    return raw


class FakeDataSource(IDataSource):
    """
    In-memory IDataSource serving pre-baked pages and recording every call.
    """

    def __init__(
        self,
        transfers: Optional[List[List[dict]]] = None,
        extrinsics: Optional[List[List[dict]]] = None,
        account=None,
        errors: Optional[dict] = None,
    ):
        self.transfers = transfers or []
        self.extrinsics = extrinsics or []
        self.account = account
        self.errors = errors or {}  # (phase, page) -> UpstreamError
        self.calls: List[Tuple[str, int, int]] = []
        self.closed = False

    def _maybe_fail(self, phase: str, page: int):
        error = self.errors.get((phase, page))
        if error is not None:
            raise error

    async def fetch_transfers(self, address: str, page: int, row: int = 100) -> SubscanTransfersPage:
        self.calls.append(("transfers", page, row))
        self._maybe_fail("transfers", page)
        rows = self.transfers[page] if page < len(self.transfers) else []
        return SubscanTransfersPage.model_validate({"count": len(rows), "transfers": rows})

    async def fetch_extrinsics(self, address: str, page: int, row: int = 100) -> SubscanExtrinsicsPage:
        self.calls.append(("extrinsics", page, row))
        self._maybe_fail("extrinsics", page)
        rows = self.extrinsics[page] if page < len(self.extrinsics) else []
        return SubscanExtrinsicsPage.model_validate({"count": len(rows), "extrinsics": rows})

    async def get_account(self, address: str):
        self.calls.append(("account", 0, 0))
        if isinstance(self.account, UpstreamError):
            return AccountUnavailable(error=self.account.message, address=address)
        return self.account or AccountState(
            address=address,
            freeAmount="1.5",
            reservedAmount="0.5",
            lockedAmount="0",
            totalAmount="2",
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def datasource():
    return FakeDataSource()


@pytest.fixture
async def client(datasource):
    """Async HTTP client for testing FastAPI endpoints, wired to the fake data source."""
    app.dependency_overrides[get_datasource_factory] = lambda: (lambda chain: datasource)
    app.dependency_overrides[get_export_max_pages] = lambda: 5
    app.state.balance_cache = BalanceCache(ttl_seconds=30)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
