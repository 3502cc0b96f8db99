from abc import ABC, abstractmethod
from typing import Union

from src.core.entities.account import AccountState, AccountUnavailable
from src.core.entities.subscan import SubscanExtrinsicsPage, SubscanTransfersPage


class IDataSource(ABC):
    @abstractmethod
    async def fetch_transfers(self, address: str, page: int, row: int = 100) -> SubscanTransfersPage:
        pass

    @abstractmethod
    async def fetch_extrinsics(self, address: str, page: int, row: int = 100) -> SubscanExtrinsicsPage:
        pass

    @abstractmethod
    async def get_account(self, address: str) -> Union[AccountState, AccountUnavailable]:
        """
        Best effort: implementations return AccountUnavailable instead of raising.
        """
        pass

    async def aclose(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
