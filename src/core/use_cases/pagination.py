import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel

from src.core.entities.chain import ChainConfig
from src.core.entities.cursor import Cursor, Phase
from src.core.entities.tax_event import TaxEvent
from src.core.errors import InvalidRequestError, PaginationFailed, UpstreamError
from src.core.interfaces.datasource import IDataSource
from src.core.use_cases.normalizer import normalize_extrinsic, normalize_transfer

logger = logging.getLogger(__name__)

VALUE_PHASES = (Phase.TRANSFERS,)
COMPOSITE_PHASES = (Phase.TRANSFERS, Phase.EXTRINSICS)


class CancellationToken:
    """Cooperative cancellation flag, checked once per page."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class CollectStatus(str, Enum):
    COMPLETE = "complete"
    TRUNCATED = "truncated"  # page cap reached
    CANCELLED = "cancelled"


class PageResult(BaseModel):
    events: List[TaxEvent]
    nextCursor: Optional[str] = None
    fetched: int = 0  # raw rows returned upstream, before filtering


class CollectResult(BaseModel):
    status: CollectStatus
    events: List[TaxEvent]
    pages: int
    nextCursor: Optional[str] = None


ProgressCallback = Callable[[int, int, Optional[str]], None]


class TransactionPager:
    """
    Drives fetch + normalise one page at a time.

    `step` performs exactly one page and returns the cursor to resume from;
    `collect` loops over `step` until the cursor runs out, the page cap is
    hit or the caller cancels.
    """

    def __init__(
        self,
        datasource: IDataSource,
        chain: ChainConfig,
        row: int = 50,
        phases: Sequence[Phase] = VALUE_PHASES,
        successful_only: bool = True,
    ):
        self.datasource = datasource
        self.chain = chain
        self.row = row
        self.phases = tuple(phases)
        self.successful_only = successful_only

    def _advance(self, cursor: Cursor, fetched: int) -> Optional[Cursor]:
        # A full page means more may remain; a short page exhausts the phase.
        if fetched >= self.row:
            return cursor.next_page()
        index = self.phases.index(cursor.phase)
        if index + 1 < len(self.phases):
            return Cursor(phase=self.phases[index + 1], page=0)
        return None

    async def step(self, address: str, cursor: Optional[Cursor] = None) -> PageResult:
        cursor = cursor or Cursor(phase=self.phases[0], page=0)
        if cursor.phase not in self.phases:
            raise InvalidRequestError("Invalid cursor phase")

        if cursor.phase == Phase.TRANSFERS:
            data = await self.datasource.fetch_transfers(address, cursor.page, self.row)
            records = data.transfers
            normalize = normalize_transfer
        else:
            data = await self.datasource.fetch_extrinsics(address, cursor.page, self.row)
            records = data.extrinsics
            normalize = normalize_extrinsic

        if self.successful_only:
            kept = [r for r in records if r.success]
        else:
            kept = records
        events = [normalize(r, address, self.chain) for r in kept]

        next_cursor = self._advance(cursor, len(records))
        logger.debug(
            f"{address} {cursor}: {len(records)} rows, {len(events)} events, next={next_cursor}"
        )
        return PageResult(
            events=events,
            nextCursor=next_cursor.serialize() if next_cursor else None,
            fetched=len(records),
        )

    async def collect(
        self,
        address: str,
        cursor: Optional[str] = None,
        max_pages: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CollectResult:
        """
        Fetches pages sequentially until no cursor remains.

        Reaching `max_pages` truncates silently. A cancelled token stops the
        loop between pages. Upstream failures raise PaginationFailed with the
        events gathered so far.
        """
        current: Optional[str] = cursor or Cursor(phase=self.phases[0]).serialize()
        events: List[TaxEvent] = []
        pages = 0

        while current is not None:
            if cancel is not None and cancel.cancelled:
                logger.info(f"Collection for {address} cancelled at {current}")
                return CollectResult(
                    status=CollectStatus.CANCELLED, events=events, pages=pages, nextCursor=current
                )
            if max_pages is not None and pages >= max_pages:
                logger.info(f"Page cap ({max_pages}) reached for {address}, truncating")
                return CollectResult(
                    status=CollectStatus.TRUNCATED, events=events, pages=pages, nextCursor=current
                )

            try:
                result = await self.step(address, Cursor.parse(current))
            except UpstreamError as e:
                logger.error(f"Paging aborted for {address} at {current}: {e}")
                raise PaginationFailed(e, events, current) from e

            events.extend(result.events)
            pages += 1
            current = result.nextCursor
            if on_progress is not None:
                on_progress(pages, len(events), current)

        return CollectResult(status=CollectStatus.COMPLETE, events=events, pages=pages)
