import logging
import os
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Union

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

# --- Imports ---
from src.core.entities.account import AccountState, AccountUnavailable
from src.core.entities.chain import SUPPORTED_CHAINS, ChainConfig, resolve_chain, validate_address
from src.core.entities.cursor import Cursor
from src.core.entities.tax_event import TransactionsPage
from src.core.errors import InvalidRequestError, PaginationFailed, UpstreamError
from src.core.interfaces.datasource import IDataSource
from src.core.use_cases.analytics import summarize
from src.core.use_cases.csv_export import CsvColumns, generate_csv
from src.core.use_cases.dedup import finalize
from src.core.use_cases.pagination import COMPOSITE_PHASES, VALUE_PHASES, TransactionPager
from src.infrastructure.cache.balance_cache import BalanceCache
from src.infrastructure.cache.redis_service import RedisService
from src.infrastructure.gateways.subscan_api import SubscanGateway

# Setup Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("OpenTx")

TRANSACTIONS_ROW_LIMIT = 50
EXPORT_ROW_LIMIT = 100
CSV_FILENAME_PREFIX = "opentx"

app = FastAPI(
    title="OpenTx Export API",
    version="1.0.0",
    description="Wallet transfer history from Subscan, normalised into tax-tool CSV",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ExportMode(str, Enum):
    VALUE = "value"  # successful transfers only
    COMPOSITE = "composite"  # transfers + extrinsics, failed rows flagged


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


class TransactionsRequest(BaseModel):
    address: Optional[str] = None
    cursor: Optional[str] = None
    chain: Optional[str] = None


class AccountRequest(BaseModel):
    address: Optional[str] = None
    chain: Optional[str] = None


def _parse_choice(enum_cls, value: str, name: str):
    try:
        return enum_cls(value.lower())
    except ValueError:
        allowed = ", ".join(f'"{m.value}"' for m in enum_cls)
        raise InvalidRequestError(f"Invalid {name}. Use {allowed}.")


# --- Dependency Injection ---

DataSourceFactory = Callable[[ChainConfig], IDataSource]


def build_balance_cache() -> Union[BalanceCache, RedisService]:
    ttl = float(os.getenv("ACCOUNT_CACHE_TTL", "30"))
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        return RedisService(redis_url, ttl_seconds=ttl)
    return BalanceCache(ttl_seconds=ttl)


app.state.balance_cache = build_balance_cache()


def get_datasource_factory() -> DataSourceFactory:
    api_key = os.getenv("SUBSCAN_API_KEY")

    def factory(chain: ChainConfig) -> IDataSource:
        return SubscanGateway(chain, api_key=api_key)

    return factory


def get_balance_cache(request: Request):
    return request.app.state.balance_cache


def get_export_max_pages() -> int:
    return int(os.getenv("EXPORT_MAX_PAGES", "5"))


# --- Error Mapping ---

@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return JSONResponse(status_code=400, content={"error": exc.message})


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(f"Upstream failure on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"error": exc.message})


@app.exception_handler(PaginationFailed)
async def pagination_failed_handler(request: Request, exc: PaginationFailed):
    logger.error(
        f"Export aborted on {request.url.path} at {exc.cursor} "
        f"after {len(exc.events)} events: {exc.message}"
    )
    return JSONResponse(status_code=500, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal Server Error"})


# --- Endpoints ---

@app.get("/health")
async def health():
    return {"status": "healthy", "mode": "Subscan API via Gateway"}


@app.get("/chains")
async def list_chains():
    return [{"id": c.id, "name": c.name, "symbol": c.symbol} for c in SUPPORTED_CHAINS.values()]


@app.post("/transactions", response_model=TransactionsPage)
async def get_transactions(
    body: TransactionsRequest,
    factory: DataSourceFactory = Depends(get_datasource_factory),
):
    """
    One page of successful transfers for the wallet.
    Call again with `nextCursor` until it comes back null.
    """
    chain = resolve_chain(body.chain)
    address = validate_address(chain, body.address)
    cursor = Cursor.parse(body.cursor)

    async with factory(chain) as gateway:
        pager = TransactionPager(gateway, chain, row=TRANSACTIONS_ROW_LIMIT)
        page = await pager.step(address, cursor)

    return TransactionsPage(events=page.events, nextCursor=page.nextCursor)


@app.post("/account", response_model=Union[AccountState, AccountUnavailable])
async def get_account(
    body: AccountRequest,
    factory: DataSourceFactory = Depends(get_datasource_factory),
    cache=Depends(get_balance_cache),
):
    """
    Current balance, cached per (chain, address) for a short TTL.
    Upstream failures return nulls with an error message instead of failing.
    """
    chain = resolve_chain(body.chain)
    address = validate_address(chain, body.address)
    key = (chain.id, address)

    cached = cache.get(key)
    if cached is not None:
        return cached

    async with factory(chain) as gateway:
        state = await gateway.get_account(address)

    if isinstance(state, AccountState):
        cache.set(key, state)
    return state


@app.get("/export")
async def export_transactions(
    chain: Optional[str] = Query(None, description="Chain id, e.g. 'polkadot'"),
    address: Optional[str] = Query(None, description="Wallet address"),
    output: str = Query("json", alias="format", description="'json' or 'csv'"),
    mode: str = Query("value", description="'value' (transfers) or 'composite' (with extrinsics)"),
    columns: str = Query("strict", description="CSV column set: 'strict' or 'enriched'"),
    factory: DataSourceFactory = Depends(get_datasource_factory),
    max_pages: int = Depends(get_export_max_pages),
):
    """
    Bounded multi-page export: fetch, deduplicate, sort newest first, render.
    """
    if not chain:
        raise InvalidRequestError("Missing chain parameter.")
    chain_cfg = resolve_chain(chain)
    address = validate_address(chain_cfg, address)
    export_format = _parse_choice(ExportFormat, output, "format")
    export_mode = _parse_choice(ExportMode, mode, "mode")
    csv_columns = _parse_choice(CsvColumns, columns, "columns")

    composite = export_mode == ExportMode.COMPOSITE
    async with factory(chain_cfg) as gateway:
        pager = TransactionPager(
            gateway,
            chain_cfg,
            row=EXPORT_ROW_LIMIT,
            phases=COMPOSITE_PHASES if composite else VALUE_PHASES,
            successful_only=not composite,
        )
        result = await pager.collect(address, max_pages=max_pages)

    events = finalize(result.events)
    logger.info(
        f"Exported {len(events)} events for {chain_cfg.id}/{address} "
        f"({result.pages} pages, {result.status.value})"
    )

    if export_format == ExportFormat.CSV:
        filename = f"{CSV_FILENAME_PREFIX}_{chain_cfg.id}_{address}.csv"
        return Response(
            content=generate_csv(events, csv_columns),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    data: List[dict] = [e.model_dump(by_alias=True, exclude_none=True) for e in events]
    return {
        "data": data,
        "meta": {
            "count": len(events),
            "chain": chain_cfg.id,
            "address": address,
            "mode": export_mode.value,
            "pages": result.pages,
            "status": result.status.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "summary": summarize(events).model_dump(),
        },
    }
