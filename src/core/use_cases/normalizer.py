import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Optional

from src.core.entities.chain import ChainConfig
from src.core.entities.subscan import SubscanExtrinsic, SubscanTransfer
from src.core.entities.tax_event import TX_TYPE_FEE, TX_TYPE_TRANSFER, TaxEvent

DATE_FORMAT = "%m/%d/%Y %H:%M:%S"
FAILED_PREFIX = "FAILED"
SUM_PRECISION = 80  # digits; wide enough that sums of u128 planck values stay exact

logger = logging.getLogger(__name__)


def format_minor_units(value: Optional[str], decimals: int) -> str:
    """
    Converts an integer planck string into a decimal string without rounding.

    "12345678900" with 10 decimals -> "1.23456789". Input that already holds a
    decimal point is returned as is, and so is anything that does not parse as
    an unsigned integer.
    """
    if not value or value == "0":
        return "0"
    if "." in value:
        return value
    if not value.isdecimal():
        return value

    integer, remainder = divmod(int(value), 10 ** decimals)
    if decimals == 0:
        return str(integer)
    fraction = str(remainder).zfill(decimals).rstrip("0")
    return f"{integer}.{fraction}" if fraction else str(integer)


def render_decimal(value: Decimal) -> str:
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def add_amounts(*amounts: Optional[str]) -> str:
    """Exact sum of decimal strings. Non-numeric inputs count as zero."""
    total = Decimal(0)
    with localcontext() as ctx:
        ctx.prec = SUM_PRECISION
        for amount in amounts:
            if not amount:
                continue
            try:
                total += Decimal(amount)
            except InvalidOperation:
                logger.warning(f"Ignoring non-numeric amount in sum: {amount!r}")
    return render_decimal(total)


def format_timestamp(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(DATE_FORMAT)


def _same_address(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


def normalize_transfer(t: SubscanTransfer, wallet: str, chain: ChainConfig) -> TaxEvent:
    is_received = _same_address(t.to, wallet)
    is_sent = _same_address(t.from_, wallet)

    amount = format_minor_units(t.amount, chain.decimals)
    notes = f"{chain.name} transfer"

    event = TaxEvent(
        date=format_timestamp(t.block_timestamp),
        # Sender pays the network fee
        feeAmount=format_minor_units(t.fee, chain.decimals) if is_sent else "0",
        feeCurrency=chain.symbol,
        notes=notes if t.success else f"{FAILED_PREFIX} {notes}",
        chain=chain.name,
        wallet=wallet,
        txHash=t.hash,
        from_=t.from_,
        to=t.to,
        txType=TX_TYPE_TRANSFER,
        protocol=t.module,
        blockHeight=str(t.block_num),
        explorerUrl=chain.explorer_url(t.hash),
    )

    # A self-transfer keeps both legs on the same event.
    if is_received:
        event.receivedQty = amount
        event.receivedCurrency = chain.symbol
    if is_sent:
        event.sentQty = amount
        event.sentCurrency = chain.symbol

    return event


def classify_extrinsic(e: SubscanExtrinsic) -> str:
    if e.call_module == "balances" and "transfer" in e.call_module_function.lower():
        return TX_TYPE_TRANSFER
    return TX_TYPE_FEE


def normalize_extrinsic(e: SubscanExtrinsic, wallet: str, chain: ChainConfig) -> TaxEvent:
    # Extrinsics are signed by the wallet, so it always bears the fee.
    notes = f"Extrinsic {e.call_module}.{e.call_module_function}"
    return TaxEvent(
        date=format_timestamp(e.block_timestamp),
        feeAmount=format_minor_units(e.fee, chain.decimals),
        feeCurrency=chain.symbol,
        notes=notes if e.success else f"{FAILED_PREFIX} {notes}",
        chain=chain.name,
        wallet=wallet,
        txHash=e.extrinsic_hash,
        txType=classify_extrinsic(e),
        protocol=e.call_module,
        blockHeight=str(e.block_num),
        explorerUrl=chain.explorer_url(e.extrinsic_hash),
    )
