from decimal import Decimal, InvalidOperation, localcontext
from typing import List, Optional

from pydantic import BaseModel

from src.core.entities.tax_event import TaxEvent
from src.core.use_cases.dedup import parse_event_date
from src.core.use_cases.normalizer import SUM_PRECISION, render_decimal


class BalancePoint(BaseModel):
    date: str
    balance: str


class FlowSummary(BaseModel):
    eventCount: int
    totalReceived: str
    totalSent: str
    totalFees: str
    netFlow: str  # received - sent - fees
    balanceHistory: List[BalancePoint]


def _amount(value: Optional[str]) -> Decimal:
    if not value:
        return Decimal(0)
    try:
        return Decimal(value)
    except InvalidOperation:
        return Decimal(0)


def summarize(events: List[TaxEvent]) -> FlowSummary:
    """
    Aggregates flows over the given events, oldest first.

    The running balance assumes a zero opening balance, so it tracks relative
    change rather than the on-chain balance, and is floored at zero for
    display when history is partial.
    """
    received = sent = fees = balance = Decimal(0)
    history: List[BalancePoint] = []

    with localcontext() as ctx:
        ctx.prec = SUM_PRECISION
        for e in sorted(events, key=lambda e: parse_event_date(e.date)):
            inflow = _amount(e.receivedQty)
            outflow = _amount(e.sentQty)
            fee = _amount(e.feeAmount)

            received += inflow
            sent += outflow
            fees += fee
            balance += inflow - outflow - fee
            history.append(BalancePoint(date=e.date, balance=render_decimal(max(balance, Decimal(0)))))

        net = received - sent - fees

    return FlowSummary(
        eventCount=len(events),
        totalReceived=render_decimal(received),
        totalSent=render_decimal(sent),
        totalFees=render_decimal(fees),
        netFlow=render_decimal(net),
        balanceHistory=history,
    )
