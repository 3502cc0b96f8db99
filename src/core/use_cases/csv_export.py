from enum import Enum
from typing import Iterable, List, Optional

from src.core.entities.tax_event import TaxEvent


class CsvColumns(str, Enum):
    STRICT = "strict"
    ENRICHED = "enriched"


# Fixed contract with the downstream tax tool: do not reorder or rename.
STRICT_HEADERS = [
    "Date",
    "Received Quantity",
    "Received Currency",
    "Sent Quantity",
    "Sent Currency",
    "Fee Amount",
    "Fee Currency",
    "Notes",
]

ENRICHED_HEADERS = [
    "Chain",
    "Wallet",
    "Tx Hash",
    "From",
    "To",
    "Tx Type",
    "Protocol",
    "Block Height",
    "Explorer URL",
]


def escape_csv(value: Optional[object]) -> str:
    if value is None:
        return ""
    text = str(value)
    if '"' in text or "," in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def _strict_row(e: TaxEvent) -> List[Optional[str]]:
    return [
        e.date,
        e.receivedQty,
        e.receivedCurrency,
        e.sentQty,
        e.sentCurrency,
        e.feeAmount,
        e.feeCurrency,
        e.notes,
    ]


def _enriched_row(e: TaxEvent) -> List[Optional[str]]:
    return [
        e.chain,
        e.wallet,
        e.txHash,
        e.from_,
        e.to,
        e.txType,
        e.protocol,
        e.blockHeight,
        e.explorerUrl,
    ]


def generate_csv(events: Iterable[TaxEvent], columns: CsvColumns = CsvColumns.STRICT) -> str:
    """
    Renders events as CSV text, header first, rows joined by '\\n'.
    """
    enriched = columns == CsvColumns.ENRICHED
    headers = STRICT_HEADERS + ENRICHED_HEADERS if enriched else STRICT_HEADERS

    rows = [",".join(escape_csv(h) for h in headers)]
    for event in events:
        cols = _strict_row(event)
        if enriched:
            cols += _enriched_row(event)
        rows.append(",".join(escape_csv(c) for c in cols))

    return "\n".join(rows)
