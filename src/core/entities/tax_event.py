"""
Canonical Tax Event

The single uniform shape every Subscan record is normalised into before
deduplication and export.
"""
from pydantic import BaseModel, Field
from typing import Optional

TX_TYPE_TRANSFER = "transfer"
TX_TYPE_FEE = "fee"
TX_TYPE_OTHER = "other"


class TaxEvent(BaseModel):
    """
    One reportable on-chain occurrence for a wallet.
    Quantities are decimal strings converted losslessly from plancks.
    """
    date: str  # "MM/DD/YYYY HH:MM:SS" UTC

    receivedQty: Optional[str] = None
    receivedCurrency: Optional[str] = None

    sentQty: Optional[str] = None
    sentCurrency: Optional[str] = None

    feeAmount: str = "0"
    feeCurrency: Optional[str] = None

    notes: Optional[str] = None

    # Enrichment
    chain: Optional[str] = None
    wallet: Optional[str] = None
    txHash: Optional[str] = None
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    txType: Optional[str] = None  # "transfer", "fee", "other"
    protocol: Optional[str] = None  # pallet name, e.g. "balances"
    blockHeight: Optional[str] = None
    explorerUrl: Optional[str] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "date": "01/15/2024 09:30:00",
                "receivedQty": "12.5",
                "receivedCurrency": "DOT",
                "feeAmount": "0",
                "feeCurrency": "DOT",
                "notes": "Polkadot transfer",
                "chain": "Polkadot",
                "txHash": "0xabc123...",
                "from": "14E5nqKAp3oAJcmzgZhUD2RcptBeUBScxKHgJKU4HPNcKVf3",
                "to": "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5",
                "txType": "transfer",
                "protocol": "balances",
                "blockHeight": "19000000",
                "explorerUrl": "https://polkadot.subscan.io/extrinsic/0xabc123...",
            }
        }

    @property
    def moves_value(self) -> bool:
        return bool(self.receivedQty or self.sentQty)


class TransactionsPage(BaseModel):
    events: list[TaxEvent]
    nextCursor: Optional[str] = None
