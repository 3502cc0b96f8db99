import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Set, Tuple

from src.core.entities.tax_event import TX_TYPE_TRANSFER, TaxEvent
from src.core.use_cases.normalizer import DATE_FORMAT


class KeyPolicy(str, Enum):
    HASH = "hash"  # one value movement per hash
    COMPOSITE = "composite"  # hash + counterparties + amounts


def dedup_key(event: TaxEvent, policy: KeyPolicy = KeyPolicy.COMPOSITE) -> Tuple:
    if not event.txHash:
        return ("unique", uuid.uuid4().hex)
    if policy == KeyPolicy.COMPOSITE and event.moves_value:
        return (event.txHash, event.from_, event.to, event.receivedQty, event.sentQty)
    return (event.txHash,)


def _rank(event: TaxEvent) -> int:
    if event.moves_value:
        return 2
    return 1 if event.txType == TX_TYPE_TRANSFER else 0


def deduplicate(events: List[TaxEvent], policy: KeyPolicy = KeyPolicy.COMPOSITE) -> List[TaxEvent]:
    """
    Collapses events to one per key, first occurrence wins among equals.

    A transfer supersedes a fee or other record for the same hash in either
    arrival order. Under the composite policy, records without a value leg
    (fee-only extrinsics) are keyed by hash and dropped as soon as any
    value-moving event with that hash is seen.
    """
    unique: Dict[Tuple, TaxEvent] = {}
    value_hashes: Set[str] = set()

    for event in events:
        key = dedup_key(event, policy)
        tx_hash = event.txHash

        if policy == KeyPolicy.COMPOSITE and tx_hash:
            if event.moves_value:
                value_hashes.add(tx_hash)
                unique.pop((tx_hash,), None)
            elif tx_hash in value_hashes:
                continue

        existing = unique.get(key)
        if existing is None or _rank(event) > _rank(existing):
            unique[key] = event

    return list(unique.values())


def parse_event_date(date: str) -> datetime:
    try:
        return datetime.strptime(date, DATE_FORMAT)
    except (TypeError, ValueError):
        pass
    try:
        parsed = datetime.fromisoformat(date)
    except (TypeError, ValueError):
        return datetime.min
    # Naive dates are already UTC; offsets are converted before comparing
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sort_newest_first(events: List[TaxEvent]) -> List[TaxEvent]:
    # Stable: equal timestamps keep their relative order
    return sorted(events, key=lambda e: parse_event_date(e.date), reverse=True)


def finalize(events: List[TaxEvent], policy: KeyPolicy = KeyPolicy.COMPOSITE) -> List[TaxEvent]:
    return sort_newest_first(deduplicate(events, policy))
