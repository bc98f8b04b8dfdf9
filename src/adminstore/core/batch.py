from __future__ import annotations

"""Batch store.

Items are applied strictly in order to a draft VersionedStore. The first item
whose value is out of range aborts the batch with invalid_value; the caller
discards the draft, so no write from the batch survives.

Batch writes always land at version 1 with an empty tag set, whatever history
the key already has (see VersionedStore.put_fresh).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from adminstore.core.constants import MAX_BATCH, MAX_TEXT_LEN
from adminstore.core.errors import BATCH_TOO_LARGE, INVALID_INPUT, INVALID_VALUE, StoreError
from adminstore.core.records import StoreRecord, bounded_str, checked_value
from adminstore.core.versioned_store import VersionedStore, check_key

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class BatchItem:
    key: str
    value: Any
    text: str = ""


def _item_fields(raw: Any) -> BatchItem:
    if isinstance(raw, BatchItem):
        return raw
    if isinstance(raw, dict):
        return BatchItem(key=raw.get("key"), value=raw.get("value"), text=raw.get("text", ""))
    if isinstance(raw, (tuple, list)) and len(raw) in (2, 3):
        return BatchItem(*raw)
    raise StoreError(INVALID_INPUT, "bad_batch_item", {"item": repr(raw)})


def check_batch(items: Any) -> List[BatchItem]:
    """Size and string-bound validation. Values are checked during apply."""
    if not isinstance(items, (list, tuple)):
        raise StoreError(INVALID_INPUT, "items_not_a_list", {})
    if len(items) > MAX_BATCH:
        raise StoreError(BATCH_TOO_LARGE, "too_many_items", {"max": MAX_BATCH, "count": len(items)})

    out: List[BatchItem] = []
    for i, raw in enumerate(items):
        item = _item_fields(raw)
        try:
            key = check_key(item.key)
            text = bounded_str(item.text, field="text", max_len=MAX_TEXT_LEN, allow_empty=True)
        except StoreError as e:
            details = dict(e.details or {})
            details["index"] = i
            raise StoreError(e.code, e.reason, details) from e
        out.append(BatchItem(key=key, value=item.value, text=text))
    return out


def apply_batch(store: VersionedStore, items: Sequence[BatchItem], *, caller: str, height: int) -> List[StoreRecord]:
    written: List[StoreRecord] = []
    for i, item in enumerate(items):
        try:
            value = checked_value(item.value)
        except StoreError as e:
            raise StoreError(INVALID_VALUE, "batch_item_invalid", {"index": i, "key": item.key, **(e.details or {})}) from e
        _, rec = store.put_fresh(item.key, value, item.text, caller=caller, height=height)
        written.append(rec)
    return written
