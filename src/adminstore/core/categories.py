from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from adminstore.core.constants import MAX_CATEGORY_LEN, MAX_COLOR_LEN, MAX_DESCRIPTION_LEN
from adminstore.core.errors import NOT_FOUND, StoreError
from adminstore.core.records import CategoryRecord, bounded_str

Json = Dict[str, Any]


def check_category_input(category: Any, description: Any, color: Any) -> CategoryRecord:
    return CategoryRecord(
        category=bounded_str(category, field="category", max_len=MAX_CATEGORY_LEN),
        description=bounded_str(description, field="description", max_len=MAX_DESCRIPTION_LEN, allow_empty=True),
        color=bounded_str(color, field="color", max_len=MAX_COLOR_LEN, allow_empty=True),
        active=True,
    )


class CategoryRegistry:
    """Category metadata. Independent of the main store; re-adding overwrites."""

    def __init__(self, categories: Optional[Dict[str, CategoryRecord]] = None) -> None:
        self._by_name: Dict[str, CategoryRecord] = dict(categories or {})

    def get(self, category: str) -> Optional[CategoryRecord]:
        return self._by_name.get(category)

    def require(self, category: str) -> CategoryRecord:
        rec = self._by_name.get(category)
        if rec is None:
            raise StoreError(NOT_FOUND, "category_not_found", {"category": category})
        return rec

    def put(self, rec: CategoryRecord) -> Tuple[Optional[CategoryRecord], CategoryRecord]:
        old = self._by_name.get(rec.category)
        self._by_name[rec.category] = rec
        return old, rec

    def copy(self) -> "CategoryRegistry":
        return CategoryRegistry(self._by_name)

    def to_json(self) -> Json:
        return {k: v.to_json() for k, v in sorted(self._by_name.items())}

    @classmethod
    def from_json(cls, j: Any) -> "CategoryRegistry":
        cats: Dict[str, CategoryRecord] = {}
        if isinstance(j, dict):
            for k, v in j.items():
                if isinstance(v, dict):
                    cats[str(k)] = CategoryRecord.from_json(v)
        return cls(cats)
