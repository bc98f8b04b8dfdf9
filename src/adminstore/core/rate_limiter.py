from __future__ import annotations

from typing import Any, Dict, Optional

from adminstore.core.constants import DEFAULT_RATE_WINDOW, RATE_LIMIT_MAX_ACTIONS
from adminstore.core.errors import NOT_FOUND, StoreError
from adminstore.core.records import ActivityEntry

Json = Dict[str, Any]


class RateLimiter:
    """Per-caller write-action counter over a height window.

    A window opens at the caller's first counted action and lasts `window`
    heights. Once it has elapsed the next counted action opens a fresh window
    with action_count=1.
    """

    def __init__(
        self,
        entries: Optional[Dict[str, ActivityEntry]] = None,
        *,
        max_actions: int = RATE_LIMIT_MAX_ACTIONS,
        window: int = DEFAULT_RATE_WINDOW,
    ) -> None:
        self._by_user: Dict[str, ActivityEntry] = dict(entries or {})
        self.max_actions = int(max_actions)
        self.window = max(1, int(window))

    def get(self, identity: str) -> Optional[ActivityEntry]:
        return self._by_user.get(identity)

    def require(self, identity: str) -> ActivityEntry:
        entry = self._by_user.get(identity)
        if entry is None:
            raise StoreError(NOT_FOUND, "activity_not_found", {"identity": identity})
        return entry

    def _expired(self, entry: ActivityEntry, height: int) -> bool:
        return int(height) >= entry.rate_window_start + self.window

    def check(self, identity: str, height: int) -> bool:
        entry = self._by_user.get(identity)
        if entry is None or self._expired(entry, height):
            return True
        return entry.action_count < self.max_actions

    def record(self, identity: str, height: int) -> ActivityEntry:
        entry = self._by_user.get(identity)
        if entry is None or self._expired(entry, height):
            new = ActivityEntry(user=identity, last_action=int(height), action_count=1, rate_window_start=int(height))
        else:
            new = ActivityEntry(
                user=identity,
                last_action=int(height),
                action_count=entry.action_count + 1,
                rate_window_start=entry.rate_window_start,
            )
        self._by_user[identity] = new
        return new

    def copy(self) -> "RateLimiter":
        return RateLimiter(self._by_user, max_actions=self.max_actions, window=self.window)

    def to_json(self) -> Json:
        return {k: v.to_json() for k, v in sorted(self._by_user.items())}

    @classmethod
    def from_json(
        cls,
        j: Any,
        *,
        max_actions: int = RATE_LIMIT_MAX_ACTIONS,
        window: int = DEFAULT_RATE_WINDOW,
    ) -> "RateLimiter":
        entries: Dict[str, ActivityEntry] = {}
        if isinstance(j, dict):
            for k, v in j.items():
                if isinstance(v, dict):
                    entries[str(k)] = ActivityEntry.from_json(v)
        return cls(entries, max_actions=max_actions, window=window)
