from __future__ import annotations

from typing import Any, Dict

from adminstore.core.errors import CONTRACT_PAUSED, StoreError


class PauseGuard:
    """Process-wide on/off switch for every state-mutating operation."""

    def __init__(self, paused: bool = False) -> None:
        self._paused = bool(paused)

    def is_paused(self) -> bool:
        return self._paused

    def require_running(self, op_type: str) -> None:
        if self._paused:
            raise StoreError(CONTRACT_PAUSED, "store_paused", {"operation": op_type})

    def toggle(self) -> bool:
        self._paused = not self._paused
        return self._paused

    def stop(self) -> bool:
        """Force paused=True. Returns the previous state."""
        was = self._paused
        self._paused = True
        return was

    def copy(self) -> "PauseGuard":
        return PauseGuard(self._paused)

    def to_json(self) -> Dict[str, Any]:
        return {"paused": self._paused}

    @classmethod
    def from_json(cls, j: Any) -> "PauseGuard":
        return cls(bool(j.get("paused", False)) if isinstance(j, dict) else False)
