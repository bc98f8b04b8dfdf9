from __future__ import annotations

from dataclasses import dataclass
from typing import Any


OWNER_ONLY = "owner_only"
NOT_ADMIN = "not_admin"
ALREADY_EXISTS = "already_exists"
NOT_FOUND = "not_found"
MAX_ADMINS_REACHED = "max_admins_reached"
INVALID_VALUE = "invalid_value"
CONTRACT_PAUSED = "contract_paused"
INVALID_PERMISSION = "invalid_permission"
BATCH_TOO_LARGE = "batch_too_large"
RATE_LIMITED = "rate_limited"
RECORD_LOCKED = "record_locked"
INVALID_INPUT = "invalid_input"


@dataclass
class StoreError(Exception):
    """Canonical error type for every rejected store operation."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    def to_json(self) -> dict[str, Any]:
        return {"code": self.code, "reason": self.reason, "details": self.details or {}}
