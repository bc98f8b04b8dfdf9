# src/adminstore/core/constants.py
from __future__ import annotations

"""Store limits.

These bound every record the engine accepts. Changing any of them changes
what a persisted database may contain, so treat them as schema.
"""

# Admin registry
MAX_ADMINS: int = 5

# Stored values
MIN_VALUE: int = 0
MAX_VALUE: int = 1_000_000

# Tags per record
MAX_TAGS: int = 5

# Items per batch-store call and entries per multi-log call
MAX_BATCH: int = 10

# Rate limiting: write-class actions per caller per window
RATE_LIMIT_MAX_ACTIONS: int = 10

# Window length in heights (~1 day at 10 minute heights)
DEFAULT_RATE_WINDOW: int = 144

# Bounded string lengths
MAX_KEY_LEN: int = 64
MAX_TEXT_LEN: int = 256
MAX_TAG_LEN: int = 32
MAX_SNAPSHOT_ID_LEN: int = 64
MAX_CATEGORY_LEN: int = 32
MAX_DESCRIPTION_LEN: int = 128
MAX_COLOR_LEN: int = 16
MAX_OP_TYPE_LEN: int = 32
MAX_IDENTITY_LEN: int = 128

# Contract metadata
INITIAL_CONTRACT_VERSION: int = 1
