from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "adminstore" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from adminstore.core.engine import AdminStoreEngine  # noqa: E402
from adminstore.core.height import ManualHeight  # noqa: E402

OWNER = "owner-key"


@pytest.fixture
def height() -> ManualHeight:
    return ManualHeight(start=1)


@pytest.fixture
def engine(height: ManualHeight) -> AdminStoreEngine:
    return AdminStoreEngine(owner=OWNER, height_source=height)
