from __future__ import annotations

import pytest

from pgkvload.generator import GenerationBounds
from pgkvload.storage import MemoryStore


@pytest.fixture
def bounds():
    return GenerationBounds(min_cols=1, max_cols=4, min_size=10, max_size=50)


@pytest.fixture
def store():
    return MemoryStore()
