from __future__ import annotations

import itertools
import os

import pytest

# Set env before any codefill imports (settings are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"item_{next(counter)}"


@pytest.fixture
def make_item():
    from codefill.modules.codification.models import DataType, MappingStatus
    from codefill.modules.codification.schemas import CodifiedItem

    counter = itertools.count(1)

    def _make(
        name: str,
        value=None,
        *,
        code: str | None = None,
        category: str = "Uncategorized",
        status: MappingStatus = MappingStatus.MATCHED,
        data_type: DataType = DataType.CURRENCY,
        **extra,
    ) -> CodifiedItem:
        return CodifiedItem(
            id=f"item_{next(counter)}",
            original_name=name,
            item_code=code,
            value=value,
            data_type=data_type,
            category=category,
            mapping_status=status,
            confidence=1.0 if status == MappingStatus.MATCHED else 0.0,
            **extra,
        )

    return _make
