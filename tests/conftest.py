from __future__ import annotations

from typing import Any, Mapping, Sequence

import pytest

from MasterDataNormalizer.audit import AuditContext, InMemoryAuditTrail
from MasterDataNormalizer.commit import InMemoryRecordStore
from MasterDataNormalizer.config import CategoryConfig, default_engine_config

CREATOR_ROWS = [
    {"id": 1, "name": "Asha", "state": "U.P.", "city": "Bombay"},
    {"id": 2, "name": "Ravi", "state": "Maharastra", "city": "Mumbai"},
    {"id": 3, "name": "Meera", "state": "Tamilnadu", "city": "Chennai"},
    {"id": 4, "name": "Kabir", "state": "Delhi/NCR", "city": "New Delhi"},
    {"id": 5, "name": "Isha", "state": "Karnataka", "city": "Blr"},
    {"id": 6, "name": "Dev", "state": "U.P.", "city": "  "},
    {"id": 7, "name": "Tara", "state": None, "city": "Calcutta"},
]


class FlakyStore(InMemoryRecordStore):
    """In-memory store whose updates fail for selected raw values."""

    def __init__(self, tables: Mapping[str, Sequence[Mapping[str, Any]]], failing: Mapping[str, Exception]) -> None:
        super().__init__(tables)
        self.failing = dict(failing)
        self.calls: list[Mapping[str, Any]] = []

    def update(self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        self.calls.append(dict(filters))
        for value in filters.values():
            if value in self.failing:
                raise self.failing[value]
        return super().update(table, filters, values)


@pytest.fixture
def creator_rows() -> list[dict[str, Any]]:
    return [dict(row) for row in CREATOR_ROWS]


@pytest.fixture
def record_store(creator_rows: list[dict[str, Any]]) -> InMemoryRecordStore:
    return InMemoryRecordStore({"creators": creator_rows})


@pytest.fixture
def audit_trail() -> InMemoryAuditTrail:
    return InMemoryAuditTrail()


@pytest.fixture
def audit_context() -> AuditContext:
    return AuditContext(user_id="reviewer", user_email="reviewer@example.com", session_id="session_test")


@pytest.fixture
def state_category() -> CategoryConfig:
    return default_engine_config().category("state")


@pytest.fixture
def city_category() -> CategoryConfig:
    return default_engine_config().category("city")


@pytest.fixture
def flaky_store_factory(creator_rows: list[dict[str, Any]]):
    def _build(failing: Mapping[str, Exception]) -> FlakyStore:
        return FlakyStore({"creators": creator_rows}, failing)

    return _build
