"""Shared fixtures for asninfo tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from asninfo.models import AsnRecord, OrgRef
from asninfo.store import SnapshotStore

T1 = datetime(2024, 1, 1, 0, 0, 0, 123000, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 1, 6, 0, 0, 456000, tzinfo=timezone.utc)


def make_records() -> dict[int, AsnRecord]:
    return {
        1: AsnRecord(
            asn=1,
            name="LVLT-1",
            country="US",
            country_name="United States",
            as2org=OrgRef(org_id="LPL-141-ARIN", org_name="Level 3 Parent, LLC"),
            extra={"population": {"user_count": 10}},
        ),
        2: AsnRecord(asn=2, name="UDEL-DCN", country="US", country_name="United States"),
    }


@pytest.fixture
def records() -> dict[int, AsnRecord]:
    return make_records()


@pytest.fixture
def store(records) -> SnapshotStore:
    s = SnapshotStore()
    s.replace(records, T1)
    return s


@pytest.fixture
def fake_loader(records) -> AsyncMock:
    loader = AsyncMock()
    loader.load.return_value = (records, T1)
    loader.close = AsyncMock()
    return loader
