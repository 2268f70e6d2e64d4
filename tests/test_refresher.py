"""Tests for the background Refresher."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from asninfo.config import MINIMUM_REFRESH_SECS
from asninfo.errors import LoaderFailure
from asninfo.models import AsnRecord
from asninfo.refresher import Refresher
from conftest import T1, T2

NEW_RECORDS = {3: AsnRecord(asn=3, name="AS3", country="JP")}


class TestRefresher:
    def test_interval_is_floored(self, fake_loader, store):
        assert Refresher(fake_loader, store, 60).interval_secs == MINIMUM_REFRESH_SECS
        assert Refresher(fake_loader, store, 7200).interval_secs == 7200

    @pytest.mark.asyncio
    async def test_success_installs_snapshot(self, fake_loader, store):
        fake_loader.load.return_value = (NEW_RECORDS, T2)
        refresher = Refresher(fake_loader, store, 3600)

        assert await refresher.refresh_once() is True

        snap = store.get()
        assert snap.records is NEW_RECORDS
        assert snap.updated_at == T2
        assert refresher.last_success == T2
        assert refresher.fail_count == 0
        assert refresher.last_cycle_ms is not None

    @pytest.mark.asyncio
    async def test_loader_failure_keeps_previous_snapshot(self, fake_loader, store, records):
        fake_loader.load.side_effect = LoaderFailure(1, "upstream down")
        refresher = Refresher(fake_loader, store, 3600)

        assert await refresher.refresh_once() is False

        snap = store.get()
        assert snap.records is records
        assert snap.updated_at == T1
        assert refresher.fail_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_previous_snapshot(self, fake_loader, store, records):
        fake_loader.load.side_effect = RuntimeError("bug")
        refresher = Refresher(fake_loader, store, 3600)

        assert await refresher.refresh_once() is False
        assert store.get().records is records

    @pytest.mark.asyncio
    async def test_loop_continues_after_failure(self, fake_loader, store):
        fake_loader.load.side_effect = [LoaderFailure(2, "countries"), (NEW_RECORDS, T2)]
        refresher = Refresher(fake_loader, store, 3600)
        sleep = AsyncMock(side_effect=[None, None, asyncio.CancelledError()])

        with patch("asninfo.refresher.asyncio.sleep", sleep):
            with pytest.raises(asyncio.CancelledError):
                await refresher._run()

        assert fake_loader.load.await_count == 2
        assert store.get().updated_at == T2
        sleep.assert_awaited_with(3600)

    @pytest.mark.asyncio
    async def test_stop_cancels_sleeping_task(self, fake_loader, store):
        refresher = Refresher(fake_loader, store, 3600)
        refresher.start()
        await asyncio.sleep(0)

        await refresher.stop()

        fake_loader.load.assert_not_awaited()
        assert store.get().updated_at == T1

    @pytest.mark.asyncio
    async def test_stop_propagates_its_own_cancellation(self, fake_loader, store):
        refresher = Refresher(fake_loader, store, 3600)
        refresher.start()
        await asyncio.sleep(0)

        stopping = asyncio.create_task(refresher.stop())
        await asyncio.sleep(0)
        stopping.cancel()

        with pytest.raises(asyncio.CancelledError):
            await stopping
