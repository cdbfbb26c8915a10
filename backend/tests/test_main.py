"""Tests for the background auction sweep."""

import asyncio

from app import main


class TestAuctionSweep:
    """Test the periodic sweep's failure handling and shutdown."""

    def test_failed_pass_is_logged_not_raised(self, monkeypatch, caplog):
        def boom():
            raise RuntimeError("database went away")

        monkeypatch.setattr(main, "sweep_expired_auctions", boom)
        assert asyncio.run(main.run_sweep_once()) == []
        assert "Auction sweep failed" in caplog.text

    def test_sweeper_survives_failures(self, monkeypatch):
        """A raising pass does not stop later passes."""
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first pass fails")
            return []

        monkeypatch.setattr(main, "sweep_expired_auctions", flaky)
        monkeypatch.setattr(main.settings, "AUCTION_SWEEP_INTERVAL_SECONDS", 0.01)

        async def run():
            async with main.lifespan(main.app):
                while len(calls) < 3:
                    await asyncio.sleep(0.01)

        asyncio.run(asyncio.wait_for(run(), timeout=5))
        assert len(calls) >= 3

    def test_shutdown_awaits_cancelled_task(self, monkeypatch):
        monkeypatch.setattr(main.settings, "AUCTION_SWEEP_INTERVAL_SECONDS", 60)

        async def run():
            async with main.lifespan(main.app):
                pass
            return [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]

        assert asyncio.run(run()) == []
