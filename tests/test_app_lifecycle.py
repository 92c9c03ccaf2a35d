import threading
import unittest

from fastapi.testclient import TestClient

from stockwatch.config.store import ConfigStore
from stockwatch.main import app
from stockwatch.schemas.config import AppConfig, StockEntry
from stockwatch.schemas.quote import Quote
from stockwatch.services.poller import Poller
from stockwatch.services.source_manager import SourceManager


class StubSource:
    name = "sina"

    def fetch(self, stocks):
        return [
            Quote(
                id=f"{m}{c}",
                code=c,
                market=m,
                name="stub",
                price=10.5,
                prev_close=10.0,
                change=0.5,
                percent=0.05,
                high=10.6,
                low=9.9,
                timestamp=1700000000000,
                source=self.name,
            )
            for m, c in stocks
        ]


class AppLifecyclePollerTest(unittest.TestCase):
    def test_poller_starts_on_startup_and_stops_on_shutdown(self):
        original_store = app.state.config_store
        original_factory = app.state.poller_factory
        original_poller = app.state.poller

        delivered = threading.Event()
        created: list[Poller] = []

        def factory():
            poller = Poller(
                app.state.config_store,
                lambda event, payload: delivered.set(),
                manager_factory=lambda names: SourceManager([StubSource()]),
            )
            created.append(poller)
            return poller

        app.state.config_store = ConfigStore(
            AppConfig(
                refresh_interval_ms=10,
                data_sources=["sina"],
                stocks=[StockEntry(id="sh600519", code="600519", market="sh")],
            )
        )
        app.state.poller_factory = factory

        try:
            with TestClient(app) as client:
                self.assertTrue(delivered.wait(1.0), "poller did not deliver on startup")
                status = client.get('/v1/poller/status').json()
                self.assertTrue(status['running'])
                self.assertEqual(status['active_source'], 'sina')

            self.assertEqual(len(created), 1)
            poller = created[0]
            self.assertFalse(poller.is_running)
            self.assertFalse(poller._thread.is_alive())
        finally:
            app.state.config_store = original_store
            app.state.poller_factory = original_factory
            app.state.poller = original_poller


if __name__ == '__main__':
    unittest.main()
