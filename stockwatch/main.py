from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from stockwatch.api.routes import router
from stockwatch.config.settings import get_settings
from stockwatch.config.store import ConfigStore
from stockwatch.services.poller import Poller
from stockwatch.services.quote_cache import quote_event_sink


def _new_poller() -> Poller:
    return Poller(app.state.config_store, quote_event_sink.on_event)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a stopped poller cannot restart, so every startup gets a fresh one
    poller = app.state.poller_factory()
    app.state.poller = poller
    poller.start()

    try:
        yield
    finally:
        poller.stop()
        poller.join(timeout=1.0)
        print("[POLLER][poller_shutdown] thread=quote-poller", flush=True)


app = FastAPI(title="Stockwatch Quote Engine", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

app.state.config_store = ConfigStore.from_settings(get_settings())
app.state.poller_factory = _new_poller
app.state.poller = _new_poller()
