from fastapi import APIRouter, HTTPException, Request

from stockwatch.config.store import parse_stock_symbol
from stockwatch.schemas.config import (
    AppSettingsUpdate,
    StockCreateRequest,
    StockEntry,
    StockOrderRequest,
    StockVisibilityRequest,
)
from stockwatch.services.quote_cache import quote_cache, quote_event_sink

router = APIRouter()


@router.get('/quotes')
def get_quotes(request: Request):
    config = request.app.state.config_store.get()
    ids = [s.id for s in config.stocks if s.visible]
    return [q.model_dump() for q in quote_cache.list_many(ids)]


@router.get('/quotes/{stock_id}')
def get_quote(stock_id: str):
    row = quote_cache.get(stock_id)
    if row is None:
        raise HTTPException(status_code=404, detail='QUOTE_NOT_FOUND')
    return row.model_dump()


@router.get('/poller/status')
def get_poller_status(request: Request):
    return request.app.state.poller.status()


@router.post('/poller/pause')
def pause_poller(request: Request):
    poller = request.app.state.poller
    poller.set_paused(True)
    return {'paused': poller.is_paused}


@router.post('/poller/resume')
def resume_poller(request: Request):
    poller = request.app.state.poller
    poller.set_paused(False)
    return {'paused': poller.is_paused}


@router.get('/metrics/quote')
def quote_metrics(request: Request):
    metrics = quote_event_sink.metrics()
    status = request.app.state.poller.status()
    metrics.update(
        {
            'poller_running': status['running'],
            'poller_paused': status['paused'],
            'active_source': status['active_source'],
            'fail_count': status['fail_count'],
            'ticks': status['ticks'],
        }
    )
    return metrics


@router.get('/config')
def get_config(request: Request):
    return request.app.state.config_store.get().model_dump()


@router.put('/config/app')
def update_app_config(req: AppSettingsUpdate, request: Request):
    config = request.app.state.config_store.update_app(
        refresh_interval_ms=req.refresh_interval_ms,
        data_sources=req.data_sources,
    )
    return config.model_dump()


@router.post('/stocks', response_model=StockEntry)
def add_stock(req: StockCreateRequest, request: Request):
    try:
        stock = parse_stock_symbol(req.code, alias=req.alias, market=req.market)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='INVALID_STOCK_CODE') from exc

    try:
        request.app.state.config_store.add_stock(stock)
    except ValueError as exc:
        if str(exc) == 'STOCK_ALREADY_EXISTS':
            raise HTTPException(status_code=409, detail='STOCK_ALREADY_EXISTS') from exc
        raise
    return stock


@router.delete('/stocks/{stock_id}')
def remove_stock(stock_id: str, request: Request):
    request.app.state.config_store.remove_stock(stock_id)
    return {'removed': stock_id}


@router.put('/stocks/order')
def reorder_stocks(req: StockOrderRequest, request: Request):
    store = request.app.state.config_store
    store.reorder_stocks(req.ids)
    return {'ids': [s.id for s in store.get().stocks]}


@router.put('/stocks/{stock_id}/visible', response_model=StockEntry)
def set_stock_visible(stock_id: str, req: StockVisibilityRequest, request: Request):
    try:
        return request.app.state.config_store.set_visible(stock_id, req.visible)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail='STOCK_NOT_FOUND') from exc
