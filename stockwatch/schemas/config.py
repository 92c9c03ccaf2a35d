from pydantic import BaseModel, Field

from stockwatch.schemas.quote import Market

DEFAULT_DATA_SOURCES = ["sina", "tencent", "eastmoney"]
DEFAULT_REFRESH_INTERVAL_MS = 3000


class StockEntry(BaseModel):
    id: str
    code: str
    market: Market
    alias: str = ""
    visible: bool = True


class AppConfig(BaseModel):
    refresh_interval_ms: int = Field(default=DEFAULT_REFRESH_INTERVAL_MS, gt=0)
    data_sources: list[str] = Field(default_factory=lambda: list(DEFAULT_DATA_SOURCES))
    stocks: list[StockEntry] = Field(default_factory=list)

    def visible_stocks(self) -> list[tuple[str, str]]:
        return [(s.market, s.code) for s in self.stocks if s.visible]


class StockCreateRequest(BaseModel):
    code: str
    market: Market | None = None
    alias: str = ""


class AppSettingsUpdate(BaseModel):
    refresh_interval_ms: int | None = Field(default=None, gt=0)
    data_sources: list[str] | None = None


class StockOrderRequest(BaseModel):
    ids: list[str]


class StockVisibilityRequest(BaseModel):
    visible: bool
